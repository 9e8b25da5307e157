#!/usr/bin/env python3
"""Command-line interface for editing a video through chat commands."""

import argparse
import asyncio
import sys
import uuid
from pathlib import Path

from chat_video_editor.agents.chat_editor import ChatEditor
from chat_video_editor.config import settings
from chat_video_editor.models.conversation import EditContext
from chat_video_editor.utils.ai_output_logger import ai_logger
from chat_video_editor.utils.simple_logger import setup_logging


def parse_arguments():
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Edit a video by describing the change in plain language",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # One edit
  %(prog)s clip.mp4 -c "trim the first 10 seconds"

  # Several edits, each applied to the latest version
  %(prog)s clip.mp4 -c "make it black and white" -c "add fade in and out"

  # Interactive session
  %(prog)s clip.mp4

  # Keep the model prompts and replies
  %(prog)s clip.mp4 -c "remove background noise" --save-log
        """
    )

    parser.add_argument(
        'video',
        help='Video file to edit'
    )

    parser.add_argument(
        '-c', '--command',
        action='append',
        default=[],
        help='Edit command (repeatable); omit for an interactive session'
    )

    parser.add_argument(
        '--media-id',
        help='Identifier for the video (default: random)'
    )

    parser.add_argument(
        '--no-wait',
        action='store_true',
        help='Do not wait for each operation before the next command'
    )

    parser.add_argument(
        '--save-log',
        action='store_true',
        help='Save the AI prompt/response log next to the outputs'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser.parse_args()


async def run_command(editor: ChatEditor, message: str, context: EditContext, wait: bool) -> None:
    response = await editor.process_command(message, context)

    print(f"\n🤖 {response.reply}")
    if response.fallback:
        print("   (running without the language model)")
    if response.dispatch and not response.dispatch.success:
        print(f"   ⚠️  {response.dispatch.message}")
        for error in response.dispatch.errors:
            print(f"      - {error}")
    for action in response.actions:
        print(f"   • {action.label}: \"{action.command}\"")

    if response.operation_ref and wait:
        print(f"   ⏳ Operation {response.operation_ref} running...")
        operation = await editor.wait_for_operation(response.operation_ref)
        if operation.status.value == "completed":
            print(f"   ✅ Output: {operation.result['output_path']}")
        else:
            print(f"   ❌ Failed: {operation.error}")


async def main():
    """Main entry point."""
    args = parse_arguments()
    setup_logging("DEBUG" if args.verbose else settings.log_level)

    video = Path(args.video)
    if not video.is_file():
        print(f"Error: File not found: {args.video}")
        return 1

    editor = ChatEditor.from_settings(settings)
    media_id = args.media_id or uuid.uuid4().hex[:8]
    session_id = uuid.uuid4().hex[:8]
    ai_logger.set_session(session_id, settings.output_dir)

    try:
        original = await editor.register_media(media_id, str(video.resolve()), probe=True)
    except Exception as e:
        print(f"Error: Could not open video: {e}")
        return 1

    print(f"\n🎬 Chat Video Editor")
    print(f"{'='*50}")
    print(f"Video: {video.name}")
    print(f"Media ID: {media_id}")
    print(f"Original version: {original.id}")
    if not settings.validate_api_keys():
        print("Gemini is not configured; keyword matching will be used")
    print(f"{'='*50}")

    context = EditContext(media_id=media_id, session_id=session_id, title=video.stem)

    if args.command:
        for message in args.command:
            print(f"\n🗣  {message}")
            await run_command(editor, message, context, wait=not args.no_wait)
    else:
        print("Type an edit command, or 'quit' to exit.")
        while True:
            try:
                message = input("\n🗣  ").strip()
            except EOFError:
                break
            if message.lower() in ("quit", "exit"):
                break
            if message:
                await run_command(editor, message, context, wait=not args.no_wait)

    await editor.drain()

    print(f"\n{'='*50}")
    print("Versions:")
    for version in editor.version_history(media_id):
        label = version.action.value if version.action else "original"
        print(f"  {version.id[:8]}  {label:<11} {version.artifact_path}")

    if args.save_log:
        print(f"\n📄 AI log: {ai_logger.save_report()}")

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
