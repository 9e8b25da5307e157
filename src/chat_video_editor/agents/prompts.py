"""Prompt templates for intent resolution and reply composition."""

import json
from typing import Any, Dict, Optional

from ..models.intent import ActionKind, Intent
from ..models.parameters import describe_schema


ACTION_DESCRIPTIONS = {
    ActionKind.TRIM: "Cut out a segment of the video",
    ActionKind.CROP: "Crop every frame to a rectangle",
    ActionKind.FILTER: "Apply a visual filter, or change playback speed (filterType \"speed\")",
    ActionKind.COLOR: "Colour correction",
    ActionKind.AUDIO: "Audio enhancement, noise removal, volume and fades",
    ActionKind.TEXT: "Add a title, caption or other text overlay",
    ActionKind.TRANSITION: "Fade or dissolve at the start and/or end",
    ActionKind.BACKGROUND: "Remove or replace a green-screen background",
    ActionKind.EXPORT: "Re-encode for download",
    ActionKind.ANALYZE: "Describe the video (duration, size, audio)",
    ActionKind.CHAT: "General conversation or anything unclear",
    ActionKind.UNKNOWN: "A request none of the above can handle",
}

PHRASE_MAPPINGS = [
    ('"cut from X to Y", "trim", "shorten", "first N seconds"', 'trim'),
    ('"crop", "square crop", "crop to 640x480"', 'crop'),
    ('"make it vintage", "old film look"', 'filter with filterType "vintage"'),
    ('"black and white", "monochrome"', 'filter with filterType "black_white"'),
    ('"slow motion", "speed up", "2x speed"', 'filter with filterType "speed" (intensity is the speed factor, 0.5 = half speed)'),
    ('"brighten", "darker", "more contrast", "color grade"', 'color'),
    ('"louder", "quieter", "remove noise", "normalize volume"', 'audio'),
    ('"add title", "put text", "add caption"', 'text'),
    ('"fade in", "fade out", "dissolve"', 'transition'),
    ('"remove background", "green screen", "chroma key"', 'background with action "remove"'),
    ('"blur background", "gradient background", "replace background"', 'background with action "replace"'),
    ('"export", "download", "save as webm"', 'export'),
    ('"what is this video", "how long is it"', 'analyze'),
]


def _actions_section() -> str:
    lines = []
    for kind in ActionKind:
        lines.append(f"• **{kind.value}**: {ACTION_DESCRIPTIONS[kind]}")
        schema = describe_schema(kind)
        if schema != "{}":
            lines.append(f"  parameters: {schema}")
    return "\n".join(lines)


def _phrases_section() -> str:
    return "\n".join(f"• {phrases} → {target}" for phrases, target in PHRASE_MAPPINGS)


def build_intent_system_prompt() -> str:
    return f"""## Context

You are the command interpreter of a video editing assistant. The user describes an edit in plain language. Your task is to turn the message into exactly one structured action.

## Available Actions

{_actions_section()}

## Common Phrases

{_phrases_section()}

## Rules

• Choose exactly one action from the list above
• Use only the parameter names shown, with camelCase spelling
• Times are in seconds; convert "1:30" to 90
• Leave out parameters the user did not imply
• If the request is unclear, use "chat" with a low confidence

## Output Format

Respond with a single JSON object and nothing else:
{{
  "action": "trim",
  "parameters": {{"startTime": 0, "duration": 10}},
  "confidence": 0.95,
  "explanation": "What the user wants to do",
  "suggestedActions": ["add fade in", "export video in HD"]
}}"""


def build_intent_prompt(message: str, context: Dict[str, Any]) -> str:
    return f"""## Current Media

{json.dumps(context, indent=2, default=str) if context else "No media selected"}

## User Message

{message}"""


RESPONSE_SYSTEM_PROMPT = """## Context

You are a friendly video editing assistant. You help users edit their videos through natural conversation.

## Guidelines

• Be conversational and encouraging
• Explain what is happening in simple terms
• If an edit was started, mention it will take a moment
• If something could not be done, say why and offer an alternative
• Suggest two to four related next steps

## Output Format

Respond with a single JSON object:
{
  "message": "Your conversational reply",
  "actions": [
    {"label": "Action Name", "command": "suggested command", "type": "primary|secondary"}
  ],
  "tips": ["helpful tip"]
}"""


def build_response_prompt(
    intent: Intent,
    context: Dict[str, Any],
    outcome: Optional[Dict[str, Any]] = None
) -> str:
    intent_data = {
        "action": intent.action.value,
        "parameters": intent.parameters,
        "confidence": intent.confidence,
        "explanation": intent.explanation,
    }
    sections = [
        "## Resolved Intent",
        json.dumps(intent_data, indent=2, default=str),
        "",
        "## Current Media",
        json.dumps(context, indent=2, default=str) if context else "No media selected",
    ]
    if outcome:
        sections += ["", "## Outcome", json.dumps(outcome, indent=2, default=str)]
    return "\n".join(sections)
