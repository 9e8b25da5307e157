"""ADK function tools that let an agent drive the chat editor."""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from google.adk.tools import FunctionTool

from ..exceptions import ChatVideoEditorError
from ..models.conversation import EditContext

if TYPE_CHECKING:
    from ..agents.chat_editor import ChatEditor


logger = logging.getLogger(__name__)


def build_editing_tools(editor: "ChatEditor") -> List[FunctionTool]:
    """Create the editing tools bound to ``editor``."""

    async def process_edit_command(
        message: str,
        media_id: Optional[str] = None,
        session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Apply a plain-language edit to a video.

        Args:
            message: What the user wants, e.g. "trim the first 10 seconds"
            media_id: Video to edit
            session_id: Conversation to continue

        Returns:
            Reply text, suggested actions and the started operation id (if any)
        """
        try:
            response = await editor.process_command(
                message, EditContext(media_id=media_id, session_id=session_id)
            )
            return {
                "status": "success",
                "reply": response.reply,
                "action": response.intent.action.value,
                "operation_id": response.operation_ref,
                "suggested_actions": [a.command for a in response.actions],
                "fallback": response.fallback,
            }
        except ChatVideoEditorError as e:
            logger.error(f"Edit command failed: {e}")
            return {"status": "error", "error": str(e)}

    async def check_operation_status(operation_id: str) -> Dict[str, Any]:
        """Look up the progress of an edit operation.

        Args:
            operation_id: Id returned by process_edit_command

        Returns:
            Status (pending, processing, completed, failed), produced version and error
        """
        try:
            operation = editor.get_operation_status(operation_id)
        except ChatVideoEditorError as e:
            return {"status": "error", "error": str(e)}
        return {"status": "success", "operation": operation.to_summary()}

    async def list_media_versions(media_id: str) -> Dict[str, Any]:
        """List every version of a video, oldest first.

        Args:
            media_id: Video to inspect
        """
        versions = editor.version_history(media_id)
        if not versions:
            return {"status": "error", "error": f"Media not found: {media_id}"}
        return {
            "status": "success",
            "versions": [
                {
                    "version_id": v.id,
                    "parent_id": v.parent_id,
                    "action": v.action.value if v.action else "original",
                    "artifact_path": v.artifact_path,
                }
                for v in versions
            ],
        }

    return [
        FunctionTool(process_edit_command),
        FunctionTool(check_operation_status),
        FunctionTool(list_media_versions),
    ]
