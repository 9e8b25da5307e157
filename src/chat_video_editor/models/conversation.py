"""
Conversation data models.

Sessions keep an append-only list of turns. EditContext is the read-only view
of a session and its selected media that the interpreter and composer receive.
"""

from datetime import datetime
from enum import Enum
from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field
import uuid

from .intent import Intent


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ConversationTurn(BaseModel):
    """A single message in a session."""
    role: Role = Field(..., description="Who spoke")
    content: str = Field(..., description="Message text")
    intent_ref: Optional[Intent] = Field(None, description="Intent resolved for this turn")
    operation_ref: Optional[str] = Field(None, description="Operation started by this turn")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="When the turn was recorded")

    class Config:
        frozen = True


class ConversationSession(BaseModel):
    """Append-only turn history for one session."""
    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Session identifier")
    turns: List[ConversationTurn] = Field(default_factory=list, description="Turns in order")

    def append(self, turn: ConversationTurn) -> None:
        self.turns.append(turn)

    def add_user_message(self, content: str) -> ConversationTurn:
        turn = ConversationTurn(role=Role.USER, content=content)
        self.append(turn)
        return turn

    def add_assistant_message(
        self,
        content: str,
        intent: Optional[Intent] = None,
        operation_id: Optional[str] = None
    ) -> ConversationTurn:
        turn = ConversationTurn(
            role=Role.ASSISTANT,
            content=content,
            intent_ref=intent,
            operation_ref=operation_id
        )
        self.append(turn)
        return turn

    def recent(self, limit: int) -> List[ConversationTurn]:
        """Most recent turns, oldest first."""
        if limit <= 0:
            return []
        return list(self.turns[-limit:])


class EditContext(BaseModel):
    """What the editor knows about the request besides the message."""
    session_id: Optional[str] = Field(None, description="Conversation session")
    user_id: Optional[str] = Field(None, description="Requesting user")
    media_id: Optional[str] = Field(None, description="Currently selected media")
    version_id: Optional[str] = Field(None, description="Explicit version to edit")
    title: Optional[str] = Field(None, description="Media title")
    duration: Optional[float] = Field(None, ge=0, description="Media duration in seconds")
    width: Optional[int] = Field(None, gt=0, description="Frame width")
    height: Optional[int] = Field(None, gt=0, description="Frame height")
    has_audio: Optional[bool] = Field(None, description="Whether the media has sound")
    recent_turns: List[ConversationTurn] = Field(default_factory=list, description="Recent conversation")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Additional caller context")

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Compact dictionary for embedding in prompts."""
        data = {
            "media_id": self.media_id,
            "title": self.title,
            "duration": self.duration,
            "resolution": f"{self.width}x{self.height}" if self.width and self.height else None,
            "has_audio": self.has_audio,
        }
        data = {k: v for k, v in data.items() if v is not None}
        if self.recent_turns:
            data["recent_messages"] = [
                {"role": turn.role.value, "content": turn.content[:200]}
                for turn in self.recent_turns
            ]
        if self.extra:
            data["extra"] = self.extra
        return data
