"""
Intent data models.

An Intent is the structured form of a free-text edit request. It is created
per request by the command interpreter and never persisted on its own.
"""

from enum import Enum
from typing import List, Dict, Any, FrozenSet
from pydantic import BaseModel, Field, validator


class ActionKind(str, Enum):
    """Closed set of actions a command can resolve to."""
    TRIM = "trim"
    CROP = "crop"
    FILTER = "filter"
    COLOR = "color"
    AUDIO = "audio"
    TEXT = "text"
    TRANSITION = "transition"
    BACKGROUND = "background"
    ANALYZE = "analyze"
    EXPORT = "export"
    CHAT = "chat"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, value: Any) -> "ActionKind":
        """Map a loosely formatted action name onto the enum.

        Anything that is not a known action becomes UNKNOWN.
        """
        if isinstance(value, ActionKind):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {
            "cut": cls.TRIM,
            "effect": cls.FILTER,
            "color_adjust": cls.COLOR,
            "colour": cls.COLOR,
            "audio_enhance": cls.AUDIO,
            "add_text": cls.TEXT,
            "add_transition": cls.TRANSITION,
        }
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            return cls.UNKNOWN


# Actions the transformation engine executes and that produce a new Version
EDIT_ACTIONS: FrozenSet[ActionKind] = frozenset(
    kind for kind in ActionKind
    if kind not in (ActionKind.CHAT, ActionKind.ANALYZE, ActionKind.UNKNOWN)
)


class Intent(BaseModel):
    """Structured representation of the edit a command requests."""
    action: ActionKind = Field(..., description="Resolved action")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Action parameters (camelCase keys)")
    confidence: float = Field(..., ge=0, le=1, description="Resolution confidence")
    explanation: str = Field("", description="What the user wants to do")
    suggested_actions: List[str] = Field(default_factory=list, description="Follow-up commands")
    fallback: bool = Field(False, description="Resolved by the keyword table instead of the model")

    @validator('suggested_actions', pre=True)
    def coerce_suggestions(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        if not isinstance(v, (list, tuple)):
            return []
        return [str(item) for item in v]

    @property
    def is_edit(self) -> bool:
        """True if the intent maps to a transformation."""
        return self.action in EDIT_ACTIONS

    @classmethod
    def ambiguous(cls) -> "Intent":
        """Intent returned when model output cannot be understood."""
        return cls(
            action=ActionKind.CHAT,
            parameters={},
            confidence=0.5,
            explanation="ambiguous request",
        )
