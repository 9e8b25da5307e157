"""Reply and result models returned by the editor components."""

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, validator

from .intent import Intent
from .operation import Operation


class SuggestedAction(BaseModel):
    """A follow-up the user can trigger with one click."""
    label: str = Field(..., description="Button label")
    command: str = Field(..., description="Command text sent back when triggered")
    kind: Literal["primary", "secondary"] = Field("secondary", description="Display emphasis")

    @validator('kind', pre=True)
    def normalize_kind(cls, v):
        if v not in ("primary", "secondary"):
            return "secondary"
        return v


class ComposedResponse(BaseModel):
    """Conversational reply produced by the response composer."""
    message: str = Field(..., description="Reply text")
    actions: List[SuggestedAction] = Field(default_factory=list, description="Suggested actions")
    tips: List[str] = Field(default_factory=list, description="Helpful tips")
    fallback: bool = Field(False, description="Reply was produced without the language model")


class DispatchResult(BaseModel):
    """Structured outcome of handing an intent to the dispatcher."""
    success: bool = Field(..., description="Whether an operation was started")
    message: str = Field("", description="Human-readable outcome")
    operation: Optional[Operation] = Field(None, description="Started operation")
    error_type: Optional[Literal["unsupported", "validation", "not_found", "no_media", "low_confidence"]] = Field(
        None, description="Why nothing was started"
    )
    errors: List[str] = Field(default_factory=list, description="Validation problems")


class CommandResponse(BaseModel):
    """Everything process_command returns to its caller."""
    reply: str = Field(..., description="Assistant reply")
    actions: List[SuggestedAction] = Field(default_factory=list, description="Suggested actions")
    tips: List[str] = Field(default_factory=list, description="Helpful tips")
    operation_ref: Optional[str] = Field(None, description="Operation started by this command")
    operation: Optional[Operation] = Field(None, description="Operation snapshot at dispatch time")
    intent: Intent = Field(..., description="Resolved intent")
    dispatch: Optional[DispatchResult] = Field(None, description="Dispatch outcome, if dispatch was attempted")
    fallback: bool = Field(False, description="Degraded mode was used somewhere in the pipeline")
