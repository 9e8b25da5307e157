"""
Operation data models.

An Operation is one tracked execution of a media transformation. Only the
status tracker changes it, and only along pending -> processing -> terminal.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field
import uuid

from .intent import ActionKind


class OperationStatus(str, Enum):
    """Lifecycle states of an operation."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OperationStatus.COMPLETED, OperationStatus.FAILED)


class MediaRef(BaseModel):
    """Reference to the artifact an edit should start from."""
    media_id: str = Field(..., description="Media (lineage root) identifier")
    version_id: Optional[str] = Field(None, description="Explicit source version; defaults to the current head")


class Operation(BaseModel):
    """One tracked media transformation."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique operation ID")
    media_id: str = Field(..., description="Media being edited")
    action: ActionKind = Field(..., description="Transformation to run")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Validated action parameters")
    status: OperationStatus = Field(OperationStatus.PENDING, description="Lifecycle state")
    source_version_id: Optional[str] = Field(None, description="Version the transformation reads from")

    created_at: datetime = Field(default_factory=datetime.utcnow, description="When the operation was created")
    started_at: Optional[datetime] = Field(None, description="When processing started")
    completed_at: Optional[datetime] = Field(None, description="When a terminal state was reached")

    result: Optional[Dict[str, Any]] = Field(None, description="Output path, version id and metadata")
    error: Optional[str] = Field(None, description="Failure message")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def version_id(self) -> Optional[str]:
        """Version produced by this operation, once completed."""
        if self.result:
            return self.result.get("version_id")
        return None

    def to_summary(self) -> Dict[str, Any]:
        """Create a summary view of the operation."""
        return {
            "operation_id": self.id,
            "media_id": self.media_id,
            "action": self.action.value,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "version_id": self.version_id,
            "error": self.error,
        }
