"""Version data model: an immutable artifact in the edit lineage."""

from datetime import datetime
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field
import uuid

from .intent import ActionKind


class Version(BaseModel):
    """Immutable record pairing a produced artifact with the operation that made it.

    Original uploads are roots: they have no parent, action or operation.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique version ID")
    media_id: str = Field(..., description="Media this version belongs to")
    parent_id: Optional[str] = Field(None, description="Version this one was derived from")
    produced_by_operation_id: Optional[str] = Field(None, description="Operation that produced the artifact")
    action: Optional[ActionKind] = Field(None, description="Transformation applied to the parent")
    parameters: Dict[str, Any] = Field(default_factory=dict, description="Transformation parameters")
    artifact_path: str = Field(..., description="Path to the artifact")
    created_at: datetime = Field(default_factory=datetime.utcnow, description="Creation time")
    created_by: Optional[str] = Field(None, description="User that requested the edit or upload")

    class Config:
        frozen = True

    @property
    def is_original(self) -> bool:
        return self.parent_id is None
