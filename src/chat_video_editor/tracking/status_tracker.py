"""Operation status tracker: the lifecycle state machine for operations."""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidTransition, OperationNotFoundError
from ..models.intent import ActionKind
from ..models.operation import Operation, OperationStatus
from ..storage.interface import OperationRepository
from ..storage.memory import InMemoryOperationRepository


logger = logging.getLogger(__name__)


# pending -> processing -> completed | failed; pending may fail before the engine starts
ALLOWED_TRANSITIONS = {
    OperationStatus.PENDING: {OperationStatus.PROCESSING, OperationStatus.FAILED},
    OperationStatus.PROCESSING: {OperationStatus.COMPLETED, OperationStatus.FAILED},
    OperationStatus.COMPLETED: set(),
    OperationStatus.FAILED: set(),
}


class OperationStatusTracker:
    """Creates operations and moves them through their lifecycle.

    Every read returns a copy, so a terminal operation always reads back
    identically.
    """

    def __init__(self, repository: Optional[OperationRepository] = None):
        self.repository = repository or InMemoryOperationRepository()
        self.lock = threading.RLock()

    def create(
        self,
        media_id: str,
        action: ActionKind,
        parameters: Dict[str, Any],
        source_version_id: Optional[str] = None
    ) -> Operation:
        """Create a new operation in PENDING."""
        operation = Operation(
            media_id=media_id,
            action=action,
            parameters=dict(parameters),
            source_version_id=source_version_id,
        )
        with self.lock:
            self.repository.save(operation)
        logger.info(f"Created operation {operation.id} ({action.value}) for media {media_id}")
        return operation.model_copy(deep=True)

    def get(self, operation_id: str) -> Operation:
        """Return a snapshot of an operation.

        Raises:
            OperationNotFoundError: If no such operation exists
        """
        operation = self.repository.get(operation_id)
        if operation is None:
            raise OperationNotFoundError(f"Operation not found: {operation_id}")
        return operation

    def list_for_media(self, media_id: str) -> List[Operation]:
        """All operations for a media item in creation order."""
        return [op for op in self.repository.list_all() if op.media_id == media_id]

    def _transition(self, operation_id: str, target: OperationStatus, **updates: Any) -> Operation:
        with self.lock:
            operation = self.get(operation_id)
            if target not in ALLOWED_TRANSITIONS[operation.status]:
                raise InvalidTransition(operation_id, operation.status.value, target.value)
            updated = operation.model_copy(update={"status": target, **updates}, deep=True)
            self.repository.save(updated)
        logger.debug(f"Operation {operation_id}: {operation.status.value} -> {target.value}")
        return updated.model_copy(deep=True)

    def restore(self, snapshot: Operation) -> None:
        """Put back a snapshot taken earlier in the same commit step.

        Only used to undo a transition whose paired ledger write failed.
        """
        with self.lock:
            self.get(snapshot.id)
            self.repository.save(snapshot)
        logger.debug(f"Operation {snapshot.id} restored to {snapshot.status.value}")

    def mark_processing(self, operation_id: str) -> Operation:
        """PENDING -> PROCESSING, stamping started_at."""
        return self._transition(
            operation_id, OperationStatus.PROCESSING, started_at=datetime.utcnow()
        )

    def mark_completed(self, operation_id: str, result: Dict[str, Any]) -> Operation:
        """PROCESSING -> COMPLETED with the transformation result."""
        return self._transition(
            operation_id,
            OperationStatus.COMPLETED,
            result=dict(result),
            completed_at=datetime.utcnow(),
        )

    def mark_failed(self, operation_id: str, error: str) -> Operation:
        """PENDING/PROCESSING -> FAILED with an error message."""
        return self._transition(
            operation_id,
            OperationStatus.FAILED,
            error=error,
            completed_at=datetime.utcnow(),
        )
