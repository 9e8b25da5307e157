"""
Operation dispatcher.

Turns an edit intent into a tracked Operation, runs the transformation as a
background task and commits the result to the version ledger.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Union

from ..exceptions import (
    ChatVideoEditorError, TransformationError, UnsupportedActionError,
    ValidationError, VersionNotFoundError
)
from ..models.intent import ActionKind, Intent, EDIT_ACTIONS
from ..models.operation import MediaRef, Operation
from ..models.parameters import validate_parameters
from ..models.responses import DispatchResult
from ..models.version import Version
from ..tools.transformation_engine import MediaTransformationEngine
from ..tracking.status_tracker import OperationStatusTracker
from ..tracking.version_ledger import VersionLedger
from ..utils.simple_logger import log_start, log_update, log_complete


logger = logging.getLogger(__name__)


class OperationDispatcher:
    """Starts operations and returns without waiting for them."""

    def __init__(
        self,
        engine: MediaTransformationEngine,
        tracker: OperationStatusTracker,
        ledger: VersionLedger
    ):
        self.engine = engine
        self.tracker = tracker
        self.ledger = ledger
        self._tasks: Dict[str, asyncio.Task] = {}

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def dispatch(self, intent: Intent, media_ref: Optional[MediaRef]) -> DispatchResult:
        """Start the operation an intent asks for.

        User-level problems come back as an unsuccessful result rather than
        an exception.
        """
        if not intent.is_edit:
            return DispatchResult(
                success=False,
                message=UnsupportedActionError(intent.action.value).message,
                error_type="unsupported",
            )
        if media_ref is None:
            return DispatchResult(
                success=False,
                message="Select a video before asking for an edit",
                error_type="no_media",
            )

        try:
            operation = await self.submit(intent.action, intent.parameters, media_ref)
        except UnsupportedActionError as e:
            return DispatchResult(success=False, message=e.message, error_type="unsupported")
        except ValidationError as e:
            return DispatchResult(
                success=False, message=str(e), error_type="validation", errors=e.errors
            )
        except VersionNotFoundError as e:
            return DispatchResult(success=False, message=str(e), error_type="not_found")

        return DispatchResult(
            success=True,
            message=f"Started {operation.action.value}",
            operation=operation,
        )

    async def submit(
        self,
        action: Union[ActionKind, str],
        parameters: Optional[Dict[str, Any]],
        media_ref: MediaRef
    ) -> Operation:
        """Validate, create and start an operation; return it in PROCESSING.

        Raises:
            UnsupportedActionError: If the action is not an edit
            ValidationError: If the parameters are invalid
            VersionNotFoundError: If the media or source version is unknown
        """
        action = ActionKind.from_string(action)
        if action not in EDIT_ACTIONS:
            raise UnsupportedActionError(action.value)

        validated = validate_parameters(action, parameters)
        source = self._resolve_source(media_ref)

        operation = self.tracker.create(media_ref.media_id, action, validated, source.id)
        operation = self.tracker.mark_processing(operation.id)

        task = asyncio.create_task(self._run(operation, source))
        self._tasks[operation.id] = task
        task.add_done_callback(lambda _, op_id=operation.id: self._tasks.pop(op_id, None))

        logger.info(f"Dispatched {action.value} operation {operation.id} on version {source.id}")
        return operation

    def _resolve_source(self, media_ref: MediaRef) -> Version:
        if media_ref.version_id:
            source = self.ledger.get(media_ref.version_id)
            if source.media_id != media_ref.media_id:
                raise VersionNotFoundError(
                    f"Version {media_ref.version_id} does not belong to media {media_ref.media_id}"
                )
            return source
        return self.ledger.head(media_ref.media_id)

    async def _run(self, operation: Operation, source: Version) -> None:
        log_start(logger, f"{operation.action.value} operation {operation.id}")
        try:
            result = await self.engine.execute(operation.action, source.artifact_path, operation.parameters)
        except TransformationError as e:
            logger.error(f"Operation {operation.id} failed: {e.message}")
            self._fail(operation.id, e.message)
            return
        except Exception as e:
            logger.error(f"Operation {operation.id} failed unexpectedly: {e}")
            self._fail(operation.id, f"Unexpected error: {e}")
            return

        log_update(logger, f"Recording output {result['output_path']}")
        self._commit(operation, source, result)

    def _commit(self, operation: Operation, source: Version, result: Dict[str, Any]) -> None:
        """Complete the operation and append its version as one step.

        The operation is completed first and the version appended last, so a
        version is never visible for an operation that did not complete.
        """
        with self.ledger.lock, self.tracker.lock:
            try:
                version = self.ledger.build_edit(
                    parent_id=source.id,
                    operation_id=operation.id,
                    action=operation.action,
                    parameters=operation.parameters,
                    artifact_path=result["output_path"],
                    created_by=source.created_by,
                )
            except ChatVideoEditorError as e:
                logger.error(f"Could not record version for operation {operation.id}: {e}")
                self._fail(operation.id, f"Could not record version: {e}")
                return

            snapshot = self.tracker.get(operation.id)
            try:
                self.tracker.mark_completed(operation.id, {
                    "output_path": result["output_path"],
                    "version_id": version.id,
                    "metadata": result.get("metadata", {}),
                })
            except Exception as e:
                logger.error(f"Could not complete operation {operation.id}: {e}")
                self._fail(operation.id, f"Could not complete operation: {e}")
                return

            try:
                self.ledger.append(version)
            except Exception as e:
                logger.error(f"Could not record version for operation {operation.id}: {e}")
                try:
                    self.tracker.restore(snapshot)
                except Exception as restore_error:
                    logger.error(f"Could not restore operation {operation.id}: {restore_error}")
                    return
                self._fail(operation.id, f"Could not record version: {e}")
                return

        log_complete(logger, f"{operation.action.value} operation {operation.id} -> version {version.id}")

    def _fail(self, operation_id: str, error: str) -> None:
        try:
            self.tracker.mark_failed(operation_id, error)
        except Exception as e:
            logger.error(f"Could not mark operation {operation_id} failed: {e}")

    async def wait_for(self, operation_id: str) -> Operation:
        """Wait for an in-flight operation and return its final snapshot."""
        task = self._tasks.get(operation_id)
        if task is not None:
            await task
        return self.tracker.get(operation_id)

    async def drain(self) -> None:
        """Wait until no operations are in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)
