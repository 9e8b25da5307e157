"""Chat editor: the entry points that tie the pipeline together."""

import logging
from typing import Any, Dict, List, Optional, Union

from ..config import Settings, settings as default_settings
from ..exceptions import TransformationError, VersionNotFoundError
from ..models.conversation import ConversationSession, EditContext
from ..models.intent import ActionKind, Intent
from ..models.operation import MediaRef, Operation
from ..models.responses import CommandResponse, DispatchResult
from ..models.version import Version
from ..storage import get_repositories
from ..storage.filesystem import FilesystemMediaStorage
from ..tools.language_model import GeminiConnector, LanguageModelConnector
from ..tools.media_toolchain import MoviePyToolchain
from ..tools.transformation_engine import MediaTransformationEngine
from ..tracking.status_tracker import OperationStatusTracker
from ..tracking.version_ledger import VersionLedger
from .command_interpreter import CommandInterpreter
from .operation_dispatcher import OperationDispatcher
from .response_composer import ResponseComposer


logger = logging.getLogger(__name__)


class ChatEditor:
    """Conversational video editor.

    ``process_command`` is the chat entry point; ``execute_operation`` and
    ``get_operation_status`` are the programmatic ones. Collaborators are built
    once and passed in, so tests can swap the language model and toolchain.
    """

    def __init__(
        self,
        connector: LanguageModelConnector,
        engine: MediaTransformationEngine,
        tracker: Optional[OperationStatusTracker] = None,
        ledger: Optional[VersionLedger] = None,
        media_storage: Optional[FilesystemMediaStorage] = None,
        settings: Optional[Settings] = None
    ):
        self.settings = settings or default_settings
        self.engine = engine
        self.tracker = tracker or OperationStatusTracker()
        self.ledger = ledger or VersionLedger()
        self.media_storage = media_storage

        self.interpreter = CommandInterpreter(connector, self.settings)
        self.composer = ResponseComposer(connector, self.settings)
        self.dispatcher = OperationDispatcher(engine, self.tracker, self.ledger)

        self.sessions: Dict[str, ConversationSession] = {}
        self.media_metadata: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "ChatEditor":
        """Wire the Gemini connector, MoviePy toolchain and repositories."""
        settings = settings or default_settings
        connector = GeminiConnector.from_settings(settings)
        toolchain = MoviePyToolchain(
            video_codec=settings.default_video_codec,
            audio_codec=settings.default_audio_codec,
        )
        engine = MediaTransformationEngine(toolchain, settings.output_dir, settings.toolchain_timeout)
        operation_repository, version_repository = get_repositories(settings)
        return cls(
            connector=connector,
            engine=engine,
            tracker=OperationStatusTracker(operation_repository),
            ledger=VersionLedger(version_repository),
            media_storage=FilesystemMediaStorage(settings.storage_path),
            settings=settings,
        )

    # Sessions and context

    def session(self, session_id: Optional[str] = None) -> ConversationSession:
        """Get or create a conversation session."""
        if session_id and session_id in self.sessions:
            return self.sessions[session_id]
        session = ConversationSession(session_id=session_id) if session_id else ConversationSession()
        self.sessions[session.session_id] = session
        return session

    def _build_context(self, context: EditContext, session: ConversationSession) -> EditContext:
        updates: Dict[str, Any] = {
            "session_id": session.session_id,
            "recent_turns": session.recent(self.settings.max_context_turns),
        }
        metadata = self.media_metadata.get(context.media_id) if context.media_id else None
        if metadata:
            for field in ("duration", "width", "height", "has_audio"):
                if getattr(context, field) is None and metadata.get(field) is not None:
                    updates[field] = metadata[field]
        return context.model_copy(update=updates)

    # Facade

    async def process_command(self, message: str, context: Optional[EditContext] = None) -> CommandResponse:
        """Handle one chat message end to end and always return a reply."""
        context = context or EditContext()
        session = self.session(context.session_id)
        context = self._build_context(context, session)
        session.add_user_message(message)

        intent = await self.interpreter.resolve_intent(message, context)

        dispatch_result: Optional[DispatchResult] = None
        outcome: Optional[Dict[str, Any]] = None

        if intent.action == ActionKind.ANALYZE:
            outcome = await self._analyze(context)
            if outcome.get("success"):
                context = context.model_copy(
                    update={"extra": {**context.extra, "analysis": outcome["metadata"]}}
                )
        elif intent.action != ActionKind.CHAT:
            dispatch_result = await self._dispatch(intent, context)
            outcome = self._outcome(intent, dispatch_result)

        composed = await self.composer.compose(intent, context, outcome)

        operation = dispatch_result.operation if dispatch_result else None
        session.add_assistant_message(
            composed.message, intent=intent, operation_id=operation.id if operation else None
        )

        return CommandResponse(
            reply=composed.message,
            actions=composed.actions,
            tips=composed.tips,
            operation_ref=operation.id if operation else None,
            operation=operation,
            intent=intent,
            dispatch=dispatch_result,
            fallback=intent.fallback or composed.fallback,
        )

    async def _dispatch(self, intent: Intent, context: EditContext) -> DispatchResult:
        media_ref = None
        if context.media_id:
            media_ref = MediaRef(media_id=context.media_id, version_id=context.version_id)

        if intent.is_edit and media_ref is not None and intent.confidence < self.settings.min_dispatch_confidence:
            logger.info(
                f"Not dispatching {intent.action.value}: confidence {intent.confidence:.2f} "
                f"below {self.settings.min_dispatch_confidence}"
            )
            return DispatchResult(
                success=False,
                message="I'm not sure what you want to do. Can you be more specific?",
                error_type="low_confidence",
            )
        return await self.dispatcher.dispatch(intent, media_ref)

    @staticmethod
    def _outcome(intent: Intent, result: DispatchResult) -> Dict[str, Any]:
        outcome = {
            "success": result.success,
            "action": intent.action.value,
            "message": result.message,
        }
        if result.error_type:
            outcome["error_type"] = result.error_type
        if result.errors:
            outcome["errors"] = result.errors
        if result.operation:
            outcome["operation_id"] = result.operation.id
            outcome["status"] = result.operation.status.value
        return outcome

    async def _analyze(self, context: EditContext) -> Dict[str, Any]:
        if not context.media_id:
            return {"success": False, "message": "Select a video to analyze"}
        try:
            version = self.ledger.get(context.version_id) if context.version_id else self.ledger.head(context.media_id)
            metadata = await self.engine.probe(version.artifact_path)
        except (VersionNotFoundError, TransformationError) as e:
            logger.warning(f"Analysis of {context.media_id} failed: {e}")
            return {"success": False, "message": str(e)}

        self.media_metadata[context.media_id] = metadata
        return {"success": True, "version_id": version.id, "metadata": metadata}

    def get_operation_status(self, operation_id: str) -> Operation:
        """Snapshot of an operation.

        Raises:
            OperationNotFoundError: If the id is unknown
        """
        return self.tracker.get(operation_id)

    async def execute_operation(
        self,
        action: Union[ActionKind, str],
        parameters: Optional[Dict[str, Any]],
        media_ref: Union[MediaRef, str]
    ) -> Operation:
        """Start an operation directly, bypassing intent resolution.

        Returns immediately with the operation in PROCESSING.

        Raises:
            UnsupportedActionError, ValidationError, VersionNotFoundError
        """
        if isinstance(media_ref, str):
            media_ref = MediaRef(media_id=media_ref)
        return await self.dispatcher.submit(action, parameters, media_ref)

    async def wait_for_operation(self, operation_id: str) -> Operation:
        return await self.dispatcher.wait_for(operation_id)

    async def drain(self) -> None:
        await self.dispatcher.drain()

    # Media and versions

    async def register_media(
        self,
        media_id: str,
        path: str,
        created_by: Optional[str] = None,
        copy_to_storage: bool = False,
        probe: bool = False
    ) -> Version:
        """Record an uploaded file as the original version of ``media_id``.

        Args:
            media_id: Identifier for the new lineage
            path: Local path of the uploaded file
            created_by: Uploading user
            copy_to_storage: Copy the file into media storage first
            probe: Read duration/size now so keyword fallbacks can use them
        """
        if self.ledger.has_media(media_id):
            raise ValueError(f"Media already registered: {media_id}")

        artifact_path = path
        if copy_to_storage:
            if self.media_storage is None:
                raise ValueError("No media storage configured")
            storage_path = await self.media_storage.import_file(path, media_id)
            artifact_path = self.media_storage.resolve(storage_path)

        if probe:
            self.media_metadata[media_id] = await self.engine.probe(artifact_path)

        version = self.ledger.register_original(media_id, artifact_path, created_by)
        logger.info(f"Registered media {media_id} as version {version.id}")
        return version

    def get_version(self, version_id: str) -> Version:
        return self.ledger.get(version_id)

    def version_history(self, media_id: str) -> List[Version]:
        """All versions of a media item in append order."""
        return self.ledger.versions_for(media_id)

    def operations_for(self, media_id: str) -> List[Operation]:
        return self.tracker.list_for_media(media_id)
