"""Media transformation engine: the only caller of the media toolchain."""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from ..exceptions import ToolchainError, TransformationError, UnsupportedActionError
from ..models.intent import ActionKind, EDIT_ACTIONS
from ..storage.utils import build_artifact_name
from .media_toolchain import MediaToolchain


logger = logging.getLogger(__name__)


class MediaTransformationEngine:
    """Runs one transformation per call and returns a new artifact path.

    Every output gets a fresh name, so concurrent edits of the same source
    never overwrite each other. All failures surface as TransformationError.
    """

    def __init__(self, toolchain: MediaToolchain, output_dir: str, timeout: float = 600.0):
        self.toolchain = toolchain
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.timeout = timeout

    def _output_path(self, source: str, action: ActionKind, extension: Optional[str] = None) -> str:
        return str(self.output_dir / build_artifact_name(source, action.value, extension))

    async def _run(
        self,
        action: ActionKind,
        source: str,
        parameters: Dict[str, Any],
        extension: Optional[str] = None
    ) -> Dict[str, Any]:
        output_path = self._output_path(source, action, extension)
        logger.info(f"Running {action.value} on {source} -> {output_path}")

        try:
            result = await asyncio.wait_for(
                asyncio.get_event_loop().run_in_executor(
                    None,
                    lambda: self.toolchain.run(action.value, source, dict(parameters), output_path)
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"{action.value} timed out after {self.timeout}s")
            raise TransformationError(
                f"{action.value} did not finish within {self.timeout:.0f}s", action.value
            )
        except ToolchainError as e:
            logger.error(f"{action.value} failed: {e}")
            raise TransformationError(str(e), action.value) from e
        except Exception as e:
            logger.error(f"Unexpected error during {action.value}: {e}")
            raise TransformationError(f"{action.value} failed: {e}", action.value) from e

        return {
            "output_path": result.get("output_path", output_path),
            "metadata": result.get("metadata", {}),
        }

    async def trim(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(ActionKind.TRIM, source, parameters)

    async def crop(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(ActionKind.CROP, source, parameters)

    async def filter(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(ActionKind.FILTER, source, parameters)

    async def color(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(ActionKind.COLOR, source, parameters)

    async def audio(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(ActionKind.AUDIO, source, parameters)

    async def text(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(ActionKind.TEXT, source, parameters)

    async def transition(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(ActionKind.TRANSITION, source, parameters)

    async def background(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        return await self._run(ActionKind.BACKGROUND, source, parameters)

    async def export(self, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        """Re-encode; the output extension follows the requested format."""
        extension = f".{parameters.get('format', 'mp4')}"
        return await self._run(ActionKind.EXPORT, source, parameters, extension)

    async def execute(self, action: ActionKind, source: str, parameters: Dict[str, Any]) -> Dict[str, Any]:
        """Run the handler registered for ``action``.

        Raises:
            UnsupportedActionError: If the action has no handler
            TransformationError: If the transformation fails
        """
        handler_name = ACTION_HANDLERS.get(action)
        if handler_name is None:
            raise UnsupportedActionError(action.value)
        return await getattr(self, handler_name)(source, parameters)

    async def probe(self, source: str) -> Dict[str, Any]:
        """Media metadata for analysis replies."""
        try:
            return await asyncio.get_event_loop().run_in_executor(
                None, lambda: self.toolchain.probe(source)
            )
        except ToolchainError as e:
            logger.error(f"Probe failed for {source}: {e}")
            raise TransformationError(str(e), ActionKind.ANALYZE.value) from e


ACTION_HANDLERS: Dict[ActionKind, str] = {
    ActionKind.TRIM: "trim",
    ActionKind.CROP: "crop",
    ActionKind.FILTER: "filter",
    ActionKind.COLOR: "color",
    ActionKind.AUDIO: "audio",
    ActionKind.TEXT: "text",
    ActionKind.TRANSITION: "transition",
    ActionKind.BACKGROUND: "background",
    ActionKind.EXPORT: "export",
}

_missing = EDIT_ACTIONS - set(ACTION_HANDLERS)
if _missing:
    raise RuntimeError(f"No transformation handler for: {sorted(a.value for a in _missing)}")
