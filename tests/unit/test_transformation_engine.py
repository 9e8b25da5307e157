"""Tests for the media transformation engine."""

import re
from pathlib import Path

import pytest

from chat_video_editor.exceptions import TransformationError, UnsupportedActionError
from chat_video_editor.models.intent import ActionKind, EDIT_ACTIONS
from chat_video_editor.tools.transformation_engine import ACTION_HANDLERS, MediaTransformationEngine
from tests.fakes import FakeToolchain


class TestMediaTransformationEngine:
    """Test output naming and error wrapping."""

    def test_every_edit_action_has_handler(self):
        assert set(ACTION_HANDLERS) == set(EDIT_ACTIONS)

    @pytest.mark.asyncio
    async def test_output_named_after_source_and_action(self, engine, source_video):
        result = await engine.trim(source_video, {"startTime": 0, "duration": 10})
        name = Path(result["output_path"]).name
        assert re.fullmatch(r"holiday_clip_trim_[0-9a-f]{12}\.mp4", name)
        assert Path(result["output_path"]).parent == engine.output_dir
        assert result["metadata"]["operation"] == "trim"

    @pytest.mark.asyncio
    async def test_outputs_never_collide(self, engine, source_video):
        first = await engine.execute(ActionKind.FILTER, source_video, {"filterType": "blur"})
        second = await engine.execute(ActionKind.FILTER, source_video, {"filterType": "blur"})
        assert first["output_path"] != second["output_path"]

    @pytest.mark.asyncio
    async def test_export_extension_follows_format(self, engine, source_video):
        result = await engine.export(source_video, {"format": "webm", "quality": "low"})
        assert result["output_path"].endswith(".webm")

    @pytest.mark.asyncio
    async def test_parameters_reach_toolchain(self, engine, toolchain, source_video):
        await engine.execute(ActionKind.CROP, source_video, {"x": 0, "y": 0, "width": 640, "height": 360})
        operation_name, source, parameters, _ = toolchain.runs[0]
        assert operation_name == "crop"
        assert source == source_video
        assert parameters == {"x": 0, "y": 0, "width": 640, "height": 360}

    @pytest.mark.asyncio
    async def test_toolchain_error_wrapped(self, tmp_path, source_video):
        engine = MediaTransformationEngine(FakeToolchain(fail_on={"audio"}), str(tmp_path / "out"))
        with pytest.raises(TransformationError) as exc_info:
            await engine.audio(source_video, {"operation": "enhance"})
        assert exc_info.value.operation == "audio"
        assert "simulated encoder error" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_unexpected_error_wrapped(self, tmp_path, source_video):
        engine = MediaTransformationEngine(FakeToolchain(error=MemoryError("out of memory")), str(tmp_path / "out"))
        with pytest.raises(TransformationError) as exc_info:
            await engine.color(source_video, {"brightness": 0.1})
        assert "out of memory" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_timeout(self, tmp_path, source_video):
        engine = MediaTransformationEngine(FakeToolchain(delay=0.5), str(tmp_path / "out"), timeout=0.05)
        with pytest.raises(TransformationError) as exc_info:
            await engine.text(source_video, {"text": "Hello"})
        assert "did not finish" in exc_info.value.message

    @pytest.mark.asyncio
    @pytest.mark.parametrize("action", [ActionKind.CHAT, ActionKind.ANALYZE, ActionKind.UNKNOWN])
    async def test_unsupported_action(self, engine, source_video, action):
        with pytest.raises(UnsupportedActionError) as exc_info:
            await engine.execute(action, source_video, {})
        assert exc_info.value.message == "Operation not supported yet"

    @pytest.mark.asyncio
    async def test_probe(self, engine, source_video):
        metadata = await engine.probe(source_video)
        assert metadata["width"] == 1280
        assert metadata["has_audio"] is True

    @pytest.mark.asyncio
    async def test_probe_missing_source(self, engine, tmp_path):
        with pytest.raises(TransformationError) as exc_info:
            await engine.probe(str(tmp_path / "missing.mp4"))
        assert exc_info.value.operation == "analyze"
