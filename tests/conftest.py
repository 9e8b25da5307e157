"""Shared fixtures."""

import pytest

from chat_video_editor.config import Settings
from chat_video_editor.tools.transformation_engine import MediaTransformationEngine
from chat_video_editor.tracking import OperationStatusTracker, VersionLedger
from chat_video_editor.utils.ai_output_logger import ai_logger
from tests.fakes import FakeToolchain


@pytest.fixture(autouse=True)
def reset_ai_logger():
    """Keep the AI log singleton isolated between tests."""
    ai_logger.reset()
    yield
    ai_logger.reset()


@pytest.fixture
def test_settings(tmp_path):
    """Settings that never touch real credentials or the working directory."""
    return Settings(
        gemini_api_key=None,
        google_genai_use_vertexai=False,
        storage_path=str(tmp_path / "data"),
        output_dir=str(tmp_path / "outputs"),
        toolchain_timeout=5.0,
        llm_timeout=1.0,
    )


@pytest.fixture
def source_video(tmp_path):
    """A placeholder source file."""
    path = tmp_path / "holiday clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 1000)
    return str(path)


@pytest.fixture
def toolchain():
    return FakeToolchain()


@pytest.fixture
def engine(toolchain, tmp_path):
    return MediaTransformationEngine(toolchain, str(tmp_path / "outputs"), timeout=5.0)


@pytest.fixture
def tracker():
    return OperationStatusTracker()


@pytest.fixture
def ledger():
    return VersionLedger()
