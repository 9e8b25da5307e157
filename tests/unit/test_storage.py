"""Unit tests for storage layer."""

import re
from io import BytesIO
from pathlib import Path

import pytest
import pytest_asyncio

from chat_video_editor.config import Settings
from chat_video_editor.models.intent import ActionKind
from chat_video_editor.models.operation import Operation, OperationStatus
from chat_video_editor.models.version import Version
from chat_video_editor.storage import (
    get_repositories, InMemoryOperationRepository, InMemoryVersionRepository,
    JsonOperationRepository, JsonVersionRepository, FilesystemMediaStorage
)
from chat_video_editor.storage.interface import StorageError
from chat_video_editor.storage.utils import build_artifact_name, sanitize_filename, validate_file_path


@pytest.fixture
def sample_video():
    """Create a sample video file content."""
    # MP4 header (simplified)
    return b'\x00\x00\x00\x18ftypmp42' + b'\x00' * 1000


@pytest_asyncio.fixture
async def media_storage(tmp_path):
    """Create a filesystem media storage instance."""
    return FilesystemMediaStorage(str(tmp_path / "store"))


def make_operation(media_id="media-1"):
    return Operation(media_id=media_id, action=ActionKind.TRIM, parameters={"duration": 5})


class TestRepositoryFactory:

    def test_memory_by_default(self, test_settings):
        operations, versions = get_repositories(test_settings)
        assert isinstance(operations, InMemoryOperationRepository)
        assert isinstance(versions, InMemoryVersionRepository)

    def test_json_when_persisting(self, tmp_path):
        settings = Settings(persist_state=True, storage_path=str(tmp_path))
        operations, versions = get_repositories(settings)
        assert isinstance(operations, JsonOperationRepository)
        assert isinstance(versions, JsonVersionRepository)


class TestOperationRepositories:
    """Both implementations store copies and replace by id."""

    @pytest.fixture(params=["memory", "json"])
    def repository(self, request, tmp_path):
        if request.param == "memory":
            return InMemoryOperationRepository()
        return JsonOperationRepository(str(tmp_path))

    def test_save_and_get(self, repository):
        operation = make_operation()
        repository.save(operation)
        assert repository.get(operation.id) == operation

    def test_save_replaces(self, repository):
        operation = make_operation()
        repository.save(operation)
        repository.save(operation.model_copy(update={"status": OperationStatus.PROCESSING}))
        assert repository.get(operation.id).status == OperationStatus.PROCESSING
        assert len(repository.list_all()) == 1

    def test_missing(self, repository):
        assert repository.get("nope") is None

    def test_stored_copy_isolated(self, repository):
        operation = make_operation()
        repository.save(operation)
        operation.parameters["duration"] = 99
        assert repository.get(operation.id).parameters["duration"] == 5

    def test_json_rejects_path_ids(self, tmp_path):
        repository = JsonOperationRepository(str(tmp_path))
        assert repository.get("../escape") is None
        with pytest.raises(StorageError):
            repository.save(Operation(id="../escape", media_id="m", action=ActionKind.TRIM))

    def test_json_survives_reload(self, tmp_path):
        operation = make_operation()
        JsonOperationRepository(str(tmp_path)).save(operation)
        reloaded = JsonOperationRepository(str(tmp_path))
        assert reloaded.get(operation.id) == operation


class TestVersionRepositories:

    @pytest.fixture(params=["memory", "json"])
    def repository(self, request, tmp_path):
        if request.param == "memory":
            return InMemoryVersionRepository()
        return JsonVersionRepository(str(tmp_path))

    def test_append_order(self, repository):
        first = Version(media_id="m", artifact_path="/a.mp4")
        second = Version(media_id="m", parent_id=first.id, artifact_path="/b.mp4")
        repository.append(first)
        repository.append(second)
        assert [v.id for v in repository.list_all()] == [first.id, second.id]

    def test_duplicate_rejected(self, repository):
        version = Version(media_id="m", artifact_path="/a.mp4")
        repository.append(version)
        with pytest.raises(StorageError):
            repository.append(version)

    def test_no_update_or_delete(self, repository):
        assert not hasattr(repository, "update")
        assert not hasattr(repository, "delete")

    def test_json_log_reloads(self, tmp_path):
        version = Version(media_id="m", artifact_path="/a.mp4", action=None)
        JsonVersionRepository(str(tmp_path)).append(version)
        reloaded = JsonVersionRepository(str(tmp_path))
        assert reloaded.get(version.id) == version

    def test_json_corrupt_log(self, tmp_path):
        (tmp_path / "versions.jsonl").write_text("{not json}\n")
        with pytest.raises(StorageError, match="line 1"):
            JsonVersionRepository(str(tmp_path))


class TestFilesystemMediaStorage:
    """Test filesystem storage for uploads."""

    @pytest.mark.asyncio
    async def test_upload(self, media_storage, sample_video):
        path = await media_storage.upload("media/my clip.mp4", BytesIO(sample_video))
        assert path == "media/my_clip.mp4"
        assert await media_storage.exists(path)
        assert Path(media_storage.resolve(path)).read_bytes() == sample_video

    @pytest.mark.asyncio
    async def test_upload_rejects_type(self, media_storage):
        with pytest.raises(StorageError, match="not allowed"):
            await media_storage.upload("notes.txt", BytesIO(b"hello"))

    @pytest.mark.asyncio
    async def test_upload_rejects_empty(self, media_storage):
        with pytest.raises(StorageError, match="size"):
            await media_storage.upload("empty.mp4", BytesIO(b""))

    @pytest.mark.asyncio
    async def test_path_traversal(self, media_storage, sample_video):
        with pytest.raises(StorageError):
            await media_storage.upload("../outside.mp4", BytesIO(sample_video))
        assert not await media_storage.exists("../outside.mp4")

    @pytest.mark.asyncio
    async def test_import_file(self, media_storage, source_video):
        path = await media_storage.import_file(source_video, "media-1")
        assert path == "media/media-1/holiday_clip.mp4"
        assert await media_storage.exists(path)

    @pytest.mark.asyncio
    async def test_import_missing(self, media_storage, tmp_path):
        with pytest.raises(FileNotFoundError):
            await media_storage.import_file(str(tmp_path / "gone.mp4"), "media-1")


class TestStorageUtils:

    def test_build_artifact_name(self):
        name = build_artifact_name("/videos/My Trip!.mov", "crop")
        assert re.fullmatch(r"My_Trip__crop_[0-9a-f]{12}\.mov", name)

    def test_build_artifact_name_extension(self):
        assert build_artifact_name("clip.mp4", "export", "webm").endswith(".webm")
        assert build_artifact_name("clip", "trim").endswith(".mp4")

    @pytest.mark.parametrize("filename,expected", [
        ("holiday clip.mp4", "holiday_clip.mp4"),
        ("clip..v2.mp4", "clip_v2.mp4"),
        ("", "unnamed"),
    ])
    def test_sanitize_filename(self, filename, expected):
        assert sanitize_filename(filename) == expected

    @pytest.mark.parametrize("path,ok", [
        ("media/clip.mp4", True),
        ("../clip.mp4", False),
        ("/etc/passwd", False),
        ("~/clip.mp4", False),
    ])
    def test_validate_file_path(self, path, ok):
        assert validate_file_path(path) is ok
