"""Filesystem storage implementations."""

import asyncio
import json
import os
import shutil
import threading
from pathlib import Path
from typing import BinaryIO, Dict, List, Optional
import aiofiles
import aiofiles.os

from .interface import (
    OperationRepository, VersionRepository, MediaStorageInterface, StorageError
)
from .utils import validate_file_path, sanitize_filename, validate_file_size, is_media_file
from ..models.operation import Operation
from ..models.version import Version


def _atomic_write(path: Path, text: str) -> None:
    """Write to a temporary file first, then move into place."""
    temp_path = path.with_suffix(path.suffix + '.tmp')
    try:
        temp_path.write_text(text, encoding="utf-8")
        os.replace(temp_path, path)
    except OSError as e:
        if temp_path.exists():
            temp_path.unlink()
        raise StorageError(f"Failed to write {path.name}: {e}")


class JsonOperationRepository(OperationRepository):
    """One JSON document per operation under ``<base>/operations``."""

    def __init__(self, base_path: str):
        self.directory = Path(base_path).resolve() / "operations"
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, operation_id: str) -> Path:
        if not validate_file_path(operation_id) or "/" in operation_id or "\\" in operation_id:
            raise StorageError(f"Invalid operation id: {operation_id}")
        return self.directory / f"{operation_id}.json"

    def save(self, operation: Operation) -> None:
        with self._lock:
            _atomic_write(self._path(operation.id), operation.model_dump_json(indent=2))

    def get(self, operation_id: str) -> Optional[Operation]:
        try:
            path = self._path(operation_id)
        except StorageError:
            return None
        with self._lock:
            if not path.exists():
                return None
            try:
                return Operation.model_validate_json(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                raise StorageError(f"Failed to read operation {operation_id}: {e}")

    def list_all(self) -> List[Operation]:
        with self._lock:
            operations = []
            for path in self.directory.glob("*.json"):
                try:
                    operations.append(Operation.model_validate_json(path.read_text(encoding="utf-8")))
                except (OSError, ValueError) as e:
                    raise StorageError(f"Failed to read {path.name}: {e}")
        return sorted(operations, key=lambda op: op.created_at)


class JsonVersionRepository(VersionRepository):
    """Append-only JSON-lines log at ``<base>/versions.jsonl``."""

    def __init__(self, base_path: str):
        base = Path(base_path).resolve()
        base.mkdir(parents=True, exist_ok=True)
        self.log_path = base / "versions.jsonl"
        self._lock = threading.Lock()
        self._versions: List[Version] = []
        self._index: Dict[str, Version] = {}
        self._load()

    def _load(self) -> None:
        if not self.log_path.exists():
            return
        with open(self.log_path, "r", encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    version = Version.model_validate_json(line)
                except ValueError as e:
                    raise StorageError(f"Corrupt version log at line {line_number}: {e}")
                self._versions.append(version)
                self._index[version.id] = version

    def append(self, version: Version) -> None:
        with self._lock:
            if version.id in self._index:
                raise StorageError(f"Version already exists: {version.id}")
            try:
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(version.model_dump_json() + "\n")
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise StorageError(f"Failed to append version: {e}")
            stored = version.model_copy(deep=True)
            self._versions.append(stored)
            self._index[stored.id] = stored

    def get(self, version_id: str) -> Optional[Version]:
        with self._lock:
            version = self._index.get(version_id)
            return version.model_copy(deep=True) if version else None

    def list_all(self) -> List[Version]:
        with self._lock:
            return [v.model_copy(deep=True) for v in self._versions]


class FilesystemMediaStorage(MediaStorageInterface):
    """Filesystem-based storage for uploaded source media.

    Uploads live under ``<base>/media``; transformation outputs are written by
    the engine to its own output directory.
    """

    def __init__(self, base_path: str):
        """Initialize filesystem storage.

        Args:
            base_path: Base directory for all storage operations
        """
        self.base_path = Path(base_path).resolve()
        self._ensure_directories()

    def _ensure_directories(self):
        """Ensure required directory structure exists."""
        for directory in [self.base_path / "media", self.base_path / "temp"]:
            directory.mkdir(parents=True, exist_ok=True)

    def _get_absolute_path(self, storage_path: str) -> Path:
        """Convert storage path to absolute filesystem path.

        Raises:
            StorageError: If path is invalid
        """
        if not validate_file_path(storage_path):
            raise StorageError(f"Invalid storage path: {storage_path}")

        abs_path = self.base_path / storage_path

        try:
            abs_path.resolve().relative_to(self.base_path)
        except ValueError:
            raise StorageError(f"Path escapes storage directory: {storage_path}")

        return abs_path

    def resolve(self, storage_path: str) -> str:
        return str(self._get_absolute_path(storage_path))

    async def upload(self, file_path: str, content: BinaryIO) -> str:
        """Upload file and return storage path.

        Args:
            file_path: Relative path for the file in storage
            content: Binary file content to upload

        Returns:
            Storage path that can be used to retrieve the file

        Raises:
            StorageError: If upload fails
        """
        path_parts = Path(file_path).parts
        if path_parts:
            sanitized_parts = list(path_parts[:-1]) + [sanitize_filename(path_parts[-1])]
            file_path = str(Path(*sanitized_parts))

        if not is_media_file(file_path):
            raise StorageError(f"File type not allowed: {file_path}")

        abs_path = self._get_absolute_path(file_path)
        temp_path = abs_path.with_suffix(abs_path.suffix + '.tmp')

        try:
            content.seek(0)
            file_content = content.read()

            if not validate_file_size(len(file_content)):
                raise StorageError(f"File size not allowed: {len(file_content)} bytes")

            abs_path.parent.mkdir(parents=True, exist_ok=True)

            # Write to temporary file first (atomic operation)
            async with aiofiles.open(temp_path, 'wb') as f:
                await f.write(file_content)

            await aiofiles.os.rename(temp_path, abs_path)

            return str(Path(file_path))

        except StorageError:
            raise
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise StorageError(f"Failed to upload file: {e}")

    async def import_file(self, source: str, media_id: str) -> str:
        """Copy a local file into ``media/<media_id>/`` and return its storage path."""
        source_path = Path(source)
        if not source_path.is_file():
            raise FileNotFoundError(f"Source file not found: {source}")
        if not is_media_file(source_path.name):
            raise StorageError(f"File type not allowed: {source_path.name}")

        dest_path = str(Path("media") / sanitize_filename(media_id) / sanitize_filename(source_path.name))
        dest_abs = self._get_absolute_path(dest_path)

        try:
            dest_abs.parent.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copy2, source_path, dest_abs)
            return dest_path
        except OSError as e:
            raise StorageError(f"Failed to import file: {e}")

    async def exists(self, storage_path: str) -> bool:
        try:
            abs_path = self._get_absolute_path(storage_path)
            return await aiofiles.os.path.exists(abs_path)
        except StorageError:
            return False
