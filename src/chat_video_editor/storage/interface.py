"""Persistence collaborator interfaces for Chat Video Editor."""

from abc import ABC, abstractmethod
from typing import BinaryIO, List, Optional

from ..exceptions import StorageError
from ..models.operation import Operation
from ..models.version import Version


class OperationRepository(ABC):
    """Create, read and update-by-id for operations.

    The status tracker owns the state machine; repositories only store what
    they are given.
    """

    @abstractmethod
    def save(self, operation: Operation) -> None:
        """Insert or replace an operation by id.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def get(self, operation_id: str) -> Optional[Operation]:
        """Return the stored operation or None."""
        pass

    @abstractmethod
    def list_all(self) -> List[Operation]:
        """Return every stored operation in creation order."""
        pass


class VersionRepository(ABC):
    """Append and read for versions. There is deliberately no update or delete."""

    @abstractmethod
    def append(self, version: Version) -> None:
        """Persist a new version.

        Raises:
            StorageError: If the version id already exists or the write fails
        """
        pass

    @abstractmethod
    def get(self, version_id: str) -> Optional[Version]:
        """Return the stored version or None."""
        pass

    @abstractmethod
    def list_all(self) -> List[Version]:
        """Return every version in append order."""
        pass


class MediaStorageInterface(ABC):
    """Storage for uploaded source media."""

    @abstractmethod
    async def upload(self, file_path: str, content: BinaryIO) -> str:
        """Upload file and return storage path.

        Raises:
            StorageError: If upload fails
        """
        pass

    @abstractmethod
    async def exists(self, storage_path: str) -> bool:
        """Check if file exists."""
        pass

    @abstractmethod
    def resolve(self, storage_path: str) -> str:
        """Absolute filesystem path for a storage path."""
        pass


__all__ = [
    "OperationRepository",
    "VersionRepository",
    "MediaStorageInterface",
    "StorageError",
]
