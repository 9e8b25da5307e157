"""
Storage module for Chat Video Editor.

This module provides the persistence collaborators for operations and
versions plus filesystem storage for uploaded media.
"""

from typing import Optional, Tuple

from .interface import OperationRepository, VersionRepository, MediaStorageInterface, StorageError
from .memory import InMemoryOperationRepository, InMemoryVersionRepository
from .filesystem import JsonOperationRepository, JsonVersionRepository, FilesystemMediaStorage
from ..config import Settings


def get_repositories(settings: Optional[Settings] = None) -> Tuple[OperationRepository, VersionRepository]:
    """Build operation and version repositories from settings."""
    if settings is None:
        from ..config import settings as default_settings
        settings = default_settings
    if settings.persist_state:
        return (
            JsonOperationRepository(settings.storage_path),
            JsonVersionRepository(settings.storage_path),
        )
    return InMemoryOperationRepository(), InMemoryVersionRepository()


__all__ = [
    "OperationRepository",
    "VersionRepository",
    "MediaStorageInterface",
    "StorageError",
    "InMemoryOperationRepository",
    "InMemoryVersionRepository",
    "JsonOperationRepository",
    "JsonVersionRepository",
    "FilesystemMediaStorage",
    "get_repositories",
]
