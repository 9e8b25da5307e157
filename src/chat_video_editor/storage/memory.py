"""In-memory repositories, the default persistence collaborator."""

import threading
from typing import Dict, List, Optional

from .interface import OperationRepository, VersionRepository, StorageError
from ..models.operation import Operation
from ..models.version import Version


class InMemoryOperationRepository(OperationRepository):
    """Dictionary-backed operation store."""

    def __init__(self):
        self._operations: Dict[str, Operation] = {}
        self._lock = threading.Lock()

    def save(self, operation: Operation) -> None:
        with self._lock:
            self._operations[operation.id] = operation.model_copy(deep=True)

    def get(self, operation_id: str) -> Optional[Operation]:
        with self._lock:
            operation = self._operations.get(operation_id)
            return operation.model_copy(deep=True) if operation else None

    def list_all(self) -> List[Operation]:
        with self._lock:
            return [op.model_copy(deep=True) for op in self._operations.values()]


class InMemoryVersionRepository(VersionRepository):
    """List-backed append-only version store."""

    def __init__(self):
        self._versions: List[Version] = []
        self._index: Dict[str, Version] = {}
        self._lock = threading.Lock()

    def append(self, version: Version) -> None:
        with self._lock:
            if version.id in self._index:
                raise StorageError(f"Version already exists: {version.id}")
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
