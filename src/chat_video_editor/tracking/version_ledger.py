"""Version ledger: append-only lineage of produced artifacts."""

import logging
import threading
from typing import Any, Dict, List, Optional

from ..exceptions import StorageError, VersionNotFoundError
from ..models.intent import ActionKind
from ..models.version import Version
from ..storage.interface import VersionRepository
from ..storage.memory import InMemoryVersionRepository


logger = logging.getLogger(__name__)


class VersionLedger:
    """Tree of immutable versions rooted at original uploads.

    There is no update or delete. Sibling versions (independent edits of the
    same parent) are allowed, so a media item can have several heads.
    """

    def __init__(self, repository: Optional[VersionRepository] = None):
        self.repository = repository or InMemoryVersionRepository()
        self.lock = threading.RLock()

    def append(self, version: Version) -> str:
        """Append a version and return its id.

        Raises:
            StorageError: If the id already exists
            VersionNotFoundError: If the parent is not in the ledger
        """
        with self.lock:
            if self.repository.get(version.id) is not None:
                raise StorageError(f"Version already exists: {version.id}")
            if version.parent_id is not None:
                parent = self.repository.get(version.parent_id)
                if parent is None:
                    raise VersionNotFoundError(f"Parent version not found: {version.parent_id}")
                if parent.media_id != version.media_id:
                    raise StorageError(
                        f"Version {version.id} belongs to {version.media_id} "
                        f"but its parent belongs to {parent.media_id}"
                    )
            self.repository.append(version)
        logger.info(
            f"Appended version {version.id} for media {version.media_id} "
            f"(parent {version.parent_id or 'none'})"
        )
        return version.id

    def register_original(
        self,
        media_id: str,
        artifact_path: str,
        created_by: Optional[str] = None
    ) -> Version:
        """Record an original upload as the root of a new lineage."""
        version = Version(
            media_id=media_id,
            artifact_path=artifact_path,
            created_by=created_by,
        )
        self.append(version)
        return version

    def build_edit(
        self,
        parent_id: str,
        operation_id: str,
        action: ActionKind,
        parameters: Dict[str, Any],
        artifact_path: str,
        created_by: Optional[str] = None
    ) -> Version:
        """Create, without appending, the version an operation on ``parent_id`` produces.

        Raises:
            VersionNotFoundError: If the parent is not in the ledger
        """
        parent = self.get(parent_id)
        return Version(
            media_id=parent.media_id,
            parent_id=parent.id,
            produced_by_operation_id=operation_id,
            action=action,
            parameters=dict(parameters),
            artifact_path=artifact_path,
            created_by=created_by,
        )

    def record_edit(
        self,
        parent_id: str,
        operation_id: str,
        action: ActionKind,
        parameters: Dict[str, Any],
        artifact_path: str,
        created_by: Optional[str] = None
    ) -> Version:
        """Append the version produced by an operation on ``parent_id``."""
        version = self.build_edit(
            parent_id, operation_id, action, parameters, artifact_path, created_by
        )
        self.append(version)
        return version

    def get(self, version_id: str) -> Version:
        """Raises VersionNotFoundError if missing."""
        version = self.repository.get(version_id)
        if version is None:
            raise VersionNotFoundError(f"Version not found: {version_id}")
        return version

    def children_of(self, version_id: str) -> List[Version]:
        """Direct descendants in append order."""
        self.get(version_id)
        return [v for v in self.repository.list_all() if v.parent_id == version_id]

    def versions_for(self, media_id: str) -> List[Version]:
        return [v for v in self.repository.list_all() if v.media_id == media_id]

    def has_media(self, media_id: str) -> bool:
        return any(v.media_id == media_id for v in self.repository.list_all())

    def head(self, media_id: str) -> Version:
        """Most recently appended version of a media item.

        Raises:
            VersionNotFoundError: If the media has never been registered
        """
        versions = self.versions_for(media_id)
        if not versions:
            raise VersionNotFoundError(f"Media not found: {media_id}")
        return versions[-1]

    def heads(self, media_id: str) -> List[Version]:
        """Leaf versions of a media item, one per branch."""
        versions = self.versions_for(media_id)
        parents = {v.parent_id for v in versions if v.parent_id}
        return [v for v in versions if v.id not in parents]

    def lineage(self, version_id: str) -> List[Version]:
        """Path from the original upload down to ``version_id``."""
        chain = []
        current: Optional[Version] = self.get(version_id)
        while current is not None:
            chain.append(current)
            current = self.get(current.parent_id) if current.parent_id else None
        chain.reverse()
        return chain
