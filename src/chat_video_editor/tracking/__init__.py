"""Operation lifecycle tracking and version lineage."""

from .status_tracker import OperationStatusTracker, ALLOWED_TRANSITIONS
from .version_ledger import VersionLedger

__all__ = ["OperationStatusTracker", "ALLOWED_TRANSITIONS", "VersionLedger"]
