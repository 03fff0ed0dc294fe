"""Core functionality for release-guard"""

from .path_resolver import PathResolver
from .version_ledger import VersionLedger
from .backup_manager import BackupManager
from .environment_lock import EnvironmentLock

__all__ = [
    "PathResolver",
    "VersionLedger",
    "BackupManager",
    "EnvironmentLock",
]
