# release_guard/api/__init__.py
"""API layer for release-guard"""

from .releaser import Releaser, release
from .exceptions import (
    ReleaseGuardError,
    ConfigError,
    InvalidTransitionError,
    LedgerError,
    BackupNotFoundError,
    SnapshotError,
    DeployStepError,
    TeardownError,
    PullError,
    StartError,
    ReadinessTimeout,
    ReadinessAborted,
    RollbackFailed,
    EnvironmentBusy,
    GateFetchError,
    StatusReportError,
)

__all__ = [
    # Main class
    "Releaser",

    # Convenience function
    "release",

    # Exceptions
    "ReleaseGuardError",
    "ConfigError",
    "InvalidTransitionError",
    "LedgerError",
    "BackupNotFoundError",
    "SnapshotError",
    "DeployStepError",
    "TeardownError",
    "PullError",
    "StartError",
    "ReadinessTimeout",
    "ReadinessAborted",
    "RollbackFailed",
    "EnvironmentBusy",
    "GateFetchError",
    "StatusReportError",
]
