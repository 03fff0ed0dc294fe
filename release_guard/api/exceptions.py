"""Public exception types of release-guard"""

from ..exceptions import (
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
    AttemptCancelled,
    RollbackFailed,
    EnvironmentBusy,
    GateFetchError,
    StatusReportError,
    error_chain,
)

__all__ = [
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
    "AttemptCancelled",
    "RollbackFailed",
    "EnvironmentBusy",
    "GateFetchError",
    "StatusReportError",
    "error_chain",
]
