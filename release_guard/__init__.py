"""Release Guard - gated releases with versioned backup and automatic rollback.

Runs one release attempt at a time against an environment: a quality gate
decides whether the release may start, the running stack is snapshotted,
the new tag is deployed and verified, and any failure restores the snapshot.
"""

from .__version__ import __version__, __version_info__, __license__

# Core API
from .api.releaser import Releaser, release

# Data models
from .models import (
    AttemptState,
    DeploymentAttempt,
    Backup,
    GateDecision,
    GateReport,
    GateStatus,
    QualityGateResult,
    LedgerRecord,
    AttemptReport,
    RollbackReport,
    Config,
)

# Exceptions
from .exceptions import (
    ReleaseGuardError,
    ConfigError,
    SnapshotError,
    TeardownError,
    PullError,
    StartError,
    ReadinessTimeout,
    RollbackFailed,
    EnvironmentBusy,
    GateFetchError,
    StatusReportError,
)

__all__ = [
    # Version information
    "__version__",
    "__version_info__",
    "__license__",

    # Main class
    "Releaser",
    "release",

    # Data models
    "AttemptState",
    "DeploymentAttempt",
    "Backup",
    "GateDecision",
    "GateReport",
    "GateStatus",
    "QualityGateResult",
    "LedgerRecord",
    "AttemptReport",
    "RollbackReport",
    "Config",

    # Exceptions
    "ReleaseGuardError",
    "ConfigError",
    "SnapshotError",
    "TeardownError",
    "PullError",
    "StartError",
    "ReadinessTimeout",
    "RollbackFailed",
    "EnvironmentBusy",
    "GateFetchError",
    "StatusReportError",
]
