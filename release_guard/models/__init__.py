# release_guard/models/__init__.py
"""Data models for release-guard"""

from .attempt import AttemptState, DeploymentAttempt, ALLOWED_TRANSITIONS, TERMINAL_STATES
from .backup import Backup, UnitRecord
from .gate import GateStatus, GateDecision, QualityGateResult, GateReport
from .ledger import LedgerRecord
from .result import AttemptReport, RollbackReport
from .config import (
    Config,
    EnvironmentConfig,
    RuntimeConfig,
    GateConfig,
    ReadinessConfig,
    LockConfig,
    StatusConfig,
)

__all__ = [
    # Attempt models
    "AttemptState",
    "DeploymentAttempt",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATES",

    # Backup models
    "Backup",
    "UnitRecord",

    # Gate models
    "GateStatus",
    "GateDecision",
    "QualityGateResult",
    "GateReport",

    # Ledger and report models
    "LedgerRecord",
    "AttemptReport",
    "RollbackReport",

    # Config models
    "Config",
    "EnvironmentConfig",
    "RuntimeConfig",
    "GateConfig",
    "ReadinessConfig",
    "LockConfig",
    "StatusConfig",
]
