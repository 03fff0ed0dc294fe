# release_guard/services/__init__.py
"""Release control loop services for release-guard"""

from .config_service import ConfigService
from .deploy_executor import DeploymentExecutor
from .orchestrator import DeploymentOrchestrator
from .quality_gate import QualityGateAggregator
from .readiness import ReadinessVerifier
from .rollback import RollbackController
from .status_reporter import StatusReporter

__all__ = [
    "ConfigService",
    "DeploymentExecutor",
    "DeploymentOrchestrator",
    "QualityGateAggregator",
    "ReadinessVerifier",
    "RollbackController",
    "StatusReporter",
]
