# release_guard/runtime/__init__.py
"""Container runtimes for release-guard"""

from .base import ContainerRuntime, HealthState, RuntimeOperationError, UnitNotRunningError
from .docker import DockerComposeRuntime
from .factory import RuntimeFactory

__all__ = [
    'ContainerRuntime',
    'HealthState',
    'RuntimeOperationError',
    'UnitNotRunningError',
    'DockerComposeRuntime',
    'RuntimeFactory',
]
