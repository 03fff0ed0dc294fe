# release_guard/runtime/base.py
"""Container runtime abstract base class"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

from ..models import UnitRecord


class HealthState(Enum):
    """Liveness signal reported for a unit"""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


class RuntimeOperationError(Exception):
    """A runtime command failed"""

    def __init__(self, message: str, unit: Optional[str] = None):
        super().__init__(message)
        self.unit = unit


class UnitNotRunningError(RuntimeOperationError):
    """The unit is already stopped or does not exist"""
    pass


class ContainerRuntime(ABC):
    """Abstract base class for container runtimes

    The release control loop only ever sequences these operations; it
    never builds images or schedules containers itself.
    """

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize runtime

        Args:
            config: Runtime-specific configuration
        """
        self.config = config or {}
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize runtime (e.g., check the CLI is available)"""
        if not self._initialized:
            await self._do_initialize()
            self._initialized = True

    async def _do_initialize(self) -> None:
        """Actual initialization logic, overridden by subclasses when needed"""
        pass

    @abstractmethod
    async def read_descriptor(self) -> str:
        """
        Read the live deployment descriptor

        Returns:
            Serialized stack definition
        """
        pass

    @abstractmethod
    async def write_descriptor(self, descriptor: str) -> None:
        """
        Replace the live deployment descriptor

        Args:
            descriptor: Serialized stack definition
        """
        pass

    @abstractmethod
    async def list_units(self) -> List[UnitRecord]:
        """
        List running units

        Returns:
            Units in stack order with the image each one runs
        """
        pass

    @abstractmethod
    async def stop(self, unit: str) -> None:
        """
        Stop a unit

        Raises:
            UnitNotRunningError: If the unit is not running
            RuntimeOperationError: On any other failure
        """
        pass

    @abstractmethod
    async def remove(self, unit: str) -> None:
        """
        Remove a stopped unit

        Raises:
            UnitNotRunningError: If the unit does not exist
            RuntimeOperationError: On any other failure
        """
        pass

    @abstractmethod
    async def pull(self, image: str) -> None:
        """
        Pull an image reference (``name:tag``)

        Raises:
            RuntimeOperationError: If the image cannot be pulled
        """
        pass

    @abstractmethod
    async def start(self, descriptor: str, tag: str) -> None:
        """
        Start every unit of the stack described by ``descriptor`` at ``tag``

        Raises:
            RuntimeOperationError: If the stack cannot be started
        """
        pass

    @abstractmethod
    async def inspect_health(self, unit: str) -> HealthState:
        """
        Query the liveness signal of a unit

        Returns:
            HealthState of the unit
        """
        pass

    async def close(self) -> None:
        """Release runtime resources"""
        if self._initialized:
            await self._do_close()
            self._initialized = False

    async def _do_close(self) -> None:
        """Actual cleanup logic to be implemented by subclasses"""
        pass

    async def __aenter__(self):
        """Async context manager entry"""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()
