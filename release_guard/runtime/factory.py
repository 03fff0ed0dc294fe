"""Container runtime factory"""

from pathlib import Path
from typing import Dict, Type

from .base import ContainerRuntime
from .docker import DockerComposeRuntime
from ..models.config import Config


class RuntimeFactory:
    """Factory for creating container runtime instances"""

    # Registry of runtimes
    _runtimes: Dict[str, Type[ContainerRuntime]] = {
        "docker": DockerComposeRuntime,
    }

    @classmethod
    def create_from_config(cls, config: Config) -> ContainerRuntime:
        """Create runtime from the project configuration

        Args:
            config: Complete configuration

        Returns:
            Runtime instance

        Raises:
            ValueError: If runtime type is not supported
        """
        runtime_config = config.runtime

        if not cls.is_supported(runtime_config.type):
            raise ValueError(
                f"Unsupported runtime type: {runtime_config.type} "
                f"(supported: {', '.join(cls.get_supported_types())})"
            )

        options = {
            "compose_file": str(config.compose_path),
            "project_name": runtime_config.project_name,
            "tag_variable": runtime_config.tag_variable,
            "docker_binary": runtime_config.docker_binary,
            "command_timeout": runtime_config.command_timeout,
            "running_is_healthy": runtime_config.running_is_healthy,
            "base_dir": str(config.base_dir or Path.cwd()),
        }

        # Add any additional options
        if runtime_config.options:
            options.update(runtime_config.options)

        runtime_class = cls._runtimes[runtime_config.type]
        return runtime_class(options)

    @classmethod
    def register_runtime(cls, runtime_type: str, runtime_class: Type[ContainerRuntime]):
        """Register a new runtime type

        Args:
            runtime_type: Runtime type name
            runtime_class: Runtime class
        """
        cls._runtimes[runtime_type] = runtime_class

    @classmethod
    def get_supported_types(cls) -> list[str]:
        """Get list of supported runtime types"""
        return list(cls._runtimes.keys())

    @classmethod
    def is_supported(cls, runtime_type: str) -> bool:
        """Check if a runtime type is supported"""
        return runtime_type in cls._runtimes
