"""Docker Compose runtime driven through the docker CLI"""

import asyncio
import json
import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List, Optional

from .base import ContainerRuntime, HealthState, RuntimeOperationError, UnitNotRunningError
from ..constants import DEFAULT_COMMAND_TIMEOUT, DEFAULT_DOCKER_BINARY, DEFAULT_TAG_VARIABLE
from ..models import UnitRecord
from ..utils.file_utils import atomic_write, read_text_async

logger = logging.getLogger(__name__)

# stderr fragments meaning "nothing to stop"
_NOT_RUNNING_MARKERS = (
    "no such service",
    "no such container",
    "is not running",
    "no container found",
)


class DockerComposeRuntime(ContainerRuntime):
    """Compose stack managed with ``docker compose``"""

    def __init__(self, config: Dict[str, Any] = None):
        """
        Initialize docker runtime

        Args:
            config: Configuration including:
                - compose_file: Path of the live compose file (required)
                - project_name: Compose project name (optional)
                - tag_variable: Env var the compose file reads the tag from
                - docker_binary: docker executable
                - command_timeout: Seconds before a docker command is killed
                - running_is_healthy: Treat running units without a
                  healthcheck as healthy
        """
        super().__init__(config)
        if not self.config.get('compose_file'):
            raise ValueError("Docker runtime requires 'compose_file'")

        self.compose_file = Path(self.config['compose_file'])
        self.project_name: Optional[str] = self.config.get('project_name')
        self.tag_variable = self.config.get('tag_variable', DEFAULT_TAG_VARIABLE)
        self.docker_binary = self.config.get('docker_binary', DEFAULT_DOCKER_BINARY)
        self.command_timeout = float(self.config.get('command_timeout', DEFAULT_COMMAND_TIMEOUT))
        self.running_is_healthy = self.config.get('running_is_healthy', True)

    async def _do_initialize(self) -> None:
        if shutil.which(self.docker_binary) is None:
            raise RuntimeOperationError(f"docker CLI not found: {self.docker_binary}")

    def _compose_args(self, *args: str) -> List[str]:
        cmd = [self.docker_binary, "compose", "-f", str(self.compose_file)]
        if self.project_name:
            cmd += ["-p", self.project_name]
        return cmd + list(args)

    async def _run(self, cmd: List[str], env: Optional[Dict[str, str]] = None,
                   unit: Optional[str] = None) -> str:
        """Run a docker command and return its stdout"""
        await self.initialize()

        full_env = None
        if env:
            full_env = os.environ.copy()
            full_env.update(env)

        logger.debug(f"Running: {' '.join(cmd)}")
        process = await asyncio.create_subprocess_exec(
            *cmd,
            env=full_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.command_timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise RuntimeOperationError(
                f"Command timed out after {self.command_timeout:g}s: {' '.join(cmd)}",
                unit=unit
            )

        if process.returncode != 0:
            message = stderr.decode(errors='replace').strip() or f"exit code {process.returncode}"
            if any(marker in message.lower() for marker in _NOT_RUNNING_MARKERS):
                raise UnitNotRunningError(message, unit=unit)
            raise RuntimeOperationError(message, unit=unit)

        return stdout.decode(errors='replace')

    @staticmethod
    def _parse_ps(output: str) -> List[Dict[str, Any]]:
        """Parse ``compose ps --format json`` (JSON array or JSON lines)"""
        output = output.strip()
        if not output:
            return []

        if output.startswith('['):
            entries = json.loads(output)
        else:
            entries = [json.loads(line) for line in output.splitlines() if line.strip()]

        return [e for e in entries if isinstance(e, dict)]

    async def read_descriptor(self) -> str:
        try:
            return await read_text_async(self.compose_file)
        except OSError as e:
            raise RuntimeOperationError(f"Cannot read {self.compose_file}: {e}") from e

    async def write_descriptor(self, descriptor: str) -> None:
        try:
            atomic_write(self.compose_file, descriptor)
        except OSError as e:
            raise RuntimeOperationError(f"Cannot write {self.compose_file}: {e}") from e

    async def list_units(self) -> List[UnitRecord]:
        output = await self._run(self._compose_args("ps", "--format", "json"))
        try:
            entries = self._parse_ps(output)
        except ValueError as e:
            raise RuntimeOperationError(f"Unexpected 'compose ps' output: {e}") from e

        return [
            UnitRecord(name=entry.get("Service") or entry.get("Name"), image=entry.get("Image"))
            for entry in entries
        ]

    async def stop(self, unit: str) -> None:
        await self._run(self._compose_args("stop", unit), unit=unit)

    async def remove(self, unit: str) -> None:
        await self._run(self._compose_args("rm", "--force", "--stop", unit), unit=unit)

    async def pull(self, image: str) -> None:
        await self._run([self.docker_binary, "pull", image])

    async def start(self, descriptor: str, tag: str) -> None:
        current = None
        if self.compose_file.exists():
            current = await self.read_descriptor()
        if current != descriptor:
            await self.write_descriptor(descriptor)

        # Images were pulled beforehand; never start a partial image set
        await self._run(
            self._compose_args("up", "--detach", "--no-build", "--pull", "never"),
            env={self.tag_variable: tag}
        )

    async def inspect_health(self, unit: str) -> HealthState:
        output = await self._run(self._compose_args("ps", "--all", "--format", "json", unit), unit=unit)
        try:
            entries = self._parse_ps(output)
        except ValueError:
            return HealthState.UNKNOWN

        if not entries:
            return HealthState.UNKNOWN

        entry = entries[0]
        health = (entry.get("Health") or "").lower()
        state = (entry.get("State") or "").lower()

        if health == "healthy":
            return HealthState.HEALTHY
        if health == "unhealthy":
            return HealthState.UNHEALTHY
        if state and state != "running":
            return HealthState.UNHEALTHY
        if health == "" and state == "running" and self.running_is_healthy:
            return HealthState.HEALTHY
        return HealthState.UNKNOWN
