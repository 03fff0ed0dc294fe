"""Releaser API for running release attempts"""

import asyncio
from pathlib import Path
from typing import Optional, Sequence, Union

from ..clients import (
    AnalysisClient,
    CommitStatusClient,
    GitHubStatusClient,
    RetryingAnalysisClient,
    SonarQubeClient,
)
from ..core import BackupManager, PathResolver, VersionLedger
from ..models import AttemptReport, Config, GateReport, LedgerRecord
from ..runtime import ContainerRuntime, RuntimeFactory, RuntimeOperationError
from ..services import ConfigService, DeploymentOrchestrator, StatusReporter
from ..utils.async_utils import run_async
from .exceptions import ConfigError


class Releaser:
    """Releaser class wiring configuration to the control loop"""

    def __init__(self,
                 config: Config,
                 runtime: Optional[ContainerRuntime] = None,
                 analysis_client: Optional[AnalysisClient] = None,
                 status_client: Optional[CommitStatusClient] = None):
        """
        Initialize releaser

        Args:
            config: Loaded configuration
            runtime: Container runtime (built from ``config.runtime`` if omitted)
            analysis_client: Verdict source (built from ``config.gate`` if omitted)
            status_client: Commit status client (built from ``config.status`` if omitted)
        """
        self.config = config
        self.paths = PathResolver(config.state_dir)

        try:
            self.runtime = runtime or RuntimeFactory.create_from_config(config)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        self._analysis_client = analysis_client
        self._status_client = status_client

    @property
    def analysis_client(self) -> Optional[AnalysisClient]:
        """Verdict source (lazy, built from ``config.gate``)"""
        if self._analysis_client is None:
            self._analysis_client = self._create_analysis_client()
        return self._analysis_client

    @property
    def status_client(self) -> Optional[CommitStatusClient]:
        """Commit status client (lazy, built from ``config.status``)"""
        if self._status_client is None:
            self._status_client = self._create_status_client()
        return self._status_client

    @classmethod
    def from_file(cls, config_path: Optional[Union[str, Path]] = None) -> 'Releaser':
        """Create a releaser from a configuration file"""
        return cls(ConfigService(config_path).load_config())

    def _create_analysis_client(self) -> Optional[AnalysisClient]:
        gate = self.config.gate
        if not gate.enabled:
            return None

        client: AnalysisClient = SonarQubeClient(
            base_url=gate.url,
            token=gate.token,
            project_key_template=gate.project_key_template,
            timeout=gate.fetch_timeout,
        )
        if gate.retries > 0:
            client = RetryingAnalysisClient(
                client,
                retries=gate.retries,
                delay=gate.retry_delay,
                backoff=gate.retry_backoff,
            )
        return client

    def _create_status_client(self) -> Optional[CommitStatusClient]:
        status = self.config.status
        if not status.enabled:
            return None

        return GitHubStatusClient(
            repository=status.repository,
            token=status.token,
            api_url=status.api_url,
            context=status.context,
            timeout=status.timeout,
        )

    def create_orchestrator(self) -> DeploymentOrchestrator:
        """Build the orchestrator for the configured environment"""
        reporter = StatusReporter(self.status_client, self.config.status) if self.status_client else None
        return DeploymentOrchestrator.from_config(
            self.config,
            self.runtime,
            analysis_client=self.analysis_client,
            status_reporter=reporter,
        )

    def release(self,
                target_tag: str,
                units: Optional[Sequence[str]] = None,
                attempt_id: Optional[str] = None,
                commit_id: Optional[str] = None,
                skip_gate: bool = False,
                abort: Optional[asyncio.Event] = None) -> AttemptReport:
        """
        Run one release attempt

        Returns:
            AttemptReport: Terminal report; check ``exit_code``

        Raises:
            ConfigError: If the runtime or configuration is unusable
        """
        return run_async(self.async_release(
            target_tag,
            units=units,
            attempt_id=attempt_id,
            commit_id=commit_id,
            skip_gate=skip_gate,
            abort=abort,
        ))

    async def async_release(self,
                            target_tag: str,
                            units: Optional[Sequence[str]] = None,
                            attempt_id: Optional[str] = None,
                            commit_id: Optional[str] = None,
                            skip_gate: bool = False,
                            abort: Optional[asyncio.Event] = None) -> AttemptReport:
        """Async variant of :meth:`release`"""
        try:
            await self.runtime.initialize()
        except RuntimeOperationError as e:
            raise ConfigError(f"Container runtime unavailable: {e}") from e

        try:
            return await self.create_orchestrator().run(
                target_tag,
                units=units,
                attempt_id=attempt_id,
                commit_id=commit_id,
                skip_gate=skip_gate,
                abort=abort,
            )
        finally:
            await self.aclose()

    def evaluate_gate(self, units: Optional[Sequence[str]] = None) -> GateReport:
        """Evaluate the quality gate only"""
        return run_async(self.async_evaluate_gate(units))

    async def async_evaluate_gate(self, units: Optional[Sequence[str]] = None) -> GateReport:
        """Async variant of :meth:`evaluate_gate`"""
        try:
            return await self.create_orchestrator().evaluate_gate(units)
        finally:
            await self.aclose()

    def ledger(self) -> LedgerRecord:
        """Read the version ledger of the environment"""
        return VersionLedger(self.paths.ledger_path).load()

    def backup_manager(self) -> BackupManager:
        ledger = VersionLedger(self.paths.ledger_path)
        return BackupManager(self.runtime, ledger, self.paths)

    async def aclose(self) -> None:
        """Close clients and the runtime"""
        if self._analysis_client is not None:
            await self._analysis_client.close()
            self._analysis_client = None
        if self._status_client is not None:
            await self._status_client.close()
            self._status_client = None
        await self.runtime.close()


def release(target_tag: str,
            units: Optional[Sequence[str]] = None,
            config_path: Optional[Union[str, Path]] = None,
            **options) -> AttemptReport:
    """
    Convenience function for running a release

    Args:
        target_tag: Tag to release
        units: Unit names (defaults to the configured units)
        config_path: Configuration file
        **options: Passed to :meth:`Releaser.release`

    Returns:
        AttemptReport: Terminal report
    """
    return Releaser.from_file(config_path).release(target_tag, units=units, **options)
