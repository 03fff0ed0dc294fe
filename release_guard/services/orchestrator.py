"""Release control loop: gate, backup, deploy, verify, roll back"""

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence

from .deploy_executor import DeploymentExecutor
from .quality_gate import QualityGateAggregator
from .readiness import ReadinessVerifier
from .rollback import RollbackController
from .status_reporter import StatusReporter
from ..clients.analysis import AnalysisClient
from ..constants import (
    ErrorCode,
    MSG_GATE_REJECTED,
    MSG_RELEASE_ROLLED_BACK,
    MSG_RELEASE_SUCCEEDED,
    MSG_ROLLBACK_FAILED,
)
from ..core.backup_manager import BackupManager
from ..core.environment_lock import EnvironmentLock
from ..core.path_resolver import PathResolver
from ..core.version_ledger import VersionLedger
from ..exceptions import (
    AttemptCancelled,
    ConfigError,
    EnvironmentBusy,
    LedgerError,
    ReadinessAborted,
    RollbackFailed,
    SnapshotError,
    error_chain,
)
from ..models import (
    AttemptReport,
    AttemptState,
    Backup,
    Config,
    DeploymentAttempt,
    GateConfig,
    GateReport,
    LockConfig,
    ReadinessConfig,
    RuntimeConfig,
)
from ..runtime.base import ContainerRuntime
from ..utils.file_utils import write_json_durable

logger = logging.getLogger(__name__)


class DeploymentOrchestrator:
    """Runs one DeploymentAttempt at a time against an environment

    The orchestrator is the only component that moves an attempt between
    states, decides on rollback and writes the version ledger.
    """

    def __init__(self,
                 runtime: ContainerRuntime,
                 paths: PathResolver,
                 environment: str = "default",
                 units: Optional[Sequence[str]] = None,
                 runtime_config: Optional[RuntimeConfig] = None,
                 readiness: Optional[ReadinessConfig] = None,
                 lock: Optional[LockConfig] = None,
                 gate: Optional[GateConfig] = None,
                 analysis_client: Optional[AnalysisClient] = None,
                 status_reporter: Optional[StatusReporter] = None):
        """Initialize orchestrator

        Args:
            runtime: Container runtime of the environment
            paths: State path resolver of the environment
            environment: Environment name, used for the lock
            units: Default ordered unit list
            runtime_config: Image reference settings
            readiness: Readiness deadline and polling interval
            lock: Environment lock wait settings
            gate: Quality gate settings
            analysis_client: Verdict source; no gate is evaluated without one
            status_reporter: Commit status publisher
        """
        self.runtime = runtime
        self.paths = paths
        self.environment = environment
        self.units = list(units or [])
        self.readiness = readiness or ReadinessConfig()
        self.lock_config = lock or LockConfig()
        self.gate_config = gate or GateConfig(enabled=False)
        self.analysis_client = analysis_client
        self.status_reporter = status_reporter

        self.ledger = VersionLedger(paths.ledger_path)
        self.backups = BackupManager(runtime, self.ledger, paths)
        self.executor = DeploymentExecutor(runtime, runtime_config)
        self.verifier = ReadinessVerifier(runtime, self.readiness.interval)
        self.rollback_controller = RollbackController(
            runtime, self.executor, self.verifier, paths, self.readiness.deadline
        )

    @classmethod
    def from_config(cls,
                    config: Config,
                    runtime: ContainerRuntime,
                    analysis_client: Optional[AnalysisClient] = None,
                    status_reporter: Optional[StatusReporter] = None) -> 'DeploymentOrchestrator':
        """Create an orchestrator for the configured environment"""
        return cls(
            runtime=runtime,
            paths=PathResolver(config.state_dir),
            environment=config.environment.name,
            units=config.units,
            runtime_config=config.runtime,
            readiness=config.readiness,
            lock=config.lock,
            gate=config.gate,
            analysis_client=analysis_client,
            status_reporter=status_reporter,
        )

    @staticmethod
    def new_attempt_id() -> str:
        """Monotonic build identifier (milliseconds since the epoch)"""
        return str(int(time.time() * 1000))

    @property
    def gate_active(self) -> bool:
        return self.gate_config.enabled and self.analysis_client is not None

    async def evaluate_gate(self, units: Optional[Sequence[str]] = None) -> GateReport:
        """Evaluate the quality gate without deploying

        Raises:
            ConfigError: No analysis client configured or no units given
        """
        units = list(units or self.units)
        if self.analysis_client is None:
            raise ConfigError("Quality gate has no analysis service configured")
        if not units:
            raise ConfigError("No units to evaluate")

        aggregator = QualityGateAggregator(
            self.analysis_client,
            units,
            max_failures=self.gate_config.max_failures,
            max_workers=self.gate_config.max_workers,
            fetch_timeout=self.gate_config.fetch_timeout,
            timeout=self.gate_config.timeout,
        )
        return await aggregator.evaluate()

    async def run(self,
                  target_tag: str,
                  units: Optional[Sequence[str]] = None,
                  attempt_id: Optional[str] = None,
                  commit_id: Optional[str] = None,
                  skip_gate: bool = False,
                  abort: Optional[asyncio.Event] = None) -> AttemptReport:
        """Run one full release attempt

        Args:
            target_tag: Tag to release
            units: Ordered unit names (defaults to the configured units)
            attempt_id: Build identifier (defaults to a timestamp)
            commit_id: Commit whose status is reported at the end
            skip_gate: Do not consult the quality gate
            abort: Set from outside to abort readiness polling

        Returns:
            Report of the terminal attempt; failures end up in it, not raised

        Raises:
            ConfigError: Nothing to deploy
            asyncio.CancelledError: Re-raised once a cancelled attempt is
                rolled back and its report written
        """
        units = list(units or self.units)
        if not target_tag:
            raise ConfigError("A target tag is required")
        if not units:
            raise ConfigError("No units to deploy")

        attempt = DeploymentAttempt(
            id=str(attempt_id or self.new_attempt_id()),
            target_tag=target_tag,
            units=units,
            environment=self.environment,
            commit_id=commit_id,
        )
        report = AttemptReport(attempt=attempt)
        logger.info(f"Attempt {attempt.id}: releasing {target_tag} to '{self.environment}'")

        if self.gate_active and not skip_gate:
            report.gate = await self.evaluate_gate(units)
            if not report.gate.passed:
                failed = ", ".join(report.gate.failed_units)
                attempt.record_error([f"[{ErrorCode.GATE_REJECTED}] Quality gate failed for: {failed}"])
                report.error_code = ErrorCode.GATE_REJECTED
                self._transition(attempt, AttemptState.REJECTED)
                logger.error(MSG_GATE_REJECTED.format(tag=target_tag, failed=len(report.gate.failed_units)))
                return await self._finalize(report)

        lock = EnvironmentLock(
            self.paths.lock_path,
            self.environment,
            timeout=self.lock_config.timeout,
            poll_interval=self.lock_config.poll_interval,
            holder=f"attempt {attempt.id} ({target_tag})",
        )
        try:
            await lock.acquire()
        except EnvironmentBusy as e:
            logger.error(str(e))
            self._fail(report, e, AttemptState.FAILED)
            return await self._finalize(report)
        except OSError as e:
            logger.error(f"Cannot lock environment '{self.environment}': {e}")
            self._fail(report, e, AttemptState.FAILED)
            return await self._finalize(report)

        try:
            cancelled = await self._run_locked(report, abort)
        finally:
            lock.release()

        report = await self._finalize(report)
        if cancelled is not None:
            raise cancelled
        return report

    async def _run_locked(self,
                          report: AttemptReport,
                          abort: Optional[asyncio.Event]) -> Optional[asyncio.CancelledError]:
        """Back up, deploy and verify while holding the environment lock

        Returns:
            The cancellation to re-raise once the attempt is finalized, if the
            task was cancelled while the stack was being changed
        """
        attempt = report.attempt

        self._transition(attempt, AttemptState.BACKING_UP)
        try:
            backup = await self.backups.snapshot(attempt)
        except SnapshotError as e:
            # Nothing has been touched yet
            logger.error(f"Attempt {attempt.id}: {e}")
            self._fail(report, e, AttemptState.FAILED)
            return None

        attempt.backup_id = backup.id
        attempt.previous_tag = backup.previous_tag

        failure = None
        cancelled = None
        try:
            self._transition(attempt, AttemptState.DEPLOYING)
            await self.executor.deploy(attempt.target_tag, attempt.units)

            self._transition(attempt, AttemptState.VERIFYING)
            await self.verifier.wait_healthy(attempt.units, self.readiness.deadline, abort)
        except asyncio.CancelledError as e:
            # Cancelling the task takes the same path as an abort
            cancelled = e
            failure = self._cancellation_failure(attempt)
            logger.warning(f"Attempt {attempt.id} cancelled in {attempt.state.value}")
        except Exception as e:
            failure = e

        # Outside the handler so rollback errors do not chain onto the failure
        if failure is not None:
            await self._roll_back(report, backup, failure)
            return cancelled

        self._transition(attempt, AttemptState.SUCCEEDED)
        logger.info(MSG_RELEASE_SUCCEEDED.format(tag=attempt.target_tag, attempt_id=attempt.id))
        self._write_ledger(report, self.ledger.record_success, attempt.target_tag, attempt.id)
        return None

    def _cancellation_failure(self, attempt: DeploymentAttempt) -> Exception:
        if attempt.state == AttemptState.VERIFYING:
            return ReadinessAborted(self.verifier.last_unhealthy, self.readiness.deadline)
        return AttemptCancelled(attempt.state.value)

    async def _roll_back(self, report: AttemptReport, backup: Backup, cause: Exception) -> None:
        attempt = report.attempt
        attempt.record_error(error_chain(cause))
        report.error_code = getattr(cause, "error_code", None)
        logger.warning(f"Attempt {attempt.id} failed in {attempt.state.value}: {cause}")

        self._transition(attempt, AttemptState.ROLLING_BACK)
        try:
            report.rollback = await self.rollback_controller.rollback(attempt, backup, cause)
        except RollbackFailed as e:
            self._fail(report, e, AttemptState.ROLLBACK_FAILED)
            logger.error(MSG_ROLLBACK_FAILED.format(tag=attempt.target_tag, attempt_id=attempt.id))
            return

        self._transition(attempt, AttemptState.ROLLED_BACK)
        logger.warning(MSG_RELEASE_ROLLED_BACK.format(
            tag=attempt.target_tag,
            restored_tag=report.rollback.restored_tag,
            attempt_id=attempt.id,
        ))
        self._write_ledger(report, self.ledger.record_rollback, report.rollback.restored_tag, attempt.id)

    def _transition(self, attempt: DeploymentAttempt, state: AttemptState) -> None:
        previous = attempt.state
        attempt.transition(state)
        logger.info(f"Attempt {attempt.id}: {previous.value} -> {state.value}")

    def _fail(self, report: AttemptReport, exc: BaseException, state: AttemptState) -> None:
        report.attempt.record_error(error_chain(exc))
        report.error_code = getattr(exc, "error_code", None)
        self._transition(report.attempt, state)

    def _write_ledger(self, report: AttemptReport, write: Callable, tag: str, attempt_id: str) -> None:
        # The attempt is already terminal; a ledger failure cannot change that
        try:
            write(tag, attempt_id)
        except LedgerError as e:
            logger.error(f"Attempt {attempt_id}: {e}")
            report.warnings.append(str(e))

    async def _finalize(self, report: AttemptReport) -> AttemptReport:
        """Publish the commit status and persist the report"""
        attempt = report.attempt

        if self.status_reporter is not None and attempt.commit_id:
            report.status_reported = await self.status_reporter.report(report)

        path = self.paths.get_attempt_report_path(attempt.id)
        try:
            await write_json_durable(path, report.to_dict())
        except OSError as e:
            logger.error(f"Cannot write attempt report {path}: {e}")
            report.warnings.append(f"attempt report not written: {e}")

        log = logger.error if report.requires_operator else logger.info
        log(f"Attempt {attempt.id} finished: {report.summary}")
        return report
