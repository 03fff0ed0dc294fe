"""Shared fakes and fixtures for the release-guard test suite."""

import asyncio
from typing import Dict, List, Optional, Sequence

import pytest

from release_guard.clients.analysis import AnalysisClient
from release_guard.clients.vcs import CommitStatusClient
from release_guard.constants import CommitState
from release_guard.core import PathResolver, VersionLedger
from release_guard.exceptions import GateFetchError, StatusReportError
from release_guard.models import (
    GateConfig,
    GateStatus,
    LockConfig,
    QualityGateResult,
    ReadinessConfig,
    UnitRecord,
)
from release_guard.runtime.base import (
    ContainerRuntime,
    HealthState,
    RuntimeOperationError,
    UnitNotRunningError,
)
from release_guard.services import DeploymentOrchestrator, StatusReporter


UNITS = ["api", "worker", "web"]
DESCRIPTOR = "services:\n  api: {}\n  worker: {}\n  web: {}\n"


class FakeRuntime(ContainerRuntime):
    """In-memory container runtime recording every call in order."""

    def __init__(self, config=None, units: Sequence[str] = UNITS, tag: Optional[str] = "41",
                 descriptor: str = DESCRIPTOR):
        super().__init__(config)
        self.stack_units = list(units)
        self.descriptor = descriptor
        self.tag = tag
        self.running: List[UnitRecord] = (
            [UnitRecord(u, f"{u}:{tag}") for u in self.stack_units] if tag else []
        )
        self.calls: List[tuple] = []
        # operation name -> exception raised by that operation
        self.fail: Dict[str, Exception] = {}
        self.bad_images = set()
        self.bad_start_tags = set()
        # tag -> {unit: HealthState}; anything unlisted is healthy
        self.health_by_tag: Dict[str, Dict[str, HealthState]] = {}

    def _check(self, operation: str):
        if operation in self.fail:
            raise self.fail[operation]

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    async def read_descriptor(self) -> str:
        self.calls.append(("read_descriptor",))
        self._check("read_descriptor")
        return self.descriptor

    async def write_descriptor(self, descriptor: str) -> None:
        self.calls.append(("write_descriptor",))
        self._check("write_descriptor")
        self.descriptor = descriptor

    async def list_units(self) -> List[UnitRecord]:
        self.calls.append(("list_units",))
        self._check("list_units")
        return list(self.running)

    async def stop(self, unit: str) -> None:
        self.calls.append(("stop", unit))
        self._check("stop")
        if unit not in [u.name for u in self.running]:
            raise UnitNotRunningError(f"{unit} is not running", unit)

    async def remove(self, unit: str) -> None:
        self.calls.append(("remove", unit))
        self._check("remove")
        self.running = [u for u in self.running if u.name != unit]

    async def pull(self, image: str) -> None:
        self.calls.append(("pull", image))
        self._check("pull")
        if image in self.bad_images:
            raise RuntimeOperationError(f"manifest for {image} not found")

    async def start(self, descriptor: str, tag: str) -> None:
        self.calls.append(("start", tag))
        self._check("start")
        if tag in self.bad_start_tags:
            raise RuntimeOperationError(f"cannot start stack at {tag}", "web")
        self.tag = tag
        self.running = [UnitRecord(u, f"{u}:{tag}") for u in self.stack_units]

    async def inspect_health(self, unit: str) -> HealthState:
        self.calls.append(("inspect_health", unit))
        if unit not in [u.name for u in self.running]:
            return HealthState.UNKNOWN
        return self.health_by_tag.get(self.tag, {}).get(unit, HealthState.HEALTHY)


class FakeAnalysisClient(AnalysisClient):
    """Returns canned verdicts; an exception value is raised instead."""

    def __init__(self, verdicts: Dict[str, object], delays: Optional[Dict[str, float]] = None):
        self.verdicts = verdicts
        self.delays = delays or {}
        self.calls: List[str] = []
        self.closed = False

    async def get_verdict(self, unit: str) -> QualityGateResult:
        self.calls.append(unit)
        if unit in self.delays:
            await asyncio.sleep(self.delays[unit])
        verdict = self.verdicts.get(unit, GateStatus.NO_DATA)
        if isinstance(verdict, Exception):
            raise verdict
        return QualityGateResult(unit_name=unit, status=verdict)

    async def close(self) -> None:
        self.closed = True


class FlakyAnalysisClient(AnalysisClient):
    """Fails the first ``failures`` fetches of every unit."""

    def __init__(self, failures: int, status: GateStatus = GateStatus.PASSED):
        self.failures = failures
        self.status = status
        self.attempts: Dict[str, int] = {}

    async def get_verdict(self, unit: str) -> QualityGateResult:
        self.attempts[unit] = self.attempts.get(unit, 0) + 1
        if self.attempts[unit] <= self.failures:
            raise GateFetchError(unit, "connection reset")
        return QualityGateResult(unit_name=unit, status=self.status)


class FakeStatusClient(CommitStatusClient):
    """Keeps the last status per (commit, context) like a VCS host does."""

    def __init__(self, context: str = "release-guard", fail: bool = False):
        self.context = context
        self.fail = fail
        self.calls: List[tuple] = []
        self.statuses: Dict[tuple, tuple] = {}

    async def set_commit_status(self, commit_id: str, state: CommitState, description: str,
                                details_url: Optional[str] = None) -> None:
        self.calls.append((commit_id, state, description, details_url))
        if self.fail:
            raise StatusReportError(commit_id, "HTTP 502")
        self.statuses[(commit_id, self.context)] = (state, description, details_url)


@pytest.fixture
def paths(tmp_path):
    return PathResolver(tmp_path / "state")


@pytest.fixture
def ledger(paths):
    return VersionLedger(paths.ledger_path)


@pytest.fixture
def deployed_41(ledger):
    """Ledger stating that tag 41 is live and stable."""
    ledger.record_success("41", "40")
    return ledger


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def make_orchestrator(paths):
    """Build an orchestrator with short deadlines."""

    def _make(runtime, analysis_client=None, status_client=None, gate_enabled=None, **overrides):
        if gate_enabled is None:
            gate_enabled = analysis_client is not None
        gate = GateConfig(enabled=gate_enabled, url="http://sonar.test" if gate_enabled else None)
        reporter = StatusReporter(status_client) if status_client else None
        options = dict(
            environment="test",
            units=UNITS,
            readiness=ReadinessConfig(deadline=0.2, interval=0.01),
            lock=LockConfig(timeout=0.1, poll_interval=0.01),
            gate=gate,
            analysis_client=analysis_client,
            status_reporter=reporter,
        )
        options.update(overrides)
        return DeploymentOrchestrator(runtime, paths, **options)

    return _make
