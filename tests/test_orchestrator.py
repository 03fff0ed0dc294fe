"""End-to-end attempts through the orchestrator with an in-memory runtime."""

import asyncio

import pytest

from release_guard.constants import CommitState, ErrorCode, ExitCode
from release_guard.core import EnvironmentLock, VersionLedger
from release_guard.exceptions import ConfigError
from release_guard.models import AttemptReport, AttemptState, GateStatus, ReadinessConfig
from release_guard.runtime.base import HealthState, RuntimeOperationError
from release_guard.utils.file_utils import read_json

from .conftest import FakeAnalysisClient, FakeRuntime, FakeStatusClient, UNITS


def mutating_calls(runtime):
    return [name for name in runtime.call_names() if name in ("stop", "remove", "pull", "start")]


class SlowPullRuntime(FakeRuntime):
    """Pulls of tag 42 images hang."""

    async def pull(self, image):
        await super().pull(image)
        if image.endswith(":42"):
            await asyncio.sleep(5)


async def cancel_after(coro, delay):
    task = asyncio.ensure_future(coro)
    await asyncio.sleep(delay)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


class TestSuccessfulRelease:

    @pytest.mark.asyncio
    async def test_release_updates_ledger(self, runtime, deployed_41, paths, make_orchestrator):
        report = await make_orchestrator(runtime).run("42", attempt_id="200")

        assert report.state == AttemptState.SUCCEEDED
        assert report.exit_code == ExitCode.SUCCEEDED
        assert report.attempt.previous_tag == "41"
        assert report.attempt.backup_id.startswith("200-")
        assert runtime.tag == "42"

        record = VersionLedger(paths.ledger_path).load()
        assert record.current_tag == "42"
        assert record.stable_tag == "42"
        assert record.last_attempt_id == "200"

    @pytest.mark.asyncio
    async def test_state_history(self, runtime, deployed_41, make_orchestrator):
        report = await make_orchestrator(runtime).run("42", attempt_id="200")

        assert [state for state, _ in report.attempt.history] == [
            AttemptState.PENDING,
            AttemptState.BACKING_UP,
            AttemptState.DEPLOYING,
            AttemptState.VERIFYING,
            AttemptState.SUCCEEDED,
        ]
        assert report.attempt.ended_at is not None

    @pytest.mark.asyncio
    async def test_first_release_on_empty_environment(self, ledger, paths, make_orchestrator):
        runtime = FakeRuntime(tag=None)
        report = await make_orchestrator(runtime).run("1", attempt_id="1")

        assert report.state == AttemptState.SUCCEEDED
        assert report.attempt.previous_tag is None
        assert VersionLedger(paths.ledger_path).load().current_tag == "1"

    @pytest.mark.asyncio
    async def test_report_file_round_trips(self, runtime, deployed_41, paths, make_orchestrator):
        report = await make_orchestrator(runtime).run("42", attempt_id="200")

        stored = AttemptReport.from_dict(read_json(paths.get_attempt_report_path("200")))
        assert stored.state == AttemptState.SUCCEEDED
        assert stored.exit_code == report.exit_code
        assert stored.attempt.backup_id == report.attempt.backup_id
        assert stored.summary == report.summary

    @pytest.mark.asyncio
    async def test_requires_units(self, runtime, make_orchestrator):
        with pytest.raises(ConfigError):
            await make_orchestrator(runtime, units=[]).run("42")

    @pytest.mark.asyncio
    async def test_requires_tag(self, runtime, make_orchestrator):
        with pytest.raises(ConfigError):
            await make_orchestrator(runtime).run("")


class TestRollbackPath:

    @pytest.mark.asyncio
    async def test_pull_failure_rolls_back(self, runtime, deployed_41, paths, make_orchestrator):
        runtime.bad_images = {"worker:42"}

        report = await make_orchestrator(runtime).run("42", attempt_id="201")

        assert report.state == AttemptState.ROLLED_BACK
        assert report.exit_code == ExitCode.ROLLED_BACK
        assert report.error_code == ErrorCode.PULL_FAILED
        assert report.rollback.restored_tag == "41"
        assert runtime.tag == "41"
        assert report.attempt.error[0].startswith("[RG004] PullError")

        record = VersionLedger(paths.ledger_path).load()
        assert record.current_tag == "41"
        assert record.stable_tag == "41"
        assert record.last_attempt_id == "201"

    @pytest.mark.asyncio
    async def test_unhealthy_units_roll_back(self, runtime, deployed_41, paths, make_orchestrator):
        runtime.health_by_tag["42"] = {
            "worker": HealthState.UNHEALTHY,
            "web": HealthState.UNKNOWN,
        }

        report = await make_orchestrator(runtime).run("42", attempt_id="202")

        assert report.state == AttemptState.ROLLED_BACK
        assert report.error_code == ErrorCode.READINESS_TIMEOUT
        assert "worker, web" in report.attempt.error[0]
        assert VersionLedger(paths.ledger_path).load().current_tag == "41"
        assert paths.get_rollback_report_path("202").exists()
        assert report.attempt.history[-2][0] == AttemptState.ROLLING_BACK

    @pytest.mark.asyncio
    async def test_rollback_restores_backup_of_this_attempt(self, runtime, deployed_41, paths,
                                                            make_orchestrator):
        orchestrator = make_orchestrator(runtime)
        first = await orchestrator.run("42", attempt_id="300")
        assert first.state == AttemptState.SUCCEEDED

        runtime.bad_start_tags = {"43"}
        second = await orchestrator.run("43", attempt_id="301")

        assert second.state == AttemptState.ROLLED_BACK
        assert second.error_code == ErrorCode.START_FAILED
        assert second.rollback.restored_tag == "42"
        assert runtime.tag == "42"

        record = VersionLedger(paths.ledger_path).load()
        assert record.current_tag == "42"
        assert record.stable_tag == "42"

    @pytest.mark.asyncio
    async def test_failed_rollback_needs_operator(self, runtime, deployed_41, paths, make_orchestrator):
        runtime.bad_images = {"api:42", "api:41"}

        report = await make_orchestrator(runtime).run("42", attempt_id="203")

        assert report.state == AttemptState.ROLLBACK_FAILED
        assert report.exit_code == ExitCode.ROLLBACK_FAILED
        assert report.requires_operator
        assert report.error_code == ErrorCode.ROLLBACK_FAILED
        assert "MANUAL INTERVENTION REQUIRED" in report.summary

        # No second rollback attempt
        assert runtime.calls.count(("pull", "api:41")) == 1
        assert "caused by original failure:" in report.attempt.error
        marker = report.attempt.error.index("caused by original failure:")
        assert report.attempt.error[marker + 1].startswith("[RG004] PullError: Cannot pull api:42")

        record = VersionLedger(paths.ledger_path).load()
        assert record.current_tag == "41"
        assert record.last_attempt_id == "40"

    @pytest.mark.asyncio
    async def test_failure_on_first_release_cannot_roll_back(self, ledger, paths, make_orchestrator):
        runtime = FakeRuntime(tag=None)
        runtime.bad_images = {"web:1"}

        report = await make_orchestrator(runtime).run("1", attempt_id="1")

        assert report.state == AttemptState.ROLLBACK_FAILED
        assert any("no previous tag" in line for line in report.attempt.error)

    @pytest.mark.asyncio
    async def test_abort_during_readiness(self, runtime, deployed_41, make_orchestrator):
        runtime.health_by_tag["42"] = {"web": HealthState.UNHEALTHY}
        abort = asyncio.Event()
        abort.set()

        report = await make_orchestrator(runtime).run("42", attempt_id="204", abort=abort)

        assert report.state == AttemptState.ROLLED_BACK
        assert report.error_code == ErrorCode.READINESS_ABORTED
        assert runtime.tag == "41"

    @pytest.mark.asyncio
    async def test_cancelled_during_readiness_rolls_back(self, runtime, deployed_41, paths,
                                                         make_orchestrator):
        runtime.health_by_tag["42"] = {"web": HealthState.UNHEALTHY}
        status = FakeStatusClient()
        orchestrator = make_orchestrator(
            runtime, status_client=status, readiness=ReadinessConfig(deadline=5, interval=0.01)
        )

        await cancel_after(orchestrator.run("42", attempt_id="216", commit_id="abc123"), 0.2)

        assert runtime.tag == "41"
        stored = AttemptReport.from_dict(read_json(paths.get_attempt_report_path("216")))
        assert stored.state == AttemptState.ROLLED_BACK
        assert stored.error_code == ErrorCode.READINESS_ABORTED
        assert stored.attempt.error[0].endswith("still unhealthy: web")
        assert paths.get_rollback_report_path("216").exists()
        assert VersionLedger(paths.ledger_path).load().current_tag == "41"
        assert status.statuses[("abc123", "release-guard")][0] == CommitState.FAILURE

    @pytest.mark.asyncio
    async def test_cancelled_during_deploy_rolls_back(self, deployed_41, paths, make_orchestrator):
        runtime = SlowPullRuntime()

        await cancel_after(make_orchestrator(runtime).run("42", attempt_id="217"), 0.1)

        assert runtime.tag == "41"
        stored = AttemptReport.from_dict(read_json(paths.get_attempt_report_path("217")))
        assert stored.state == AttemptState.ROLLED_BACK
        assert stored.error_code == ErrorCode.ATTEMPT_CANCELLED
        assert stored.attempt.error[0] == "[RG016] AttemptCancelled: Attempt cancelled while deploying"

    @pytest.mark.asyncio
    async def test_lock_released_after_cancellation(self, runtime, deployed_41, make_orchestrator):
        runtime.health_by_tag["42"] = {"web": HealthState.UNHEALTHY}
        orchestrator = make_orchestrator(runtime, readiness=ReadinessConfig(deadline=5, interval=0.01))
        await cancel_after(orchestrator.run("42", attempt_id="218"), 0.1)

        runtime.health_by_tag = {}
        report = await orchestrator.run("42", attempt_id="219")

        assert report.state == AttemptState.SUCCEEDED


class TestFailuresBeforeMutation:

    @pytest.mark.asyncio
    async def test_snapshot_failure_touches_nothing(self, runtime, deployed_41, paths, make_orchestrator):
        runtime.fail["list_units"] = RuntimeOperationError("daemon not responding")

        report = await make_orchestrator(runtime).run("42", attempt_id="205")

        assert report.state == AttemptState.FAILED
        assert report.exit_code == ExitCode.FAILED
        assert report.error_code == ErrorCode.SNAPSHOT_FAILED
        assert mutating_calls(runtime) == []
        assert paths.find_backup_files() == []
        assert VersionLedger(paths.ledger_path).load().last_attempt_id == "40"

    @pytest.mark.asyncio
    async def test_busy_environment(self, runtime, deployed_41, paths, make_orchestrator):
        holder = EnvironmentLock(paths.lock_path, "test", holder="another attempt")
        await holder.acquire()
        try:
            report = await make_orchestrator(runtime).run("42", attempt_id="206")
        finally:
            holder.release()

        assert report.state == AttemptState.FAILED
        assert report.exit_code == ExitCode.ENVIRONMENT_BUSY
        assert report.error_code == ErrorCode.ENVIRONMENT_BUSY
        assert runtime.calls == []

    @pytest.mark.asyncio
    async def test_unusable_lock_file_fails_attempt(self, runtime, deployed_41, paths, make_orchestrator,
                                                    monkeypatch):
        async def refuse(lock):
            raise PermissionError(13, "Permission denied", str(lock.path))

        monkeypatch.setattr(EnvironmentLock, "acquire", refuse)
        status = FakeStatusClient()

        report = await make_orchestrator(runtime, status_client=status).run(
            "42", attempt_id="220", commit_id="abc123"
        )

        assert report.state == AttemptState.FAILED
        assert report.exit_code == ExitCode.FAILED
        assert report.attempt.error[0].startswith("PermissionError:")
        assert runtime.calls == []
        assert paths.get_attempt_report_path("220").exists()
        assert status.statuses[("abc123", "release-guard")][0] == CommitState.FAILURE

    @pytest.mark.asyncio
    async def test_lock_released_after_attempt(self, runtime, deployed_41, make_orchestrator):
        orchestrator = make_orchestrator(runtime)
        runtime.bad_images = {"api:42"}
        await orchestrator.run("42", attempt_id="207")

        runtime.bad_images = set()
        report = await orchestrator.run("42", attempt_id="208")
        assert report.state == AttemptState.SUCCEEDED


class TestQualityGate:

    @pytest.mark.asyncio
    async def test_rejected_release_never_touches_runtime(self, runtime, deployed_41, paths,
                                                          make_orchestrator):
        analysis = FakeAnalysisClient({"api": GateStatus.FAILED, "worker": GateStatus.FAILED})
        status = FakeStatusClient()

        report = await make_orchestrator(runtime, analysis, status).run(
            "42", attempt_id="209", commit_id="abc123"
        )

        assert report.state == AttemptState.REJECTED
        assert report.exit_code == ExitCode.REJECTED
        assert report.error_code == ErrorCode.GATE_REJECTED
        assert report.gate.failed_units == ["api", "worker"]
        assert runtime.calls == []
        assert paths.find_backup_files() == []
        assert status.statuses[("abc123", "release-guard")][0] == CommitState.FAILURE
        assert report.status_reported is True

    @pytest.mark.asyncio
    async def test_single_failing_unit_is_tolerated(self, runtime, deployed_41, make_orchestrator):
        analysis = FakeAnalysisClient({"api": GateStatus.FAILED, "worker": GateStatus.PASSED})

        report = await make_orchestrator(runtime, analysis).run("42", attempt_id="210")

        assert report.state == AttemptState.SUCCEEDED
        assert report.gate.failed_units == ["api"]
        assert sorted(analysis.calls) == sorted(UNITS)

    @pytest.mark.asyncio
    async def test_skip_gate(self, runtime, deployed_41, make_orchestrator):
        analysis = FakeAnalysisClient({u: GateStatus.FAILED for u in UNITS})

        report = await make_orchestrator(runtime, analysis).run("42", attempt_id="211", skip_gate=True)

        assert report.state == AttemptState.SUCCEEDED
        assert report.gate is None
        assert analysis.calls == []

    @pytest.mark.asyncio
    async def test_evaluate_gate_without_client(self, runtime, make_orchestrator):
        with pytest.raises(ConfigError):
            await make_orchestrator(runtime).evaluate_gate()


class TestStatusReporting:

    @pytest.mark.asyncio
    async def test_success_status(self, runtime, deployed_41, make_orchestrator):
        status = FakeStatusClient()

        report = await make_orchestrator(runtime, status_client=status).run(
            "42", attempt_id="212", commit_id="abc123"
        )

        state, description, _ = status.statuses[("abc123", "release-guard")]
        assert state == CommitState.SUCCESS
        assert description == report.summary
        assert report.status_reported is True

    @pytest.mark.asyncio
    async def test_rolled_back_is_failure(self, runtime, deployed_41, make_orchestrator):
        runtime.bad_images = {"api:42"}
        status = FakeStatusClient()

        await make_orchestrator(runtime, status_client=status).run(
            "42", attempt_id="213", commit_id="abc123"
        )

        assert status.statuses[("abc123", "release-guard")][0] == CommitState.FAILURE

    @pytest.mark.asyncio
    async def test_status_failure_does_not_change_outcome(self, runtime, deployed_41, paths,
                                                          make_orchestrator):
        status = FakeStatusClient(fail=True)

        report = await make_orchestrator(runtime, status_client=status).run(
            "42", attempt_id="214", commit_id="abc123"
        )

        assert report.state == AttemptState.SUCCEEDED
        assert report.exit_code == ExitCode.SUCCEEDED
        assert report.status_reported is False
        assert len(status.calls) == 1
        assert read_json(paths.get_attempt_report_path("214"))["status_reported"] is False

    @pytest.mark.asyncio
    async def test_no_commit_no_status(self, runtime, deployed_41, make_orchestrator):
        status = FakeStatusClient()

        report = await make_orchestrator(runtime, status_client=status).run("42", attempt_id="215")

        assert status.calls == []
        assert report.status_reported is None
