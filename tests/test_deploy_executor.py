"""Tests for the stop-then-start deployment executor."""

import pytest

from release_guard.constants import ErrorCode
from release_guard.exceptions import PullError, StartError, TeardownError
from release_guard.models import RuntimeConfig
from release_guard.runtime.base import RuntimeOperationError, UnitNotRunningError
from release_guard.services import DeploymentExecutor

from .conftest import UNITS


@pytest.fixture
def executor(runtime):
    return DeploymentExecutor(runtime)


class TestDeploy:

    @pytest.mark.asyncio
    async def test_teardown_pull_start_in_order(self, executor, runtime):
        await executor.deploy("42", UNITS)

        assert runtime.calls == [
            ("list_units",),
            ("stop", "web"), ("remove", "web"),
            ("stop", "worker"), ("remove", "worker"),
            ("stop", "api"), ("remove", "api"),
            ("pull", "api:42"), ("pull", "worker:42"), ("pull", "web:42"),
            ("read_descriptor",),
            ("start", "42"),
        ]
        assert runtime.tag == "42"

    @pytest.mark.asyncio
    async def test_already_stopped_is_success(self, executor, runtime):
        runtime.fail["stop"] = UnitNotRunningError("no such container", "api")

        await executor.deploy("42", UNITS)

        assert runtime.tag == "42"

    @pytest.mark.asyncio
    async def test_teardown_error(self, executor, runtime):
        runtime.fail["remove"] = RuntimeOperationError("device busy")

        with pytest.raises(TeardownError) as exc_info:
            await executor.deploy("42", UNITS)

        assert exc_info.value.error_code == ErrorCode.TEARDOWN_FAILED
        assert exc_info.value.unit == "web"
        assert "pull" not in runtime.call_names()

    @pytest.mark.asyncio
    async def test_single_pull_failure_is_fatal(self, executor, runtime):
        runtime.bad_images = {"worker:42"}

        with pytest.raises(PullError) as exc_info:
            await executor.deploy("42", UNITS)

        assert exc_info.value.unit == "worker"
        assert ("pull", "web:42") not in runtime.calls
        assert "start" not in runtime.call_names()

    @pytest.mark.asyncio
    async def test_start_error(self, executor, runtime):
        runtime.bad_start_tags = {"42"}

        with pytest.raises(StartError) as exc_info:
            await executor.deploy("42", UNITS)

        assert exc_info.value.error_code == ErrorCode.START_FAILED
        assert exc_info.value.unit == "web"

    @pytest.mark.asyncio
    async def test_image_template(self, runtime):
        config = RuntimeConfig(image_template="{registry}/shop/{unit}:{tag}", registry="registry.local")
        executor = DeploymentExecutor(runtime, config)

        images = await executor.pull_images("42", ["api"])

        assert images == ["registry.local/shop/api:42"]
