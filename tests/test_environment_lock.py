"""Tests for the environment lock."""

import pytest

from release_guard.constants import ErrorCode
from release_guard.core import EnvironmentLock
from release_guard.exceptions import EnvironmentBusy


class TestEnvironmentLock:

    @pytest.mark.asyncio
    async def test_acquire_and_release(self, paths):
        lock = EnvironmentLock(paths.lock_path, "test", holder="attempt 1")

        async with lock:
            assert lock.locked
            assert "attempt 1" in paths.lock_path.read_text()

        assert not lock.locked

    @pytest.mark.asyncio
    async def test_second_holder_times_out(self, paths):
        first = EnvironmentLock(paths.lock_path, "test")
        second = EnvironmentLock(paths.lock_path, "test", timeout=0.05, poll_interval=0.01)

        async with first:
            with pytest.raises(EnvironmentBusy) as exc_info:
                await second.acquire()

        assert exc_info.value.error_code == ErrorCode.ENVIRONMENT_BUSY
        assert exc_info.value.environment == "test"
        assert not second.locked

    @pytest.mark.asyncio
    async def test_free_after_release(self, paths):
        first = EnvironmentLock(paths.lock_path, "test")
        second = EnvironmentLock(paths.lock_path, "test", timeout=0.05, poll_interval=0.01)

        await first.acquire()
        first.release()

        await second.acquire()
        assert second.locked
        second.release()

    def test_release_without_acquire_is_noop(self, paths):
        EnvironmentLock(paths.lock_path, "test").release()
