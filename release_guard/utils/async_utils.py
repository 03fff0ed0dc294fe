# release_guard/utils/async_utils.py
"""Asynchronous operation utilities"""

import asyncio
import logging
import threading
from typing import Any, Callable, Coroutine, Dict, Optional, TypeVar

T = TypeVar('T')

logger = logging.getLogger(__name__)


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """
    Run a coroutine to completion from synchronous code

    When the caller already runs inside an event loop, the coroutine gets a
    fresh loop on a worker thread instead.

    Args:
        coro: Coroutine to run

    Returns:
        Coroutine result
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    outcome: Dict[str, Any] = {}

    def runner():
        try:
            outcome["result"] = asyncio.run(coro)
        except BaseException as e:
            outcome["error"] = e

    thread = threading.Thread(target=runner, name="run_async")
    thread.start()
    thread.join()

    if "error" in outcome:
        raise outcome["error"]
    return outcome["result"]


async def retry_async(coro_func: Callable[..., Coroutine[Any, Any, T]],
                      *args,
                      max_attempts: int = 3,
                      delay: float = 1.0,
                      backoff: float = 2.0,
                      exceptions: tuple = (Exception,),
                      **kwargs) -> T:
    """
    Retry async operation with exponential backoff

    Args:
        coro_func: Coroutine function
        *args: Function arguments
        max_attempts: Maximum attempts (including the first one)
        delay: Initial delay between retries
        backoff: Backoff multiplier
        exceptions: Exceptions to catch
        **kwargs: Function keyword arguments

    Returns:
        Function result

    Raises:
        Last exception if all attempts fail
    """
    current_delay = delay

    for attempt in range(1, max_attempts + 1):
        try:
            return await coro_func(*args, **kwargs)
        except exceptions as e:
            if attempt >= max_attempts:
                raise
            logger.debug(f"Attempt {attempt}/{max_attempts} failed ({e}), retrying in {current_delay:g}s")
            await asyncio.sleep(current_delay)
            current_delay *= backoff

    raise ValueError("max_attempts must be >= 1")


async def sleep_or_event(delay: float, event: Optional[asyncio.Event]) -> bool:
    """
    Sleep for ``delay`` seconds or until ``event`` is set

    Returns:
        True if the event fired before the delay elapsed
    """
    if event is None:
        await asyncio.sleep(delay)
        return False

    if event.is_set():
        return True

    try:
        await asyncio.wait_for(event.wait(), timeout=delay)
        return True
    except asyncio.TimeoutError:
        return False


class AsyncPool:
    """Simple async task pool"""

    def __init__(self, max_workers: int = 10):
        self.max_workers = max_workers
        self.semaphore = asyncio.Semaphore(max_workers)
        self.tasks = []

    def submit(self, coro: Coroutine) -> asyncio.Task:
        """Submit task to pool"""

        async def wrapped():
            try:
                async with self.semaphore:
                    return await coro
            finally:
                # Cancelled while queued: the coroutine never started
                coro.close()

        task = asyncio.create_task(wrapped())
        self.tasks.append(task)
        return task

    async def wait_all(self,
                       timeout: Optional[float] = None,
                       event: Optional[asyncio.Event] = None):
        """
        Wait for submitted tasks, cancelling whatever is still running at
        ``timeout`` or once ``event`` is set

        Returns:
            Tuple of (done, cancelled) task sets
        """
        if not self.tasks:
            return set(), set()

        loop = asyncio.get_running_loop()
        ends_at = None if timeout is None else loop.time() + timeout
        watcher = None if event is None else asyncio.ensure_future(event.wait())
        pending = set(self.tasks)
        try:
            # Tasks always get one pass, even with no time left
            while pending:
                remaining = None if ends_at is None else max(ends_at - loop.time(), 0)
                watched = pending if watcher is None else pending | {watcher}
                finished, _ = await asyncio.wait(
                    watched, timeout=remaining, return_when=asyncio.FIRST_COMPLETED
                )
                pending -= finished
                if watcher is not None and watcher.done():
                    break
                if ends_at is not None and loop.time() >= ends_at:
                    break
        finally:
            if watcher is not None:
                watcher.cancel()

        done = set(self.tasks) - pending
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        self.tasks = []
        return done, pending

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
        self.tasks = []
