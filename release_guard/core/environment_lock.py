"""Advisory lock serializing attempts against one environment"""

import asyncio
import fcntl
import logging
import os
from pathlib import Path
from typing import Optional

from ..constants import DEFAULT_LOCK_POLL_INTERVAL, DEFAULT_LOCK_TIMEOUT
from ..exceptions import EnvironmentBusy

logger = logging.getLogger(__name__)


class EnvironmentLock:
    """``flock`` on the environment lock file with a bounded wait

    Usage::

        async with EnvironmentLock(path, "prod", holder="attempt 42"):
            ...
    """

    def __init__(self,
                 path: Path,
                 environment: str,
                 timeout: float = DEFAULT_LOCK_TIMEOUT,
                 poll_interval: float = DEFAULT_LOCK_POLL_INTERVAL,
                 holder: Optional[str] = None):
        self.path = Path(path)
        self.environment = environment
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.holder = holder
        self._fd: Optional[int] = None

    @property
    def locked(self) -> bool:
        return self._fd is not None

    def _try_lock(self, fd: int) -> bool:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            return True
        except BlockingIOError:
            return False

    async def acquire(self) -> None:
        """Acquire the lock, waiting at most ``timeout`` seconds

        Raises:
            EnvironmentBusy: If another holder keeps the lock past the timeout
        """
        if self.locked:
            raise RuntimeError("EnvironmentLock is not reentrant")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout
        try:
            while not self._try_lock(fd):
                remaining = deadline - loop.time()
                if remaining <= 0:
                    raise EnvironmentBusy(self.environment, self.timeout)
                await asyncio.sleep(min(self.poll_interval, remaining))
        except BaseException:
            os.close(fd)
            raise

        # Holder info is for operators only; the lock is the flock itself
        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()} {self.holder or ''}\n".encode())
        self._fd = fd
        logger.debug(f"Environment lock acquired: {self.path}")

    def release(self) -> None:
        """Release the lock (no-op when not held)"""
        if self._fd is None:
            return

        fd, self._fd = self._fd, None
        try:
            os.ftruncate(fd, 0)
            fcntl.flock(fd, fcntl.LOCK_UN)
        finally:
            os.close(fd)
        logger.debug(f"Environment lock released: {self.path}")

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()
