"""Readiness polling for a freshly started stack"""

import asyncio
import logging
from typing import List, Optional, Sequence

from ..constants import DEFAULT_READINESS_INTERVAL
from ..exceptions import ReadinessAborted, ReadinessTimeout
from ..runtime.base import ContainerRuntime, HealthState, RuntimeOperationError
from ..utils.async_utils import AsyncPool, sleep_or_event

logger = logging.getLogger(__name__)


class ReadinessVerifier:
    """Polls unit liveness on a fixed cadence until all are healthy"""

    def __init__(self, runtime: ContainerRuntime, interval: float = DEFAULT_READINESS_INTERVAL):
        self.runtime = runtime
        self.interval = interval
        # Units not yet healthy in the current or latest wait
        self.last_unhealthy: List[str] = []

    async def _probe(self, unit: str) -> HealthState:
        try:
            return await self.runtime.inspect_health(unit)
        except RuntimeOperationError as e:
            logger.debug(f"Health probe for {unit} failed: {e}")
            return HealthState.UNKNOWN

    async def poll_once(self,
                        units: Sequence[str],
                        timeout: Optional[float] = None,
                        abort: Optional[asyncio.Event] = None) -> List[str]:
        """Probe every unit once

        Probes still running after ``timeout`` or once ``abort`` is set are
        cancelled and their units count as not healthy.

        Returns:
            Units that are not healthy
        """
        async with AsyncPool(max_workers=max(len(units), 1)) as pool:
            probes = [(unit, pool.submit(self._probe(unit))) for unit in units]
            await pool.wait_all(timeout=timeout, event=abort)

        unhealthy = []
        for unit, task in probes:
            if task.cancelled():
                logger.debug(f"Health probe for {unit} cut off")
                unhealthy.append(unit)
            elif task.result() != HealthState.HEALTHY:
                unhealthy.append(unit)
        return unhealthy

    async def wait_healthy(self,
                           units: Sequence[str],
                           deadline: float,
                           abort: Optional[asyncio.Event] = None) -> None:
        """Wait until every unit reports healthy in the same round

        Args:
            units: Units to watch
            deadline: Seconds allowed
            abort: Event set when the enclosing attempt is aborted

        Raises:
            ReadinessTimeout: Deadline passed with units still unhealthy
            ReadinessAborted: ``abort`` fired first
        """
        loop = asyncio.get_running_loop()
        ends_at = loop.time() + deadline
        self.last_unhealthy = list(units)
        rounds = 0

        while True:
            rounds += 1
            unhealthy = await self.poll_once(units, max(ends_at - loop.time(), 0), abort)
            self.last_unhealthy = unhealthy
            if not unhealthy:
                logger.info(f"All {len(units)} unit(s) healthy after {rounds} round(s)")
                return

            if abort is not None and abort.is_set():
                raise ReadinessAborted(unhealthy, deadline)

            remaining = ends_at - loop.time()
            if remaining <= 0:
                raise ReadinessTimeout(unhealthy, deadline)

            logger.debug(f"Waiting on {', '.join(unhealthy)} ({remaining:.1f}s left)")
            if await sleep_or_event(min(self.interval, remaining), abort):
                raise ReadinessAborted(unhealthy, deadline)
