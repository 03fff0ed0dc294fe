"""Quality gate aggregation over independently analyzed units"""

import asyncio
import logging
from typing import Dict, Iterable, List, Sequence

from ..clients.analysis import AnalysisClient
from ..constants import (
    DEFAULT_GATE_MAX_FAILURES,
    DEFAULT_GATE_MAX_WORKERS,
    DEFAULT_GATE_FETCH_TIMEOUT,
    DEFAULT_GATE_TIMEOUT,
)
from ..exceptions import GateFetchError
from ..models import GateDecision, GateReport, GateStatus, QualityGateResult
from ..utils.async_utils import AsyncPool

logger = logging.getLogger(__name__)


class QualityGateAggregator:
    """Turns per-unit verdicts into one PASS/FAIL decision

    A unit is acceptable when its verdict is PASSED or NO_DATA. The gate
    passes while at most ``max_failures`` units are not acceptable. Fetch
    errors and timeouts count as FAILED for the unit concerned. Verdicts
    are fetched once per evaluation; retrying is left to the caller.
    """

    def __init__(self,
                 client: AnalysisClient,
                 units: Sequence[str],
                 max_failures: int = DEFAULT_GATE_MAX_FAILURES,
                 max_workers: int = DEFAULT_GATE_MAX_WORKERS,
                 fetch_timeout: float = DEFAULT_GATE_FETCH_TIMEOUT,
                 timeout: float = DEFAULT_GATE_TIMEOUT):
        if max_failures < 0:
            raise ValueError("max_failures must be >= 0")
        if not units:
            raise ValueError("Quality gate needs at least one unit")

        self.client = client
        self.units = list(dict.fromkeys(units))
        self.max_failures = max_failures
        self.max_workers = max_workers
        self.fetch_timeout = fetch_timeout
        self.timeout = timeout

    @staticmethod
    def decide(results: Iterable[QualityGateResult],
               max_failures: int = DEFAULT_GATE_MAX_FAILURES) -> GateDecision:
        """Apply the threshold policy to a set of verdicts"""
        failures = sum(1 for r in results if not r.status.is_acceptable)
        return GateDecision.PASS if failures <= max_failures else GateDecision.FAIL

    async def _fetch(self, unit: str) -> QualityGateResult:
        try:
            result = await asyncio.wait_for(self.client.get_verdict(unit), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Verdict fetch for {unit} timed out after {self.fetch_timeout:g}s")
            return QualityGateResult(unit_name=unit, status=GateStatus.FAILED,
                                     detail=f"fetch timed out after {self.fetch_timeout:g}s")
        except GateFetchError as e:
            logger.warning(str(e))
            return QualityGateResult(unit_name=unit, status=GateStatus.FAILED, detail=str(e))
        except Exception as e:
            logger.warning(f"Verdict fetch for {unit} failed: {e}")
            return QualityGateResult(unit_name=unit, status=GateStatus.FAILED,
                                     detail=f"{type(e).__name__}: {e}")

        if result.unit_name != unit:
            result.unit_name = unit
        return result

    async def evaluate(self) -> GateReport:
        """Fetch all verdicts concurrently and decide"""
        results: Dict[str, QualityGateResult] = {}

        async with AsyncPool(max_workers=self.max_workers) as pool:
            tasks = {unit: pool.submit(self._fetch(unit)) for unit in self.units}
            await pool.wait_all(timeout=self.timeout)

        for unit, task in tasks.items():
            if task.done() and not task.cancelled():
                results[unit] = task.result()
            else:
                logger.warning(f"Verdict fetch for {unit} still running at aggregation timeout")
                results[unit] = QualityGateResult(
                    unit_name=unit,
                    status=GateStatus.FAILED,
                    detail=f"aggregation timed out after {self.timeout:g}s",
                )

        ordered: List[QualityGateResult] = [results[unit] for unit in self.units]
        decision = self.decide(ordered, self.max_failures)
        report = GateReport(decision=decision, results=ordered, max_failures=self.max_failures)

        logger.info(
            f"Quality gate {decision.value}: {len(report.failed_units)} of "
            f"{len(ordered)} unit(s) not acceptable (tolerated: {self.max_failures})"
        )
        return report
