"""Quality analysis service clients"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional

import httpx

from ..constants import DEFAULT_HTTP_TIMEOUT
from ..exceptions import GateFetchError
from ..models import GateStatus, QualityGateResult
from ..utils.async_utils import retry_async

logger = logging.getLogger(__name__)


class AnalysisClient(ABC):
    """Named query API over per-unit analysis verdicts"""

    @abstractmethod
    async def get_verdict(self, unit: str) -> QualityGateResult:
        """
        Fetch the current verdict for a unit

        Raises:
            GateFetchError: If the verdict cannot be obtained
        """
        pass

    async def close(self) -> None:
        """Release client resources"""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class SonarQubeClient(AnalysisClient):
    """Reads project quality gate status from a SonarQube server"""

    # projectStatus.status -> verdict
    STATUS_MAP = {
        "OK": GateStatus.PASSED,
        "WARN": GateStatus.PASSED,
        "ERROR": GateStatus.FAILED,
        "NONE": GateStatus.NO_DATA,
    }

    def __init__(self,
                 base_url: str,
                 token: Optional[str] = None,
                 project_key_template: str = "{unit}",
                 timeout: float = DEFAULT_HTTP_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.project_key_template = project_key_template
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip('/'),
            auth=(token, "") if token else None,
            timeout=timeout,
            transport=transport,
        )

    async def get_verdict(self, unit: str) -> QualityGateResult:
        project_key = self.project_key_template.format(unit=unit)

        try:
            response = await self._client.get(
                "/api/qualitygates/project_status",
                params={"projectKey": project_key}
            )
        except httpx.HTTPError as e:
            raise GateFetchError(unit, str(e) or type(e).__name__) from e

        # Project never analyzed yet
        if response.status_code == 404:
            return QualityGateResult(unit_name=unit, status=GateStatus.NO_DATA,
                                     detail=f"no analysis for {project_key}")

        if response.status_code >= 400:
            raise GateFetchError(unit, f"HTTP {response.status_code}")

        try:
            status = response.json()["projectStatus"]["status"]
        except (ValueError, KeyError, TypeError) as e:
            raise GateFetchError(unit, f"malformed response: {e}") from e

        verdict = self.STATUS_MAP.get(status, GateStatus.PENDING)
        return QualityGateResult(
            unit_name=unit,
            status=verdict,
            fetched_at=datetime.now(timezone.utc),
            detail=f"{project_key}: {status}",
        )

    async def close(self) -> None:
        await self._client.aclose()


class RetryingAnalysisClient(AnalysisClient):
    """Bounded retry with exponential backoff around another client

    This is the enclosing-caller retry: the aggregator itself never retries.
    """

    def __init__(self, inner: AnalysisClient, retries: int = 2,
                 delay: float = 1.0, backoff: float = 2.0):
        self.inner = inner
        self.retries = retries
        self.delay = delay
        self.backoff = backoff

    async def get_verdict(self, unit: str) -> QualityGateResult:
        return await retry_async(
            self.inner.get_verdict,
            unit,
            max_attempts=self.retries + 1,
            delay=self.delay,
            backoff=self.backoff,
            exceptions=(GateFetchError,),
        )

    async def close(self) -> None:
        await self.inner.close()
