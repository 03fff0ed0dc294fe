"""VCS commit status clients"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from ..constants import CommitState, DEFAULT_HTTP_TIMEOUT, DEFAULT_STATUS_CONTEXT
from ..exceptions import StatusReportError

logger = logging.getLogger(__name__)

# GitHub rejects longer descriptions
MAX_DESCRIPTION_LENGTH = 140


class CommitStatusClient(ABC):
    """Sets the status of a commit; repeated identical calls are safe"""

    @abstractmethod
    async def set_commit_status(self,
                                commit_id: str,
                                state: CommitState,
                                description: str,
                                details_url: Optional[str] = None) -> None:
        """
        Publish a commit status

        Raises:
            StatusReportError: If the endpoint rejects or cannot be reached
        """
        pass

    async def close(self) -> None:
        """Release client resources"""
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class GitHubStatusClient(CommitStatusClient):
    """GitHub commit statuses API"""

    def __init__(self,
                 repository: str,
                 token: Optional[str] = None,
                 api_url: str = "https://api.github.com",
                 context: str = DEFAULT_STATUS_CONTEXT,
                 timeout: float = DEFAULT_HTTP_TIMEOUT,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.repository = repository.strip('/')
        self.context = context

        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=api_url.rstrip('/'),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def set_commit_status(self,
                                commit_id: str,
                                state: CommitState,
                                description: str,
                                details_url: Optional[str] = None) -> None:
        payload = {
            "state": state.value,
            "description": description[:MAX_DESCRIPTION_LENGTH],
            "context": self.context,
        }
        if details_url:
            payload["target_url"] = details_url

        try:
            response = await self._client.post(
                f"/repos/{self.repository}/statuses/{commit_id}",
                json=payload
            )
        except httpx.HTTPError as e:
            raise StatusReportError(commit_id, str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            raise StatusReportError(commit_id, f"HTTP {response.status_code}: {response.text[:200]}")

        logger.debug(f"Commit status {state.value} set on {commit_id}")

    async def close(self) -> None:
        await self._client.aclose()
