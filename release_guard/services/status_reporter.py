"""Pushes the attempt outcome to the VCS status endpoint"""

import logging
from typing import Optional

from ..clients.vcs import CommitStatusClient
from ..constants import CommitState
from ..exceptions import StatusReportError
from ..models import AttemptReport, AttemptState
from ..models.config import StatusConfig

logger = logging.getLogger(__name__)


class StatusReporter:
    """Reports pass/fail per commit; never fails the pipeline"""

    def __init__(self, client: Optional[CommitStatusClient], config: Optional[StatusConfig] = None):
        self.client = client
        self.config = config or StatusConfig()

    @staticmethod
    def commit_state(report: AttemptReport) -> CommitState:
        if report.attempt.state == AttemptState.SUCCEEDED:
            return CommitState.SUCCESS
        return CommitState.FAILURE

    async def report(self, report: AttemptReport) -> bool:
        """Publish the outcome of a finished attempt

        Returns:
            True if the status was accepted, False if skipped or failed
        """
        attempt = report.attempt
        if self.client is None or not attempt.commit_id:
            return False

        state = self.commit_state(report)
        details_url = self.config.render_details_url(attempt.id, attempt.target_tag)

        try:
            await self.client.set_commit_status(
                attempt.commit_id,
                state,
                report.summary,
                details_url,
            )
        except StatusReportError as e:
            logger.warning(f"{e} (attempt {attempt.id} outcome unaffected)")
            return False
        except Exception as e:
            logger.warning(
                f"Status report for {attempt.commit_id} failed: {type(e).__name__}: {e} "
                f"(attempt {attempt.id} outcome unaffected)"
            )
            return False

        logger.info(f"Commit {attempt.commit_id} marked {state.value}")
        return True
