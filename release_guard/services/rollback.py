"""Restore of the last backup after a failed deploy"""

import logging
from typing import Any, Dict, List, Optional

from .deploy_executor import DeploymentExecutor
from .readiness import ReadinessVerifier
from ..constants import DEFAULT_READINESS_DEADLINE
from ..core.path_resolver import PathResolver
from ..exceptions import RollbackFailed, error_chain
from ..models import Backup, DeploymentAttempt, RollbackReport
from ..runtime.base import ContainerRuntime
from ..utils.file_utils import write_json_durable

logger = logging.getLogger(__name__)


class RollbackController:
    """Redeploys the previous tag from a Backup, exactly once

    Any failure surfaces as ``RollbackFailed``; nothing here retries.
    """

    def __init__(self,
                 runtime: ContainerRuntime,
                 executor: DeploymentExecutor,
                 verifier: ReadinessVerifier,
                 paths: PathResolver,
                 deadline: float = DEFAULT_READINESS_DEADLINE):
        self.runtime = runtime
        self.executor = executor
        self.verifier = verifier
        self.paths = paths
        self.deadline = deadline

    def _check_backup(self, attempt: DeploymentAttempt, backup: Optional[Backup]) -> Backup:
        if backup is None:
            raise ValueError("no backup recorded for this attempt")
        if backup.attempt_id != attempt.id:
            raise ValueError(f"backup {backup.id} belongs to attempt {backup.attempt_id}")
        if not backup.previous_tag:
            raise ValueError(f"backup {backup.id} has no previous tag to restore")
        if not backup.deployment_descriptor:
            raise ValueError(f"backup {backup.id} has an empty deployment descriptor")
        return backup

    async def rollback(self,
                       attempt: DeploymentAttempt,
                       backup: Optional[Backup],
                       cause: Optional[BaseException] = None) -> RollbackReport:
        """Restore ``backup`` and verify the restored stack

        Args:
            attempt: The failed attempt
            backup: Backup taken by this attempt
            cause: Failure that triggered the rollback

        Returns:
            The rollback report, already written to disk

        Raises:
            RollbackFailed: On any error; the stack then needs a human
        """
        context: Dict[str, Any] = {
            "attempt_id": attempt.id,
            "failed_tag": attempt.target_tag,
            "backup_id": backup.id if backup else None,
            "restored_tag": backup.previous_tag if backup else None,
        }
        step = "validate backup"

        try:
            backup = self._check_backup(attempt, backup)
            units: List[str] = backup.unit_names or list(attempt.units)
            logger.warning(
                f"Rolling back attempt {attempt.id}: {attempt.target_tag} -> "
                f"{backup.previous_tag} from backup {backup.id}"
            )

            step = "restore descriptor"
            await self.runtime.write_descriptor(backup.deployment_descriptor)

            step = "redeploy"
            await self.executor.deploy(backup.previous_tag, units)

            step = "verify restored stack"
            await self.verifier.wait_healthy(units, self.deadline)

            step = "write rollback report"
            report = RollbackReport(
                attempt_id=attempt.id,
                backup_id=backup.id,
                failed_tag=attempt.target_tag,
                restored_tag=backup.previous_tag,
                unit_inventory=list(backup.unit_inventory),
                cause=error_chain(cause),
            )
            await write_json_durable(self.paths.get_rollback_report_path(attempt.id), report.to_dict())

        except Exception as e:
            context["step"] = step
            context["error"] = f"{type(e).__name__}: {e}"
            logger.error(f"Rollback of attempt {attempt.id} failed during '{step}': {e}")
            raise RollbackFailed(
                f"Rollback failed during '{step}': {e}",
                cause=cause,
                context=context,
            ) from e

        logger.warning(f"Rollback of attempt {attempt.id} restored tag {report.restored_tag}")
        return report
