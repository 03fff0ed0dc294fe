"""Snapshots of deployment state taken before any mutating step"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .path_resolver import PathResolver
from .version_ledger import VersionLedger
from ..exceptions import BackupNotFoundError, LedgerError, SnapshotError
from ..models import Backup, DeploymentAttempt
from ..runtime.base import ContainerRuntime, RuntimeOperationError
from ..utils.file_utils import read_json_async, write_json_durable

logger = logging.getLogger(__name__)


class BackupManager:
    """Creates, stores and loads Backup records

    Backups are write-once: an existing record is never overwritten, and
    nothing here deletes them.
    """

    def __init__(self, runtime: ContainerRuntime, ledger: VersionLedger, paths: PathResolver):
        """Initialize backup manager

        Args:
            runtime: Container runtime to read the live stack from
            ledger: Version ledger providing the current tag
            paths: State path resolver
        """
        self.runtime = runtime
        self.ledger = ledger
        self.paths = paths

    @staticmethod
    def make_backup_id(attempt_id: str, created_at: datetime) -> str:
        """Backup id derived from attempt id and creation time"""
        return f"{attempt_id}-{created_at.strftime('%Y%m%dT%H%M%S%fZ')}"

    async def snapshot(self, attempt: DeploymentAttempt) -> Backup:
        """Capture descriptor, running units and current tag

        The record is fsync'ed before this returns.

        Raises:
            SnapshotError: If anything could not be read or written
        """
        try:
            descriptor = await self.runtime.read_descriptor()
        except RuntimeOperationError as e:
            raise SnapshotError(f"Cannot read deployment descriptor: {e}") from e

        try:
            inventory = await self.runtime.list_units()
        except RuntimeOperationError as e:
            raise SnapshotError(f"Cannot query unit inventory: {e}") from e

        try:
            previous_tag = self.ledger.load().current_tag
        except LedgerError as e:
            raise SnapshotError(f"Cannot read version ledger: {e}") from e

        created_at = datetime.now(timezone.utc)
        backup = Backup(
            id=self.make_backup_id(attempt.id, created_at),
            attempt_id=attempt.id,
            deployment_descriptor=descriptor,
            unit_inventory=tuple(inventory),
            previous_tag=previous_tag,
            created_at=created_at,
        )

        path = self.paths.get_backup_path(attempt.id, backup.id)
        try:
            await write_json_durable(path, backup.to_dict(), exclusive=True)
        except OSError as e:
            # FileExistsError included: a backup is never overwritten
            raise SnapshotError(f"Cannot record backup {backup.id}: {e}") from e

        logger.info(
            f"Backup {backup.id} recorded: previous tag {previous_tag}, "
            f"{len(inventory)} running unit(s)"
        )
        return backup

    async def load(self, backup_id: str, attempt_id: Optional[str] = None) -> Backup:
        """Load a backup record

        Args:
            backup_id: Backup identifier
            attempt_id: Owning attempt (looked up from the id when omitted)

        Raises:
            BackupNotFoundError: If the record is missing or corrupt
        """
        path = self._find_backup_path(backup_id, attempt_id)
        if path is None:
            raise BackupNotFoundError(backup_id)

        try:
            return Backup.from_dict(await read_json_async(path))
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise BackupNotFoundError(backup_id, f"is unreadable: {e}") from e

    def list_backups(self, attempt_id: Optional[str] = None) -> List[Path]:
        """List backup record files"""
        return self.paths.find_backup_files(attempt_id)

    def _find_backup_path(self, backup_id: str, attempt_id: Optional[str]) -> Optional[Path]:
        if attempt_id is not None:
            path = self.paths.get_backup_path(attempt_id, backup_id)
            return path if path.exists() else None

        for path in self.paths.find_backup_files():
            if path.stem == backup_id:
                return path
        return None
