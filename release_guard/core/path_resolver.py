"""Path resolution for an environment's persisted state"""

from pathlib import Path
from typing import List, Union

from ..constants import (
    LEDGER_FILE,
    BACKUPS_DIR,
    REPORTS_DIR,
    LOCK_FILE,
    ATTEMPT_REPORT_PATTERN,
    ROLLBACK_REPORT_PATTERN,
    BACKUP_FILE_PATTERN,
)


class PathResolver:
    """Resolves state file locations under an environment state directory

    Layout::

        <state_dir>/
        ├── ledger.json
        ├── .lock
        ├── backups/<attempt_id>/<backup_id>.json
        └── reports/<attempt_id>.json, <attempt_id>.rollback.json
    """

    def __init__(self, state_dir: Union[str, Path]):
        """Initialize path resolver

        Args:
            state_dir: Environment state directory
        """
        self.state_dir = Path(state_dir).resolve()

    @property
    def ledger_path(self) -> Path:
        return self.state_dir / LEDGER_FILE

    @property
    def lock_path(self) -> Path:
        return self.state_dir / LOCK_FILE

    @property
    def backups_dir(self) -> Path:
        return self.state_dir / BACKUPS_DIR

    @property
    def reports_dir(self) -> Path:
        return self.state_dir / REPORTS_DIR

    def get_backup_path(self, attempt_id: str, backup_id: str) -> Path:
        """Get path for a backup record

        Args:
            attempt_id: Owning attempt
            backup_id: Backup identifier

        Returns:
            Path to the backup JSON file
        """
        return self.backups_dir / str(attempt_id) / BACKUP_FILE_PATTERN.format(backup_id=backup_id)

    def get_attempt_report_path(self, attempt_id: str) -> Path:
        return self.reports_dir / ATTEMPT_REPORT_PATTERN.format(attempt_id=attempt_id)

    def get_rollback_report_path(self, attempt_id: str) -> Path:
        return self.reports_dir / ROLLBACK_REPORT_PATTERN.format(attempt_id=attempt_id)

    def find_backup_files(self, attempt_id: str = None) -> List[Path]:
        """List backup files, oldest attempt directory first"""
        if not self.backups_dir.exists():
            return []

        pattern = f"{attempt_id}/*.json" if attempt_id else "*/*.json"
        return sorted(self.backups_dir.glob(pattern))

    def ensure_directories(self) -> None:
        """Create the state directory tree"""
        for path in (self.state_dir, self.backups_dir, self.reports_dir):
            path.mkdir(parents=True, exist_ok=True)
