"""Durable record of the deployed and last known-good tags"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ..exceptions import LedgerError
from ..models import LedgerRecord
from ..utils.file_utils import read_json, write_json_atomic

logger = logging.getLogger(__name__)


class VersionLedger:
    """Single small JSON record, replaced atomically on every write

    Only the orchestrator writes it, once per attempt, while holding the
    environment lock.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._record: Optional[LedgerRecord] = None

    @property
    def record(self) -> LedgerRecord:
        """Current record (lazy load)"""
        if self._record is None:
            self._record = self.load()
        return self._record

    @property
    def current_tag(self) -> Optional[str]:
        return self.record.current_tag

    @property
    def stable_tag(self) -> Optional[str]:
        return self.record.stable_tag

    def load(self) -> LedgerRecord:
        """Read the ledger from disk

        A missing file is an empty ledger (nothing deployed yet).

        Raises:
            LedgerError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            self._record = LedgerRecord()
            return self._record

        try:
            self._record = LedgerRecord.from_dict(read_json(self.path))
        except (OSError, ValueError) as e:
            # json.JSONDecodeError is a ValueError
            raise LedgerError(f"Cannot read version ledger {self.path}: {e}") from e

        return self._record

    def record_success(self, tag: str, attempt_id: str) -> LedgerRecord:
        """Target tag is running and verified: it becomes current and stable"""
        return self._write(LedgerRecord(
            current_tag=tag,
            stable_tag=tag,
            updated_at=datetime.now(timezone.utc).isoformat(),
            last_attempt_id=str(attempt_id),
        ))

    def record_rollback(self, restored_tag: str, attempt_id: str) -> LedgerRecord:
        """Previous tag was restored; the stable tag is left alone"""
        return self._write(LedgerRecord(
            current_tag=restored_tag,
            stable_tag=self.record.stable_tag,
            updated_at=datetime.now(timezone.utc).isoformat(),
            last_attempt_id=str(attempt_id),
        ))

    def _write(self, record: LedgerRecord) -> LedgerRecord:
        try:
            write_json_atomic(self.path, record.to_dict())
        except (OSError, TypeError) as e:
            raise LedgerError(f"Cannot write version ledger {self.path}: {e}") from e

        logger.info(
            f"Ledger updated: current={record.current_tag} stable={record.stable_tag}"
        )
        self._record = record
        return record

    def __repr__(self) -> str:
        return f"VersionLedger({self.path}, {json.dumps(self.record.to_dict())})"
