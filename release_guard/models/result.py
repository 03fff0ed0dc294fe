"""Report models for terminal attempt outcomes"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .attempt import AttemptState, DeploymentAttempt
from .backup import UnitRecord
from .gate import GateReport
from ..constants import ErrorCode, ExitCode


@dataclass
class RollbackReport:
    """Written after a rollback restored the previous release"""
    attempt_id: str
    backup_id: str
    failed_tag: str
    restored_tag: str
    unit_inventory: List[UnitRecord] = field(default_factory=list)
    cause: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "attempt_id": self.attempt_id,
            "backup_id": self.backup_id,
            "failed_tag": self.failed_tag,
            "restored_tag": self.restored_tag,
            "unit_inventory": [unit.to_dict() for unit in self.unit_inventory],
            "cause": list(self.cause),
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RollbackReport':
        """Create from dictionary"""
        return cls(
            attempt_id=str(data["attempt_id"]),
            backup_id=data["backup_id"],
            failed_tag=data["failed_tag"],
            restored_tag=data["restored_tag"],
            unit_inventory=[UnitRecord.from_dict(u) for u in data.get("unit_inventory", [])],
            cause=data.get("cause", []),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class AttemptReport:
    """Human-readable outcome of a finished attempt"""
    attempt: DeploymentAttempt
    error_code: Optional[str] = None
    gate: Optional[GateReport] = None
    rollback: Optional[RollbackReport] = None
    status_reported: Optional[bool] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def state(self) -> AttemptState:
        return self.attempt.state

    @property
    def success(self) -> bool:
        return self.attempt.state == AttemptState.SUCCEEDED

    @property
    def requires_operator(self) -> bool:
        return self.attempt.state == AttemptState.ROLLBACK_FAILED

    @property
    def exit_code(self) -> int:
        state = self.attempt.state
        if state == AttemptState.SUCCEEDED:
            return ExitCode.SUCCEEDED
        if state == AttemptState.ROLLBACK_FAILED:
            return ExitCode.ROLLBACK_FAILED
        if state == AttemptState.ROLLED_BACK:
            return ExitCode.ROLLED_BACK
        if state == AttemptState.REJECTED:
            return ExitCode.REJECTED
        if self.error_code == ErrorCode.ENVIRONMENT_BUSY:
            return ExitCode.ENVIRONMENT_BUSY
        return ExitCode.FAILED

    @property
    def summary(self) -> str:
        attempt = self.attempt
        state = attempt.state
        if state == AttemptState.SUCCEEDED:
            return f"Release {attempt.target_tag} succeeded"
        if state == AttemptState.ROLLED_BACK:
            restored = self.rollback.restored_tag if self.rollback else attempt.previous_tag
            return f"Release {attempt.target_tag} failed and was rolled back to {restored}"
        if state == AttemptState.ROLLBACK_FAILED:
            return (
                f"Release {attempt.target_tag} failed and rollback to "
                f"{attempt.previous_tag} failed: MANUAL INTERVENTION REQUIRED"
            )
        if state == AttemptState.REJECTED:
            return f"Release {attempt.target_tag} rejected by quality gate"
        return f"Release {attempt.target_tag} failed before any change was made"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "summary": self.summary,
            "requires_operator": self.requires_operator,
            "exit_code": self.exit_code,
            "error_code": self.error_code,
            "attempt": self.attempt.to_dict(),
            "status_reported": self.status_reported,
            "warnings": list(self.warnings),
        }
        if self.gate:
            data["gate"] = self.gate.to_dict()
        if self.rollback:
            data["rollback"] = self.rollback.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AttemptReport':
        """Create from dictionary (gate verdicts are not restored)"""
        rollback = data.get("rollback")
        return cls(
            attempt=DeploymentAttempt.from_dict(data["attempt"]),
            error_code=data.get("error_code"),
            rollback=RollbackReport.from_dict(rollback) if rollback else None,
            status_reported=data.get("status_reported"),
            warnings=data.get("warnings", []),
        )
