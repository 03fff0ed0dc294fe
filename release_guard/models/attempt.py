"""Deployment attempt model and its state machine"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from ..exceptions import InvalidTransitionError


class AttemptState(Enum):
    """Lifecycle states of a deployment attempt"""
    PENDING = "pending"
    BACKING_UP = "backing_up"
    DEPLOYING = "deploying"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"
    ROLLBACK_FAILED = "rollback_failed"
    FAILED = "failed"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


TERMINAL_STATES: FrozenSet[AttemptState] = frozenset({
    AttemptState.SUCCEEDED,
    AttemptState.ROLLED_BACK,
    AttemptState.ROLLBACK_FAILED,
    AttemptState.FAILED,
    AttemptState.REJECTED,
})

# States during which the environment lock must be held
LOCKED_STATES: FrozenSet[AttemptState] = frozenset({
    AttemptState.BACKING_UP,
    AttemptState.DEPLOYING,
    AttemptState.VERIFYING,
    AttemptState.ROLLING_BACK,
})

ALLOWED_TRANSITIONS: Dict[AttemptState, FrozenSet[AttemptState]] = {
    AttemptState.PENDING: frozenset({
        AttemptState.BACKING_UP,
        AttemptState.REJECTED,
        AttemptState.FAILED,
    }),
    AttemptState.BACKING_UP: frozenset({
        AttemptState.DEPLOYING,
        AttemptState.FAILED,
        AttemptState.ROLLING_BACK,
    }),
    AttemptState.DEPLOYING: frozenset({
        AttemptState.VERIFYING,
        AttemptState.ROLLING_BACK,
    }),
    AttemptState.VERIFYING: frozenset({
        AttemptState.SUCCEEDED,
        AttemptState.ROLLING_BACK,
    }),
    # Never back into ROLLING_BACK: no automatic retry of a rollback
    AttemptState.ROLLING_BACK: frozenset({
        AttemptState.ROLLED_BACK,
        AttemptState.ROLLBACK_FAILED,
    }),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DeploymentAttempt:
    """One release cycle: backup, deploy, verify and maybe rollback"""

    id: str
    target_tag: str
    units: List[str] = field(default_factory=list)
    environment: str = "default"
    commit_id: Optional[str] = None
    state: AttemptState = AttemptState.PENDING
    started_at: datetime = field(default_factory=_now)
    ended_at: Optional[datetime] = None
    previous_tag: Optional[str] = None
    backup_id: Optional[str] = None
    error: List[str] = field(default_factory=list)
    history: List[Tuple[AttemptState, datetime]] = field(default_factory=list)

    def __post_init__(self):
        if not self.history:
            self.history.append((self.state, self.started_at))

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def duration(self) -> Optional[float]:
        """Attempt duration in seconds"""
        if self.ended_at:
            return (self.ended_at - self.started_at).total_seconds()
        return None

    def can_transition(self, new_state: AttemptState) -> bool:
        return new_state in ALLOWED_TRANSITIONS.get(self.state, frozenset())

    def transition(self, new_state: AttemptState) -> None:
        """Move to ``new_state``

        Raises:
            InvalidTransitionError: If the move is not in the transition table
                or the attempt is already terminal
        """
        if not self.can_transition(new_state):
            raise InvalidTransitionError(self.state.value, new_state.value)

        now = _now()
        self.state = new_state
        self.history.append((new_state, now))
        if new_state.is_terminal:
            self.ended_at = now

    def record_error(self, chain: List[str]) -> None:
        """Attach the root-cause chain of the failure that ended the attempt"""
        if self.is_terminal:
            raise InvalidTransitionError(self.state.value, "record_error")
        self.error = list(chain)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "id": self.id,
            "target_tag": self.target_tag,
            "units": list(self.units),
            "environment": self.environment,
            "commit_id": self.commit_id,
            "state": self.state.value,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "previous_tag": self.previous_tag,
            "backup_id": self.backup_id,
            "error": list(self.error),
            "history": [
                {"state": state.value, "at": at.isoformat()}
                for state, at in self.history
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DeploymentAttempt':
        """Create from dictionary"""
        ended_at = data.get("ended_at")
        return cls(
            id=str(data["id"]),
            target_tag=data["target_tag"],
            units=data.get("units", []),
            environment=data.get("environment", "default"),
            commit_id=data.get("commit_id"),
            state=AttemptState(data.get("state", AttemptState.PENDING.value)),
            started_at=datetime.fromisoformat(data["started_at"]),
            ended_at=datetime.fromisoformat(ended_at) if ended_at else None,
            previous_tag=data.get("previous_tag"),
            backup_id=data.get("backup_id"),
            error=data.get("error", []),
            history=[
                (AttemptState(entry["state"]), datetime.fromisoformat(entry["at"]))
                for entry in data.get("history", [])
            ],
        )
