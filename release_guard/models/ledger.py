"""Version ledger record"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class LedgerRecord:
    """Currently deployed tag and last known-good tag"""
    current_tag: Optional[str] = None
    stable_tag: Optional[str] = None
    updated_at: Optional[str] = None
    last_attempt_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "current_tag": self.current_tag,
            "stable_tag": self.stable_tag,
            "updated_at": self.updated_at,
            "last_attempt_id": self.last_attempt_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LedgerRecord':
        """Create from dictionary"""
        return cls(
            current_tag=data.get("current_tag"),
            stable_tag=data.get("stable_tag"),
            updated_at=data.get("updated_at"),
            last_attempt_id=data.get("last_attempt_id"),
        )
