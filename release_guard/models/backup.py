"""Backup snapshot models"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class UnitRecord:
    """A running unit and the image it runs"""
    name: str
    image: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {"name": self.name, "image": self.image}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UnitRecord':
        """Create from dictionary"""
        return cls(name=data["name"], image=data.get("image"))


@dataclass(frozen=True)
class Backup:
    """Point-in-time snapshot taken right before a deploy mutates anything

    Never mutated after creation; one per deployment attempt.
    """
    id: str
    attempt_id: str
    deployment_descriptor: str
    unit_inventory: Tuple[UnitRecord, ...] = field(default_factory=tuple)
    previous_tag: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def unit_names(self) -> List[str]:
        return [unit.name for unit in self.unit_inventory]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "id": self.id,
            "attempt_id": self.attempt_id,
            "deployment_descriptor": self.deployment_descriptor,
            "unit_inventory": [unit.to_dict() for unit in self.unit_inventory],
            "previous_tag": self.previous_tag,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Backup':
        """Create from dictionary"""
        return cls(
            id=data["id"],
            attempt_id=str(data["attempt_id"]),
            deployment_descriptor=data["deployment_descriptor"],
            unit_inventory=tuple(
                UnitRecord.from_dict(unit) for unit in data.get("unit_inventory", [])
            ),
            previous_tag=data.get("previous_tag"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )
