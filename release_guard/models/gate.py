"""Quality gate models"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class GateStatus(Enum):
    """Per-unit analysis verdict"""
    PASSED = "PASSED"
    FAILED = "FAILED"
    NO_DATA = "NO_DATA"
    PENDING = "PENDING"

    @property
    def is_acceptable(self) -> bool:
        # First-ever analysis (no data yet) does not block a release
        return self in (GateStatus.PASSED, GateStatus.NO_DATA)


class GateDecision(Enum):
    """Aggregate decision gating a deployment attempt"""
    PASS = "PASS"
    FAIL = "FAIL"


@dataclass
class QualityGateResult:
    """Verdict for one analyzed unit"""
    unit_name: str
    status: GateStatus
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        data = {
            "unit_name": self.unit_name,
            "status": self.status.value,
            "fetched_at": self.fetched_at.isoformat(),
        }
        if self.detail:
            data["detail"] = self.detail
        return data


@dataclass
class GateReport:
    """Aggregated gate outcome with the verdicts it was computed from"""
    decision: GateDecision
    results: List[QualityGateResult] = field(default_factory=list)
    max_failures: int = 1

    @property
    def passed(self) -> bool:
        return self.decision == GateDecision.PASS

    @property
    def failed_units(self) -> List[str]:
        return [r.unit_name for r in self.results if not r.status.is_acceptable]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "decision": self.decision.value,
            "max_failures": self.max_failures,
            "failed_units": self.failed_units,
            "results": [r.to_dict() for r in self.results],
        }
