from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Tuple

from forkery.core.process.models import ProcessInfo


class ConflictAction(str, Enum):
    USE_ALTERNATIVE = "use_alternative"
    STOP_OTHER = "stop_other"
    CANCEL = "cancel"


@dataclass(frozen=True)
class PortConflictDecision:
    """Answer to one own-ecosystem conflict.

    ``alternative_port`` is a suggestion; it is only used if it is free
    when the decision is applied.
    """

    action: ConflictAction
    alternative_port: Optional[int] = None
    reason: Optional[str] = None


class ResolverState(str, Enum):
    CHECKING_AVAILABILITY = "checking_availability"
    AVAILABLE = "available"
    BUSY = "busy"
    CLASSIFYING = "classifying"
    OWN_ECOSYSTEM = "own_ecosystem"
    FOREIGN = "foreign"
    NEGOTIATING = "negotiating"
    RECLAIMING = "reclaiming"
    VERIFY_FREED = "verify_freed"
    FREED = "freed"
    STILL_BUSY = "still_busy"
    FAILED = "failed"
    DONE = "done"


class ResolutionOutcome(str, Enum):
    AVAILABLE = "available"
    ALTERNATIVE = "alternative"
    STOPPED_OTHER = "stopped_other"
    RECLAIMED = "reclaimed"
    FALLBACK_ALTERNATIVE = "fallback_alternative"


@dataclass(frozen=True)
class ResolutionResult:
    port: int
    requested_port: int
    outcome: ResolutionOutcome
    occupant: Optional[ProcessInfo] = None
    warnings: Tuple[str, ...] = ()
    trail: Tuple[ResolverState, ...] = field(default=())

    @property
    def changed_port(self) -> bool:
        return self.port != self.requested_port

    def to_dict(self) -> dict[str, Any]:
        return {
            "port": self.port,
            "requested_port": self.requested_port,
            "outcome": self.outcome.value,
            "occupant": self.occupant.to_dict() if self.occupant else None,
            "warnings": list(self.warnings),
            "trail": [s.value for s in self.trail],
        }


__all__ = [
    "ConflictAction",
    "PortConflictDecision",
    "ResolutionOutcome",
    "ResolutionResult",
    "ResolverState",
]
