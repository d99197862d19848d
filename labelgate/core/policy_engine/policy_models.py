from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

DENIED_REASON = "admission rejected by policy"
PASSTHROUGH_REASON = "Passthrough"


class DecisionStatus(str, Enum):
    """
    Enumerated admission decision status.

    Using str Enum ensures stable serialization and safe comparisons.
    """

    ALLOW = "ALLOW"
    DENY = "DENY"


@dataclass(frozen=True)
class Verdict:
    """
    Immutable admission verdict.

    Invariants
    - Frozen dataclass prevents post-hoc tampering
    - reason is always a string (empty for an allow produced by a label match)
    - to_dict returns JSON-safe primitives
    """

    allowed: bool
    reason: str = ""
    matched_label: Optional[Tuple[str, str]] = None

    @property
    def status(self) -> DecisionStatus:
        return DecisionStatus.ALLOW if self.allowed else DecisionStatus.DENY

    @classmethod
    def passthrough(cls) -> "Verdict":
        return cls(allowed=True, reason=PASSTHROUGH_REASON)

    @classmethod
    def denied(cls) -> "Verdict":
        return cls(allowed=False, reason=DENIED_REASON)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "allowed": self.allowed,
            "reason": self.reason,
            "matched_label": list(self.matched_label) if self.matched_label else None,
        }
