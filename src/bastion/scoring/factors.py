"""Risk levels, factors and the assessment record."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from bastion.exceptions import InvalidInputError


class RiskLevel(str, Enum):
    """Risk level classification, shared by the device and context paths."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @classmethod
    def from_score(cls, score: int) -> "RiskLevel":
        """Get risk level from a numeric score (unclamped scores are fine)."""
        if score >= 50:
            return cls.CRITICAL
        elif score >= 35:
            return cls.HIGH
        elif score >= 20:
            return cls.MEDIUM
        else:
            return cls.LOW

    @classmethod
    def parse(cls, value: str) -> "RiskLevel":
        """Parse a level name, accepting the lower-case device-path spelling."""
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise InvalidInputError(f"Unknown risk level: {value!r}")

    @property
    def semaphore(self) -> str:
        """Get semaphore emoji for this risk level."""
        return {
            RiskLevel.CRITICAL: "🔴",
            RiskLevel.HIGH: "🟠",
            RiskLevel.MEDIUM: "🟡",
            RiskLevel.LOW: "🟢",
        }[self]

    @property
    def color(self) -> str:
        """Dashboard hex color for this risk level."""
        return {
            RiskLevel.CRITICAL: "#7c2d12",
            RiskLevel.HIGH: "#ef4444",
            RiskLevel.MEDIUM: "#f59e0b",
            RiskLevel.LOW: "#10b981",
        }[self]

    @property
    def description(self) -> str:
        """Human-readable description of the risk level."""
        return {
            RiskLevel.CRITICAL: "Access blocked - signals are inconsistent with the account owner",
            RiskLevel.HIGH: "Step-up verification required",
            RiskLevel.MEDIUM: "Elevated risk - verification depends on user policy",
            RiskLevel.LOW: "Normal access",
        }[self]


class Severity(str, Enum):
    """Severity of an individual risk factor."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AccessDecision(str, Enum):
    """What a consumer should do with an assessment."""

    ALLOW = "ALLOW"
    STEP_UP = "STEP_UP"
    DENY = "DENY"


@dataclass(frozen=True)
class RiskFactor:
    """A single signal that contributed points to an assessment."""

    name: str
    description: str
    severity: Severity
    weight: int

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "severity": self.severity.value,
            "weight": self.weight,
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RiskAssessment:
    """Complete, immutable risk verdict for one access attempt."""

    score: int
    level: RiskLevel
    factors: tuple = ()
    requires_mfa: bool = False
    block_access: bool = False
    timestamp: datetime = field(default_factory=_utcnow)

    # Pre-clamp total the level was derived from
    raw_score: int = 0
    mode: str = "context"
    user_id: Optional[str] = None
    device_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "factors", tuple(self.factors))

    @property
    def decision(self) -> AccessDecision:
        """Block wins over step-up; step-up wins over allow."""
        if self.block_access:
            return AccessDecision.DENY
        if self.requires_mfa:
            return AccessDecision.STEP_UP
        return AccessDecision.ALLOW

    @property
    def factor_descriptions(self) -> list[str]:
        return [f.description for f in self.factors]

    @property
    def reason(self) -> str:
        """Comma-joined factor descriptions, as shown to a denied user."""
        return ", ".join(self.factor_descriptions)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "user_id": self.user_id,
            "device_id": self.device_id,
            "mode": self.mode,
            "score": self.score,
            "raw_score": self.raw_score,
            "level": self.level.value,
            "factors": [f.to_dict() for f in self.factors],
            "requires_mfa": self.requires_mfa,
            "block_access": self.block_access,
            "decision": self.decision.value,
            "timestamp": self.timestamp.isoformat(),
        }
