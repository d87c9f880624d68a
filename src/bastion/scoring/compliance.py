"""Device compliance scoring."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from bastion.scoring.factors import RiskFactor, Severity
from bastion.scoring.signals import DevicePosture


@dataclass
class ComplianceResult:
    """Points and contributing factors from the device compliance check."""

    raw_score: int = 0
    factors: list[RiskFactor] = field(default_factory=list)

    @property
    def score(self) -> int:
        return min(self.raw_score, 100)

    def add(self, factor: RiskFactor) -> None:
        self.raw_score += factor.weight
        self.factors.append(factor)


def days_since(when: datetime, now: Optional[datetime] = None) -> int:
    """Whole days elapsed since ``when``; naive datetimes are taken as UTC."""
    now = now or datetime.now(timezone.utc)
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (now - when).days


class DeviceComplianceScorer:
    """
    Scores a device posture against fixed compliance weights.

    Score = firewall + antivirus + encryption + update recency + compliance
    Range: 0-100 (higher = riskier)

    Unknown flags count as non-compliant: a device has to prove its posture.
    With fail_closed=False unknown fields contribute nothing, which is how
    the full access assessment uses partial collector telemetry.
    """

    FIREWALL_PENALTY = 20
    ANTIVIRUS_PENALTY = 20
    ENCRYPTION_PENALTY = 15

    STALE_UPDATE_DAYS = 90
    AGING_UPDATE_DAYS = 30

    def calculate_update_penalty(self, last_update: Optional[datetime], now: Optional[datetime] = None) -> int:
        """
        Calculate the OS update recency penalty.

        Args:
            last_update: When the device last applied security updates
            now: Reference time (defaults to current UTC time)

        Returns:
            Penalty (0, 5 or 10). An unknown date counts as stale.
        """
        if last_update is None:
            return 10
        elapsed = days_since(last_update, now)
        if elapsed > self.STALE_UPDATE_DAYS:
            return 10
        elif elapsed > self.AGING_UPDATE_DAYS:
            return 5
        else:
            return 0

    def calculate_compliance_penalty(self, compliance_score: Optional[int]) -> int:
        """
        Calculate the penalty from the MDM compliance score.

        Args:
            compliance_score: Compliance percentage (0-100), None if unreported

        Returns:
            Penalty (0-35)
        """
        if compliance_score is None or compliance_score < 50:
            return 35
        elif compliance_score < 75:
            return 20
        elif compliance_score < 90:
            return 10
        else:
            return 0

    def evaluate(
        self,
        posture: DevicePosture,
        now: Optional[datetime] = None,
        fail_closed: bool = True,
    ) -> ComplianceResult:
        """
        Score a posture and collect one factor per contributing term.

        Args:
            posture: Device posture snapshot
            now: Reference time for update recency
            fail_closed: Charge unknown fields at the non-compliant rate

        Returns:
            ComplianceResult whose factor weights sum to the raw score
        """
        result = ComplianceResult()

        def failing(value) -> bool:
            if value is None:
                return fail_closed
            return value is not True

        if failing(posture.firewall_enabled):
            result.add(
                RiskFactor(
                    name="Firewall Disabled",
                    description="Device firewall is not enabled",
                    severity=Severity.HIGH,
                    weight=self.FIREWALL_PENALTY,
                )
            )

        if failing(posture.antivirus):
            result.add(
                RiskFactor(
                    name="Antivirus Disabled",
                    description="Device antivirus protection is not enabled",
                    severity=Severity.HIGH,
                    weight=self.ANTIVIRUS_PENALTY,
                )
            )

        if failing(posture.disk_encrypted):
            result.add(
                RiskFactor(
                    name="Disk Encryption Disabled",
                    description="Device disk encryption is not enabled",
                    severity=Severity.MEDIUM,
                    weight=self.ENCRYPTION_PENALTY,
                )
            )

        update_penalty = 0
        if posture.last_security_update is not None or fail_closed:
            update_penalty = self.calculate_update_penalty(posture.last_security_update, now)
        if update_penalty:
            if posture.last_security_update is None:
                detail = "Last security update date is unknown"
            else:
                detail = (
                    f"Last security update was {days_since(posture.last_security_update, now)} days ago"
                )
            result.add(
                RiskFactor(
                    name="Outdated Security Updates",
                    description=detail,
                    severity=Severity.MEDIUM if update_penalty == 10 else Severity.LOW,
                    weight=update_penalty,
                )
            )

        compliance_penalty = 0
        if posture.compliance_score is not None or fail_closed:
            compliance_penalty = self.calculate_compliance_penalty(posture.compliance_score)
        if compliance_penalty:
            if posture.compliance_score is None:
                detail = "Device compliance score is not reported"
            else:
                detail = f"Device compliance score is {posture.compliance_score}%"
            result.add(
                RiskFactor(
                    name="Low Compliance Score",
                    description=detail,
                    severity=Severity.HIGH if compliance_penalty == 35 else Severity.MEDIUM,
                    weight=compliance_penalty,
                )
            )

        return result

    def score(self, posture: DevicePosture, now: Optional[datetime] = None) -> int:
        """Device compliance risk score, clamped to 0-100."""
        return self.evaluate(posture, now).score
