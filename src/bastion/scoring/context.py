"""Context risk scoring: device posture + access context + user history."""

from dataclasses import dataclass, field

from bastion.scoring.factors import RiskFactor, Severity
from bastion.scoring.signals import AccessContext, DevicePosture, RiskTolerance, UserProfile

OUTDATED_OS_MARKERS = ("Windows 7", "Windows 8")


@dataclass
class ContextScore:
    """Accumulated points, factors and policy flags from the context rules."""

    points: int = 0
    factors: list[RiskFactor] = field(default_factory=list)
    requires_mfa: bool = False
    block_access: bool = False

    def add(self, name: str, description: str, severity: Severity, weight: int) -> None:
        self.points += weight
        self.factors.append(RiskFactor(name=name, description=description, severity=severity, weight=weight))


class ContextRiskScorer:
    """
    Weighted rule table over device posture, access context and user history.

    Every rule fires independently and contributes additive points. Flags
    are monotonic: a rule can set requires_mfa or block_access, never clear them.
    """

    def score(self, posture: DevicePosture, context: AccessContext, profile: UserProfile) -> ContextScore:
        """
        Run every rule in order.

        Args:
            posture: Device posture snapshot (fields may be unknown)
            context: Access context snapshot (fields may be unknown)
            profile: Known fingerprints/countries and risk tolerance

        Returns:
            ContextScore with unclamped points
        """
        result = ContextScore()
        strict = profile.risk_tolerance == RiskTolerance.LOW

        self._score_device(result, posture, strict)
        self._score_access(result, context, profile, strict)

        # Fingerprint rule is last in the rule table, after the access rules
        if posture.fingerprint and not profile.knows_fingerprint(posture.fingerprint):
            result.add("Unrecognized Fingerprint", "Device fingerprint not recognized", Severity.LOW, 10)

        return result

    def _score_device(self, result: ContextScore, posture: DevicePosture, strict: bool) -> None:
        # An unreported known-device flag counts as a first login
        if posture.is_known_device is not True:
            result.add("Unknown Device", "Unknown device (first login)", Severity.MEDIUM, 15)

        if posture.is_jailbroken is True:
            result.add("Jailbroken Device", "Device is jailbroken/rooted", Severity.HIGH, 25)
            if strict:
                result.requires_mfa = True

        if posture.disk_encrypted is False:
            result.add("No Disk Encryption", "Disk encryption not enabled", Severity.LOW, 10)

        if posture.antivirus is False:
            result.add("No Antivirus", "Antivirus not detected", Severity.LOW, 10)

        if posture.os_version and any(marker in posture.os_version for marker in OUTDATED_OS_MARKERS):
            result.add("Outdated OS", "Outdated operating system", Severity.MEDIUM, 20)
            result.requires_mfa = True

    def _score_access(
        self, result: ContextScore, context: AccessContext, profile: UserProfile, strict: bool
    ) -> None:
        if context.impossible_travel is True:
            result.add(
                "Impossible Travel",
                "Impossible travel detected (geographically inconsistent)",
                Severity.HIGH,
                50,
            )
            result.block_access = True

        if context.is_vpn is True:
            result.add("VPN Detected", "VPN or proxy detected", Severity.MEDIUM, 15)
            if strict:
                result.requires_mfa = True

        if context.is_tor is True:
            result.add("Tor Detected", "Tor or anonymization network detected", Severity.HIGH, 30)
            if profile.risk_tolerance in (RiskTolerance.LOW, RiskTolerance.MEDIUM):
                result.block_access = True

        if context.ip_reputation is not None and context.ip_reputation < 50:
            result.add(
                "Low IP Reputation",
                f"Low reputation IP (score: {context.ip_reputation})",
                Severity.HIGH if context.ip_reputation < 30 else Severity.MEDIUM,
                20,
            )
            if context.ip_reputation < 30:
                result.requires_mfa = True

        if context.country and not profile.knows_country(context.country):
            result.add("New Country", f"New country detected ({context.country})", Severity.MEDIUM, 20)
            if strict:
                result.requires_mfa = True
