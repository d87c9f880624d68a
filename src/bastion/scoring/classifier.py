"""Band classification and default policy actions."""

from dataclasses import dataclass

from bastion.scoring.factors import RiskLevel
from bastion.scoring.signals import RiskTolerance


@dataclass(frozen=True)
class Classification:
    """Level and final policy flags for an accumulated score."""

    level: RiskLevel
    score: int
    requires_mfa: bool
    block_access: bool


class RiskClassifier:
    """
    Maps an accumulated score to a level and the actions that band forces.

    Bands (on the unclamped total):
        >= 50  CRITICAL  block access
        >= 35  HIGH      require MFA
        >= 20  MEDIUM    require MFA for LOW tolerance users
        <  20  LOW

    Flags raised by individual rules are kept; the classifier only adds.
    """

    MAX_SCORE = 100

    def classify(
        self,
        raw_score: int,
        tolerance: RiskTolerance = RiskTolerance.MEDIUM,
        requires_mfa: bool = False,
        block_access: bool = False,
    ) -> Classification:
        level = RiskLevel.from_score(raw_score)

        if level == RiskLevel.CRITICAL:
            block_access = True
        elif level == RiskLevel.HIGH:
            requires_mfa = True
        elif level == RiskLevel.MEDIUM and tolerance == RiskTolerance.LOW:
            requires_mfa = True

        return Classification(
            level=level,
            score=max(0, min(raw_score, self.MAX_SCORE)),
            requires_mfa=requires_mfa,
            block_access=block_access,
        )
