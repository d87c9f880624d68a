"""Risk assessment facade: runs the scorers and returns one verdict."""

import logging
import os
from datetime import datetime
from typing import Optional, Union

from bastion.exceptions import NotFoundError
from bastion.scoring.classifier import RiskClassifier
from bastion.scoring.compliance import DeviceComplianceScorer
from bastion.scoring.context import ContextRiskScorer
from bastion.scoring.factors import RiskAssessment, RiskFactor, Severity
from bastion.scoring.signals import (
    AccessContext,
    DevicePosture,
    RiskTolerance,
    TransactionContext,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Transactions above this amount carry a flat surcharge
HIGH_VALUE_THRESHOLD = float(os.getenv("BASTION_HIGH_VALUE_THRESHOLD", "50000"))
HIGH_VALUE_SURCHARGE = 25

Transaction = Union[TransactionContext, int, float, None]


def _as_transaction(transaction: Transaction) -> Optional[TransactionContext]:
    if transaction is None or isinstance(transaction, TransactionContext):
        return transaction
    return TransactionContext(amount=float(transaction))


class RiskAssessor:
    """
    Orchestrates the compliance scorer, context scorer and classifier.

    Device mode:  total = compliance points + transaction surcharge
    Full mode:    total = context points + compliance baseline + transaction surcharge

    In full mode the compliance baseline charges only the compliance
    fields the posture actually reports. Unknown fields add nothing, so
    reporting a good signal never raises the score.
    """

    def __init__(
        self,
        compliance_scorer: Optional[DeviceComplianceScorer] = None,
        context_scorer: Optional[ContextRiskScorer] = None,
        classifier: Optional[RiskClassifier] = None,
        high_value_threshold: float = HIGH_VALUE_THRESHOLD,
    ):
        self.compliance_scorer = compliance_scorer or DeviceComplianceScorer()
        self.context_scorer = context_scorer or ContextRiskScorer()
        self.classifier = classifier or RiskClassifier()
        self.high_value_threshold = high_value_threshold

    def transaction_factor(self, transaction: Optional[TransactionContext]) -> Optional[RiskFactor]:
        """Surcharge factor for high-value transactions, if any."""
        if transaction is None or transaction.amount <= self.high_value_threshold:
            return None
        return RiskFactor(
            name="High Transaction Amount",
            description=f"Transaction amount ({transaction.amount:,.2f}) exceeds threshold",
            severity=Severity.MEDIUM,
            weight=HIGH_VALUE_SURCHARGE,
        )

    def assess_device(
        self,
        posture: Optional[DevicePosture],
        profile: Optional[UserProfile] = None,
        transaction: Transaction = None,
        now: Optional[datetime] = None,
    ) -> RiskAssessment:
        """
        Assess a device posture on its own.

        Args:
            posture: Device posture snapshot
            profile: Optional profile; supplies the user id and risk tolerance
            transaction: Optional transaction (or plain amount) being authorized
            now: Reference time for update recency

        Returns:
            RiskAssessment in "device" mode

        Raises:
            NotFoundError: If no device posture was resolved
        """
        if posture is None:
            raise NotFoundError("Device posture", profile.id if profile else None)

        compliance = self.compliance_scorer.evaluate(posture, now)
        factors = list(compliance.factors)
        total = compliance.raw_score

        surcharge = self.transaction_factor(_as_transaction(transaction))
        if surcharge:
            factors.append(surcharge)
            total += surcharge.weight

        tolerance = profile.risk_tolerance if profile else RiskTolerance.MEDIUM
        classification = self.classifier.classify(total, tolerance)

        assessment = RiskAssessment(
            score=classification.score,
            level=classification.level,
            factors=tuple(factors),
            requires_mfa=classification.requires_mfa,
            block_access=classification.block_access,
            raw_score=total,
            mode="device",
            user_id=profile.id if profile else None,
            device_id=posture.device_id,
        )
        logger.debug(f"Device assessment {posture.device_id}: {assessment.score} {assessment.level.value}")
        return assessment

    def assess(
        self,
        posture: Optional[DevicePosture],
        context: Optional[AccessContext],
        profile: Optional[UserProfile],
        transaction: Transaction = None,
        now: Optional[datetime] = None,
    ) -> RiskAssessment:
        """
        Assess an access attempt from posture, context and user history.

        A missing context is treated as "no data" (every field unknown).

        Raises:
            NotFoundError: If the user profile or device posture was not resolved
        """
        if profile is None:
            raise NotFoundError("User profile")
        if posture is None:
            raise NotFoundError("Device posture", profile.id)
        if context is None:
            context = AccessContext()

        result = self.context_scorer.score(posture, context, profile)
        factors = list(result.factors)
        total = result.points

        if posture.has_compliance_data:
            # Only reported compliance fields count here; unknowns are left to the context rules
            compliance = self.compliance_scorer.evaluate(posture, now, fail_closed=False)
            factors.extend(compliance.factors)
            total += compliance.raw_score

        surcharge = self.transaction_factor(_as_transaction(transaction))
        if surcharge:
            factors.append(surcharge)
            total += surcharge.weight

        classification = self.classifier.classify(
            total,
            profile.risk_tolerance,
            requires_mfa=result.requires_mfa,
            block_access=result.block_access,
        )

        assessment = RiskAssessment(
            score=classification.score,
            level=classification.level,
            factors=tuple(factors),
            requires_mfa=classification.requires_mfa,
            block_access=classification.block_access,
            raw_score=total,
            mode="context",
            user_id=profile.id,
            device_id=posture.device_id,
        )
        logger.debug(
            f"Context assessment for {profile.id}: {assessment.score} {assessment.level.value} "
            f"(mfa={assessment.requires_mfa}, block={assessment.block_access})"
        )
        return assessment


_default_assessor = RiskAssessor()


def score_device_compliance(posture: DevicePosture, now: Optional[datetime] = None) -> int:
    """Device compliance risk score (0-100) for a posture snapshot."""
    return _default_assessor.compliance_scorer.score(posture, now)


def assess_risk(
    posture: Optional[DevicePosture],
    context: Optional[AccessContext],
    profile: Optional[UserProfile],
    transaction_amount: Optional[float] = None,
) -> RiskAssessment:
    """Full risk verdict for an access attempt."""
    return _default_assessor.assess(posture, context, profile, transaction_amount)
