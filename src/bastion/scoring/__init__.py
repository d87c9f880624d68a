"""Risk scoring engine."""

from bastion.scoring.classifier import Classification, RiskClassifier
from bastion.scoring.compliance import ComplianceResult, DeviceComplianceScorer
from bastion.scoring.context import ContextRiskScorer, ContextScore
from bastion.scoring.engine import RiskAssessor, assess_risk, score_device_compliance
from bastion.scoring.factors import AccessDecision, RiskAssessment, RiskFactor, RiskLevel, Severity
from bastion.scoring.signals import (
    AccessContext,
    Coordinates,
    DevicePosture,
    OsType,
    RiskTolerance,
    TransactionContext,
    TransactionType,
    UserProfile,
)

__all__ = [
    "AccessContext",
    "AccessDecision",
    "Classification",
    "ComplianceResult",
    "ContextRiskScorer",
    "ContextScore",
    "Coordinates",
    "DeviceComplianceScorer",
    "DevicePosture",
    "OsType",
    "RiskAssessment",
    "RiskAssessor",
    "RiskClassifier",
    "RiskFactor",
    "RiskLevel",
    "RiskTolerance",
    "Severity",
    "TransactionContext",
    "TransactionType",
    "UserProfile",
    "assess_risk",
    "score_device_compliance",
]
