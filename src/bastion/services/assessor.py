"""Store-backed risk assessment for API and CLI callers."""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from bastion.collectors.headers import DeviceContext
from bastion.collectors.travel import LocationFix, is_impossible_travel
from bastion.scoring.engine import RiskAssessor
from bastion.scoring.factors import RiskAssessment, RiskLevel
from bastion.scoring.signals import AccessContext, TransactionContext
from bastion.services.store import ProfileStore

logger = logging.getLogger(__name__)


def assess_user_device(
    session: Session,
    user_id: str,
    transaction: Optional[TransactionContext] = None,
    assessor: Optional[RiskAssessor] = None,
) -> RiskAssessment:
    """
    Assess the device registered to a user.

    Args:
        session: Database session
        user_id: User to assess
        transaction: Optional transaction being authorized

    Returns:
        Device-mode RiskAssessment (also written to the audit log)

    Raises:
        NotFoundError: If the user or their device cannot be resolved
    """
    assessor = assessor or RiskAssessor()
    store = ProfileStore(session)

    user = store.get_user(user_id)
    device = store.get_user_device(user)
    logger.info(f"Assessing device {device.id} for user {user_id}")

    assessment = assessor.assess_device(store.posture_for(device), store.profile_for(user), transaction)
    store.record_assessment(user, assessment)
    return assessment


def _check_travel(store: ProfileStore, user, context: AccessContext, now: datetime) -> AccessContext:
    # Derive the impossible travel flag from stored history when the client did not send one
    if context.coordinates is None or context.impossible_travel is not None:
        return context

    seen_at = context.access_time or now
    current = LocationFix(context.coordinates.latitude, context.coordinates.longitude, seen_at)
    flagged = is_impossible_travel(store.last_location(user), current)
    if flagged:
        logger.warning(f"Impossible travel detected for user {user.id}")
    return replace(context, impossible_travel=flagged)


def assess_access(
    session: Session,
    user_id: str,
    device_context: DeviceContext,
    transaction: Optional[TransactionContext] = None,
    assessor: Optional[RiskAssessor] = None,
    now: Optional[datetime] = None,
) -> RiskAssessment:
    """
    Assess an access attempt against the stored user profile.

    Raises:
        NotFoundError: If the user cannot be resolved
    """
    assessor = assessor or RiskAssessor()
    store = ProfileStore(session)
    now = now or datetime.now(timezone.utc)

    user = store.get_user(user_id)
    context = _check_travel(store, user, device_context.access_context, now)

    assessment = assessor.assess(
        device_context.device_posture,
        context,
        store.profile_for(user),
        transaction,
        now=now,
    )
    store.record_assessment(user, assessment)

    if assessment.level != RiskLevel.LOW:
        logger.info(
            f"Risk {assessment.level.value} ({assessment.score}) for user {user_id}: {assessment.reason}"
        )
    return assessment


def accept_access(
    session: Session,
    user_id: str,
    device_context: DeviceContext,
    now: Optional[datetime] = None,
) -> None:
    """
    Record the device, country and location of an access that was allowed through.

    Only accepted accesses update the location history.
    """
    store = ProfileStore(session)
    user = store.get_user(user_id)
    context = device_context.access_context
    store.remember_device(user, device_context.device_posture.fingerprint)
    store.remember_country(user, context.country)
    if context.coordinates is not None:
        seen_at = context.access_time or now or datetime.now(timezone.utc)
        store.update_location(user, context.coordinates, seen_at)
