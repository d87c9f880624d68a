"""Profile store: users, devices and assessment history."""

import logging
import os
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from bastion.collectors.travel import LocationFix
from bastion.db.models import AssessmentRecord, DeviceRecord, UserRecord
from bastion.exceptions import NotFoundError
from bastion.scoring.factors import RiskAssessment
from bastion.scoring.signals import Coordinates, DevicePosture, OsType, RiskTolerance, UserProfile

logger = logging.getLogger(__name__)

# Tolerance for users created without an explicit one
DEFAULT_TOLERANCE = os.getenv("BASTION_DEFAULT_TOLERANCE", "MEDIUM")


def _naive_utc(ts: datetime) -> datetime:
    # SQLite DateTime columns hold naive UTC values
    if ts.tzinfo is None:
        return ts
    return ts.astimezone(timezone.utc).replace(tzinfo=None)


class ProfileStore:
    """Reads and writes the user history the context rules depend on."""

    def __init__(self, session: Session):
        self.session = session

    # -- Devices --

    def get_device(self, device_id: str) -> DeviceRecord:
        """Get a registered device or raise NotFoundError."""
        device = self.session.get(DeviceRecord, device_id)
        if device is None:
            raise NotFoundError("Device", device_id)
        return device

    def list_devices(self) -> list[DeviceRecord]:
        return self.session.query(DeviceRecord).order_by(DeviceRecord.id).all()

    def save_device(self, device_id: str, **fields) -> DeviceRecord:
        """Register a device, or update the posture of an existing one."""
        device = self.session.get(DeviceRecord, device_id)
        if device is None:
            device = DeviceRecord(id=device_id)
            self.session.add(device)
        for name, value in fields.items():
            if not hasattr(DeviceRecord, name):
                raise AttributeError(f"DeviceRecord has no column {name!r}")
            if name == "last_update" and value is not None:
                value = _naive_utc(value)
            setattr(device, name, value)
        self.session.flush()
        return device

    @staticmethod
    def posture_for(device: DeviceRecord) -> DevicePosture:
        """Convert a stored device into a posture snapshot."""
        return DevicePosture(
            device_id=device.id,
            os_type=OsType.parse(device.os_type) if device.os_type else None,
            os_version=device.os_version,
            firewall_enabled=device.firewall_enabled,
            antivirus=device.antivirus_enabled,
            disk_encrypted=device.disk_encryption_enabled,
            last_security_update=device.last_update,
            compliance_score=device.compliance_score,
        )

    # -- Users --

    def get_user(self, user_id: str) -> UserRecord:
        """Get a user or raise NotFoundError."""
        user = self.session.get(UserRecord, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def get_user_device(self, user: UserRecord) -> DeviceRecord:
        """Get the device registered to a user or raise NotFoundError."""
        if user.device_id is None:
            raise NotFoundError("Device", f"none registered for user {user.id}")
        return self.get_device(user.device_id)

    def add_user(
        self,
        user_id: str,
        email: str,
        name: str,
        device_id: Optional[str] = None,
        risk_tolerance: str = DEFAULT_TOLERANCE,
        role: str = "user",
        department: Optional[str] = None,
        known_fingerprints: Optional[list[str]] = None,
        known_countries: Optional[list[str]] = None,
    ) -> UserRecord:
        """Create a user."""
        user = UserRecord(
            id=user_id,
            email=email,
            name=name,
            role=role,
            department=department,
            device_id=device_id,
            risk_tolerance=RiskTolerance.parse(risk_tolerance).value,
            known_fingerprints=list(known_fingerprints or []),
            known_countries=[c.upper() for c in known_countries or []],
        )
        self.session.add(user)
        self.session.flush()
        logger.info(f"Created user {user_id} ({user.risk_tolerance} tolerance)")
        return user

    @staticmethod
    def profile_for(user: UserRecord) -> UserProfile:
        """Convert a stored user into the read-only profile the engine consumes."""
        return UserProfile(
            id=user.id,
            known_fingerprints=frozenset(user.known_fingerprints or ()),
            known_countries=frozenset(user.known_countries or ()),
            risk_tolerance=RiskTolerance.parse(user.risk_tolerance),
        )

    def remember_device(self, user: UserRecord, fingerprint: Optional[str]) -> bool:
        """Add a fingerprint to the user's known devices. Returns True if it was new."""
        if not fingerprint or fingerprint in (user.known_fingerprints or []):
            return False
        # Reassign so the JSON column is marked dirty
        user.known_fingerprints = [*(user.known_fingerprints or []), fingerprint]
        logger.info(f"Remembered device fingerprint for {user.id}")
        return True

    def remember_country(self, user: UserRecord, country: Optional[str]) -> bool:
        """Add a country to the user's known countries. Returns True if it was new."""
        if not country:
            return False
        code = country.strip().upper()
        if code in (user.known_countries or []):
            return False
        user.known_countries = [*(user.known_countries or []), code]
        logger.info(f"Remembered country {code} for {user.id}")
        return True

    # -- Location history --

    @staticmethod
    def last_location(user: UserRecord) -> Optional[LocationFix]:
        if user.last_latitude is None or user.last_longitude is None or user.last_seen_at is None:
            return None
        return LocationFix(user.last_latitude, user.last_longitude, user.last_seen_at)

    @staticmethod
    def update_location(user: UserRecord, coordinates: Coordinates, seen_at: datetime) -> None:
        user.last_latitude = coordinates.latitude
        user.last_longitude = coordinates.longitude
        user.last_seen_at = _naive_utc(seen_at)

    # -- Assessment history --

    def record_assessment(self, user: UserRecord, assessment: RiskAssessment) -> AssessmentRecord:
        """Store an assessment in the audit log."""
        record = AssessmentRecord(
            user_id=user.id,
            device_id=assessment.device_id,
            mode=assessment.mode,
            score=assessment.score,
            raw_score=assessment.raw_score,
            risk_level=assessment.level.value,
            requires_mfa=assessment.requires_mfa,
            block_access=assessment.block_access,
            factors=[f.to_dict() for f in assessment.factors],
            assessed_at=_naive_utc(assessment.timestamp),
        )
        self.session.add(record)
        return record

    def recent_assessments(self, user: UserRecord, limit: int = 20) -> list[AssessmentRecord]:
        """Most recent assessments for a user, newest first."""
        return (
            self.session.query(AssessmentRecord)
            .filter(AssessmentRecord.user_id == user.id)
            .order_by(AssessmentRecord.assessed_at.desc(), AssessmentRecord.id.desc())
            .limit(limit)
            .all()
        )
