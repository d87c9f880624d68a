"""SQLAlchemy models for bastion."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class DeviceRecord(Base):
    """A registered device and its last reported compliance posture."""

    __tablename__ = "devices"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    os_type: Mapped[Optional[str]] = mapped_column(String(20))  # windows, macos, linux, ios, android
    os_version: Mapped[Optional[str]] = mapped_column(String(100))

    firewall_enabled: Mapped[Optional[bool]] = mapped_column(Boolean)
    antivirus_enabled: Mapped[Optional[bool]] = mapped_column(Boolean)
    disk_encryption_enabled: Mapped[Optional[bool]] = mapped_column(Boolean)
    last_update: Mapped[Optional[datetime]] = mapped_column(DateTime)
    compliance_score: Mapped[Optional[int]] = mapped_column(Integer)

    # Relationships
    users: Mapped[list["UserRecord"]] = relationship(back_populates="device")


class UserRecord(Base):
    """A user, their registered device and the history the context rules compare against."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(String(20), default="user")  # user, admin
    department: Mapped[Optional[str]] = mapped_column(String(100))
    risk_tolerance: Mapped[str] = mapped_column(String(10), default="MEDIUM")  # LOW, MEDIUM, HIGH

    device_id: Mapped[Optional[str]] = mapped_column(ForeignKey("devices.id", ondelete="SET NULL"))

    # Stored as JSON arrays
    known_fingerprints: Mapped[list] = mapped_column(JSON, default=list)
    known_countries: Mapped[list] = mapped_column(JSON, default=list)

    # Last geolocated access, for impossible travel checks
    last_latitude: Mapped[Optional[float]] = mapped_column(Float)
    last_longitude: Mapped[Optional[float]] = mapped_column(Float)
    last_seen_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    device: Mapped[Optional["DeviceRecord"]] = relationship(back_populates="users")
    assessments: Mapped[list["AssessmentRecord"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )


class AssessmentRecord(Base):
    """Audit log entry for a risk assessment."""

    __tablename__ = "assessments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"))
    device_id: Mapped[Optional[str]] = mapped_column(String(100))

    mode: Mapped[str] = mapped_column(String(10))  # device, context
    score: Mapped[int] = mapped_column(Integer)
    raw_score: Mapped[int] = mapped_column(Integer)
    risk_level: Mapped[str] = mapped_column(String(10))  # LOW, MEDIUM, HIGH, CRITICAL
    requires_mfa: Mapped[bool] = mapped_column(Boolean, default=False)
    block_access: Mapped[bool] = mapped_column(Boolean, default=False)

    # Factor list stored as JSON
    factors: Mapped[list] = mapped_column(JSON, default=list)

    assessed_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    user: Mapped["UserRecord"] = relationship(back_populates="assessments")

    __table_args__ = (
        Index("ix_assessment_user_id", "user_id"),
        Index("ix_assessment_assessed_at", "assessed_at"),
    )
