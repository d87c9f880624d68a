"""Risk signal value objects: device posture, access context, user profile."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Union

from dateutil.parser import isoparse

from bastion.exceptions import InvalidInputError


class OsType(str, Enum):
    """Operating system family reported by the device collector."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"
    IOS = "ios"
    ANDROID = "android"

    @classmethod
    def parse(cls, value: str) -> "OsType":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidInputError(f"Unknown OS type: {value!r}")


class RiskTolerance(str, Enum):
    """Per-user policy knob for how eagerly borderline signals trigger step-up."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @classmethod
    def parse(cls, value: str) -> "RiskTolerance":
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise InvalidInputError(f"Unknown risk tolerance: {value!r}")


# Payload parsing helpers. Collectors send camelCase keys; Python callers
# usually send snake_case. Both are accepted.


def _pick(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _as_bool(value: Any, name: str) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    raise InvalidInputError(f"{name} must be a boolean, got {value!r}")


def _as_float(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except OverflowError:
        raise InvalidInputError(f"{name} is out of range, got {value!r}")
    # json.loads accepts NaN and Infinity
    if not math.isfinite(number):
        raise InvalidInputError(f"{name} must be a finite number, got {value!r}")
    return number


def _as_int(value: Any, name: str) -> Optional[int]:
    number = _as_float(value, name)
    return None if number is None else int(number)


def _as_str(value: Any, name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError(f"{name} must be a string, got {value!r}")
    return value


def _as_os_type(value: Any) -> Optional[OsType]:
    # Collectors report "Unknown" or browser-specific names; those stay unknown
    name = _as_str(value, "osType")
    if not name:
        return None
    try:
        return OsType(name.strip().lower())
    except ValueError:
        return None


def _as_str_list(value: Any, name: str) -> list:
    if value is None:
        return []
    if isinstance(value, str) or not isinstance(value, (list, tuple, set, frozenset)):
        raise InvalidInputError(f"{name} must be a list of strings, got {value!r}")
    return [_as_str(item, name) for item in value]


def parse_timestamp(value: Union[str, datetime, None], name: str = "timestamp") -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, passing datetimes through unchanged."""
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise InvalidInputError(f"{name} must be an ISO-8601 string, got {value!r}")
    try:
        return isoparse(value)
    except ValueError:
        raise InvalidInputError(f"{name} is not a valid ISO-8601 timestamp: {value!r}")


@dataclass(frozen=True)
class Coordinates:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise InvalidInputError(f"latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise InvalidInputError(f"longitude out of range: {self.longitude}")


@dataclass(frozen=True)
class DevicePosture:
    """
    Snapshot of a device's security configuration.

    Every field is optional: None means the collector could not tell,
    which the scorers treat differently from an explicit False.
    """

    device_id: Optional[str] = None
    os_type: Optional[OsType] = None
    os_version: Optional[str] = None
    disk_encrypted: Optional[bool] = None
    antivirus: Optional[bool] = None
    firewall_enabled: Optional[bool] = None
    is_jailbroken: Optional[bool] = None
    fingerprint: Optional[str] = None
    is_known_device: Optional[bool] = None
    last_security_update: Optional[datetime] = None
    compliance_score: Optional[int] = None

    def __post_init__(self):
        if self.compliance_score is not None and not 0 <= self.compliance_score <= 100:
            raise InvalidInputError(
                f"compliance_score must be within 0-100, got {self.compliance_score}"
            )

    @property
    def has_compliance_data(self) -> bool:
        """Whether the posture carries device-management compliance telemetry."""
        return (
            self.firewall_enabled is not None
            or self.compliance_score is not None
            or self.last_security_update is not None
        )

    @classmethod
    def from_dict(cls, data: dict) -> "DevicePosture":
        """Build a posture from a collector payload (camelCase or snake_case keys)."""
        if not isinstance(data, dict):
            raise InvalidInputError(f"Device posture must be an object, got {type(data).__name__}")

        return cls(
            device_id=_as_str(_pick(data, "deviceId", "device_id"), "deviceId"),
            os_type=_as_os_type(_pick(data, "osType", "os_type", "os")),
            os_version=_as_str(_pick(data, "osVersion", "os_version"), "osVersion"),
            disk_encrypted=_as_bool(
                _pick(data, "diskEncrypted", "diskEncryptionEnabled", "disk_encrypted"), "diskEncrypted"
            ),
            antivirus=_as_bool(_pick(data, "antivirus", "antivirusEnabled"), "antivirus"),
            firewall_enabled=_as_bool(_pick(data, "firewallEnabled", "firewall_enabled"), "firewallEnabled"),
            is_jailbroken=_as_bool(_pick(data, "isJailbroken", "is_jailbroken"), "isJailbroken"),
            fingerprint=_as_str(_pick(data, "fingerprint"), "fingerprint"),
            is_known_device=_as_bool(_pick(data, "isKnownDevice", "is_known_device"), "isKnownDevice"),
            last_security_update=parse_timestamp(
                _pick(data, "lastSecurityUpdate", "lastUpdate", "last_security_update"), "lastSecurityUpdate"
            ),
            compliance_score=_as_int(_pick(data, "complianceScore", "compliance_score"), "complianceScore"),
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "device_id": self.device_id,
            "os_type": self.os_type.value if self.os_type else None,
            "os_version": self.os_version,
            "disk_encrypted": self.disk_encrypted,
            "antivirus": self.antivirus,
            "firewall_enabled": self.firewall_enabled,
            "is_jailbroken": self.is_jailbroken,
            "fingerprint": self.fingerprint,
            "is_known_device": self.is_known_device,
            "last_security_update": (
                self.last_security_update.isoformat() if self.last_security_update else None
            ),
            "compliance_score": self.compliance_score,
        }


@dataclass(frozen=True)
class AccessContext:
    """Network and location circumstances of an access attempt."""

    impossible_travel: Optional[bool] = None
    country: Optional[str] = None
    city: Optional[str] = None
    coordinates: Optional[Coordinates] = None
    timezone: Optional[str] = None
    is_vpn: Optional[bool] = None
    is_tor: Optional[bool] = None
    ip_address: Optional[str] = None
    ip_reputation: Optional[int] = None  # 0-100, higher = more trustworthy
    access_time: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict) -> "AccessContext":
        """Build an access context from a collector payload."""
        if not isinstance(data, dict):
            raise InvalidInputError(f"Access context must be an object, got {type(data).__name__}")

        latitude = _as_float(_pick(data, "latitude", "lat"), "latitude")
        longitude = _as_float(_pick(data, "longitude", "lon", "lng"), "longitude")
        coordinates = None
        if latitude is not None and longitude is not None:
            coordinates = Coordinates(latitude, longitude)

        return cls(
            impossible_travel=_as_bool(_pick(data, "impossibleTravel", "impossible_travel"), "impossibleTravel"),
            country=_as_str(_pick(data, "country"), "country"),
            city=_as_str(_pick(data, "city"), "city"),
            coordinates=coordinates,
            timezone=_as_str(_pick(data, "timezone"), "timezone"),
            is_vpn=_as_bool(_pick(data, "isVPN", "isVpn", "is_vpn"), "isVPN"),
            is_tor=_as_bool(_pick(data, "isTor", "is_tor"), "isTor"),
            ip_address=_as_str(_pick(data, "ipAddress", "ip_address"), "ipAddress"),
            ip_reputation=_as_int(_pick(data, "ipReputation", "ip_reputation"), "ipReputation"),
            access_time=parse_timestamp(_pick(data, "accessTime", "access_time"), "accessTime"),
        )


def _normalize_countries(countries: Iterable[str]) -> frozenset:
    return frozenset(c.strip().upper() for c in countries if c)


@dataclass(frozen=True)
class UserProfile:
    """A user's history and policy, supplied by the profile store."""

    id: str
    known_fingerprints: frozenset = field(default_factory=frozenset)
    known_countries: frozenset = field(default_factory=frozenset)
    risk_tolerance: RiskTolerance = RiskTolerance.MEDIUM

    def __post_init__(self):
        # Accept any iterable from callers but store immutable, normalized sets
        object.__setattr__(self, "known_fingerprints", frozenset(f for f in self.known_fingerprints if f))
        object.__setattr__(self, "known_countries", _normalize_countries(self.known_countries))
        if not isinstance(self.risk_tolerance, RiskTolerance):
            object.__setattr__(self, "risk_tolerance", RiskTolerance.parse(self.risk_tolerance))

    def knows_country(self, country: str) -> bool:
        return country.strip().upper() in self.known_countries

    def knows_fingerprint(self, fingerprint: str) -> bool:
        return fingerprint in self.known_fingerprints

    @classmethod
    def from_dict(cls, data: dict) -> "UserProfile":
        """Build a profile from a JSON object."""
        if not isinstance(data, dict):
            raise InvalidInputError(f"User profile must be an object, got {type(data).__name__}")
        user_id = _as_str(_pick(data, "id", "userId", "user_id"), "id")
        if not user_id:
            raise InvalidInputError("User profile requires an id")
        tolerance = _as_str(_pick(data, "riskTolerance", "risk_tolerance"), "riskTolerance")
        return cls(
            id=user_id,
            known_fingerprints=frozenset(
                _as_str_list(_pick(data, "knownFingerprints", "known_fingerprints"), "knownFingerprints")
            ),
            known_countries=frozenset(
                _as_str_list(_pick(data, "knownCountries", "known_countries"), "knownCountries")
            ),
            risk_tolerance=RiskTolerance.parse(tolerance) if tolerance else RiskTolerance.MEDIUM,
        )


class TransactionType(str, Enum):
    """Kind of money movement being authorized."""

    DEBIT = "debit"
    CREDIT = "credit"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class TransactionContext:
    """Metadata about the transaction an access attempt is trying to authorize."""

    amount: float
    currency: Optional[str] = None
    type: Optional[TransactionType] = None
    recipient: Optional[str] = None

    def __post_init__(self):
        if self.amount < 0:
            raise InvalidInputError(f"Transaction amount cannot be negative: {self.amount}")
