"""Impossible travel detection from consecutive location fixes."""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

EARTH_RADIUS_KM = 6371.0

# More than this distance within the window is not physically plausible
MAX_DISTANCE_KM = 500.0
WINDOW_HOURS = 2.0


@dataclass(frozen=True)
class LocationFix:
    """A geolocated access at a point in time."""

    latitude: float
    longitude: float
    timestamp: datetime


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def is_impossible_travel(
    previous: Optional[LocationFix],
    current: LocationFix,
    max_distance_km: float = MAX_DISTANCE_KM,
    window_hours: float = WINDOW_HOURS,
) -> bool:
    """
    Whether moving from ``previous`` to ``current`` is geographically inconsistent.

    The first fix for a user (no previous location) is never flagged.
    """
    if previous is None:
        return False

    distance = haversine_km(previous.latitude, previous.longitude, current.latitude, current.longitude)
    hours = abs((_aware(current.timestamp) - _aware(previous.timestamp)).total_seconds()) / 3600
    return distance > max_distance_km and hours < window_hours
