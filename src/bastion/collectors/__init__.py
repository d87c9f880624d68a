"""Collaborators that turn raw request data into risk signals."""

from bastion.collectors.headers import DeviceContext, parse_device_context
from bastion.collectors.travel import LocationFix, haversine_km, is_impossible_travel

__all__ = ["DeviceContext", "LocationFix", "haversine_km", "is_impossible_travel", "parse_device_context"]
