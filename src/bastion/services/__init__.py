"""Bastion services for store-backed assessment."""

from bastion.services.assessor import accept_access, assess_access, assess_user_device
from bastion.services.store import ProfileStore

__all__ = ["ProfileStore", "accept_access", "assess_access", "assess_user_device"]
