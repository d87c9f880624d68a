"""Database models and session management."""

from bastion.db.models import AssessmentRecord, Base, DeviceRecord, UserRecord
from bastion.db.session import configure, get_session, init_db, session_scope

__all__ = [
    "AssessmentRecord",
    "Base",
    "DeviceRecord",
    "UserRecord",
    "configure",
    "get_session",
    "init_db",
    "session_scope",
]
