"""Shared fixtures: an in-memory database seeded with users and devices."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import sessionmaker

from bastion.db import session as db
from bastion.db.models import Base
from bastion.db.session import make_engine
from bastion.services.store import ProfileStore


def seed(session) -> None:
    store = ProfileStore(session)
    store.save_device(
        "dev-001",
        os_type="macos",
        os_version="MacOS 14.4",
        firewall_enabled=True,
        antivirus_enabled=True,
        disk_encryption_enabled=True,
        last_update=datetime.now(timezone.utc) - timedelta(days=5),
        compliance_score=96,
    )
    store.save_device(
        "dev-002",
        os_type="windows",
        os_version="Windows 8.1",
        firewall_enabled=False,
        antivirus_enabled=False,
        disk_encryption_enabled=False,
        last_update=datetime.now(timezone.utc) - timedelta(days=200),
        compliance_score=30,
    )
    store.add_user(
        "user-1",
        email="ada@example.com",
        name="Ada",
        device_id="dev-001",
        risk_tolerance="MEDIUM",
        known_fingerprints=["fp-1"],
        known_countries=["US", "UK"],
    )
    store.add_user(
        "user-2",
        email="bob@example.com",
        name="Bob",
        device_id="dev-002",
        risk_tolerance="LOW",
        known_countries=["NG"],
    )
    store.add_user("user-3", email="cy@example.com", name="Cy")
    session.commit()


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    with factory() as session:
        seed(session)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def configured_db():
    """Point the global session factory at a seeded in-memory database."""
    original = db.engine
    db.configure("sqlite://")
    db.init_db()
    with db.SessionLocal() as session:
        seed(session)
    yield
    db.engine.dispose()
    db.engine = original
    db.SessionLocal.configure(bind=original)
