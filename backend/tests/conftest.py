"""
Test configuration and fixtures for pytest.
"""

import os
from unittest.mock import AsyncMock, MagicMock

# Point the application at an in-memory database before it is imported
os.environ["DATABASE_URL"] = "sqlite://"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from empathyconnect.db.base import Base
from empathyconnect.db.models import CrisisAlert
from empathyconnect.dependencies import db_dependency, get_alert_notifier
from empathyconnect.main import app


@pytest.fixture
def test_engine():
    """Create a fresh in-memory database with all tables."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test database."""
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture
def db_session(session_factory):
    """Create a new database session for a test."""
    session = session_factory()

    yield session

    session.close()


@pytest.fixture
def alert_notifier():
    """Notifier stand-in that records published alert updates."""
    notifier = MagicMock()
    notifier.publish = AsyncMock(return_value=1)
    return notifier


@pytest.fixture
def client(db_session, alert_notifier):
    """Create a test client with session and notifier overrides."""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[db_dependency] = override_get_db
    app.dependency_overrides[get_alert_notifier] = lambda: alert_notifier

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_alert(db_session):
    """Insert a crisis alert with sensible defaults."""

    def _make_alert(**fields):
        values = {
            "session_id": "abcd1234",
            "pseudo_user_id": "User_ABCD",
            "risk_level": "high",
            "primary_feeling": "kill myself",
            "message_preview": "I want to kill myself",
            "status": "pending",
        }
        values.update(fields)
        alert = CrisisAlert(**values)
        db_session.add(alert)
        db_session.commit()
        db_session.refresh(alert)
        return alert

    return _make_alert
