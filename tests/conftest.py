"""
Pytest configuration and fixtures for EventHub tests.

Points the application at a throwaway SQLite database before anything from
``eventhub`` is imported, creates the auth tables once per session and wipes
them (plus the in-process rate limiters) around every test.
"""

import os
import tempfile
from uuid import uuid4

_TEST_DB_DIR = tempfile.mkdtemp(prefix="eventhub-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DB_DIR, 'eventhub.db')}"
os.environ.setdefault("SKIP_DB_INIT", "0")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from eventhub.core.password_reset import (
    PasswordResetToken,
    email_rate_limiter,
    init_password_reset_tables,
    ip_rate_limiter,
)
from eventhub.core.security import User, UserSession, create_session, create_user, init_auth_tables
from eventhub.db.session import get_engine
from eventhub.main import app


@pytest.fixture(scope="session", autouse=True)
def initialize_test_database():
    """Create the auth and password-reset tables once for the whole run."""
    init_auth_tables()
    init_password_reset_tables()
    yield


def _wipe():
    with Session(get_engine()) as session:
        session.query(PasswordResetToken).delete()
        session.query(UserSession).delete()
        session.query(User).delete()
        session.commit()
    email_rate_limiter.reset()
    ip_rate_limiter.reset()


@pytest.fixture(autouse=True)
def clean_state():
    _wipe()
    yield
    _wipe()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = Session(get_engine())
    yield session
    session.close()


@pytest.fixture
def user_factory(db):
    """
    Create users directly via the ORM.

    Returns a callable; each user comes with a live session token usable as
    a Bearer header or cookie value.
    """

    def _create_user(*, role: str = "attendee", password: str = "Password123", email: str = None) -> dict:
        suffix = uuid4().hex[:10]
        email = email or f"{role}_{suffix}@example.com"
        username = f"{role}_{suffix}"
        user = create_user(
            db=db,
            email=email,
            password=password,
            username=username,
            first_name="Pytest",
            last_name="User",
            role=role,
        )
        token = create_session(db, user)
        return {
            "user": user,
            "email": user.email,
            "username": username,
            "password": password,
            "token": token,
            "headers": {"Authorization": f"Bearer {token}"},
        }

    return _create_user
