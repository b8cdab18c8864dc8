# tests/conftest.py
import os
import tempfile
from datetime import datetime, timedelta, timezone

# Settings must be in place before the app modules are imported
_TMP_DIR = tempfile.mkdtemp(prefix="helpdesk-mini-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["JWT_SECRET"] = "test-secret"
os.environ["AUTO_CREATE_SCHEMA"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from helpdesk_mini.backend.app import models  # noqa: E402,F401
from helpdesk_mini.backend.app import utils  # noqa: E402
from helpdesk_mini.backend.app.db import Base, SessionLocal, engine  # noqa: E402
from helpdesk_mini.backend.app.main import app  # noqa: E402
from helpdesk_mini.backend.app.services import identity  # noqa: E402
from helpdesk_mini.backend.app.services.ratelimit import limiter  # noqa: E402


class FakeClock:
    """Stands in for utils.utcnow so tests can move wall-clock time."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def fresh_state():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock(datetime.now(timezone.utc).replace(microsecond=0))
    monkeypatch.setattr(utils, "utcnow", fake)
    return fake


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def register(client):
    """Register through the API; returns (headers, user json)."""

    def _register(username: str, role: str = "user", password: str = "password123"):
        r = client.post(
            "/register",
            json={
                "username": username,
                "email": f"{username}@example.com",
                "password": password,
                "role": role,
            },
        )
        assert r.status_code == 201, r.text
        data = r.json()
        return auth_header(data["token"]), data["user"]

    return _register


@pytest.fixture
def make_user(db):
    """Create a user straight through the identity service."""

    def _make(username: str, role: str = "user"):
        user, _ = identity.register(
            db, username, f"{username}@example.com", "password123", role
        )
        return user

    return _make
