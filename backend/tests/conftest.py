"""
Shared fixtures.

The app runs against an in-memory SQLite database (one connection shared
through StaticPool), a recording mailer and a frozen clock, so every test
starts from an empty store at a known instant.
"""

import os
import re
import tempfile
from datetime import datetime, timezone

# Settings() is built at import time and needs a secret; keep the default
# app instance created by ``main`` away from the real database and uploads.
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="asset-manager-uploads-"))

import pytest                                      # noqa: E402
from fastapi.testclient import TestClient          # noqa: E402
from sqlalchemy.orm import sessionmaker            # noqa: E402
from sqlalchemy.pool import StaticPool             # noqa: E402

from auth.lockout import LockoutPolicy             # noqa: E402
from auth.service import AuthConfig, AuthService   # noqa: E402
from core.clock import FrozenClock                 # noqa: E402
from core.config import Settings                   # noqa: E402
from core.security import PasswordHasher, TokenIssuer  # noqa: E402
from database import Base, get_db, make_engine     # noqa: E402
from main import create_app                        # noqa: E402
from models.user import User                       # noqa: E402

TEST_ROUNDS = 1000
APP_URL = "http://app.test"
START = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)

_TOKEN_RE = re.compile(r"/verify-email/([0-9a-f]{64})")


class RecordingMailer:
    """Keeps every message instead of sending it; ``deliver=False`` simulates an SMTP outage."""

    def __init__(self, deliver: bool = True):
        self.deliver = deliver
        self.sent = []

    def send(self, to, subject, body, html=None):
        self.sent.append({"to": to, "subject": subject, "body": body, "html": html})
        return self.deliver

    def last_token(self) -> str:
        match = _TOKEN_RE.search(self.sent[-1]["body"])
        assert match, "no verification link in the last mail"
        return match.group(1)


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    engine = make_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def clock():
    return FrozenClock(START)


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=TEST_ROUNDS)


@pytest.fixture
def auth_service(db_session, clock, mailer, hasher):
    return AuthService(
        db_session,
        AuthConfig(app_url=APP_URL),
        hasher=hasher,
        tokens=TokenIssuer("unit-test-secret", clock),
        lockout=LockoutPolicy(),
        mailer=mailer,
        clock=clock,
        request_ip="127.0.0.1",
    )


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------


@pytest.fixture
def settings(tmp_path):
    return Settings(
        secret_key="api-test-secret",
        database_url="sqlite://",
        password_hash_rounds=TEST_ROUNDS,
        rate_limit_enabled=False,
        app_url=APP_URL,
        smtp_host="",
        upload_dir=str(tmp_path / "uploads"),
        max_upload_mb=1,
    )


@pytest.fixture
def app(settings, mailer, clock, session_factory):
    application = create_app(settings, mailer=mailer, clock=clock)

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db_session, hasher):
    """Insert a user directly, bypassing registration."""

    def _make(username="bob", email=None, password="secret123", role="staff", verified=True):
        user = User(
            username=username,
            email=email or f"{username}@example.com",
            password_hash=hasher.hash(password),
            role=role,
            email_verified=verified,
            failed_login_attempts=0,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def login_headers(client):
    """Log in through the API and return the Authorization header."""

    def _login(username, password="secret123"):
        resp = client.post("/api/auth/login", json={"username": username, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _login


@pytest.fixture
def admin_headers(make_user, login_headers):
    make_user("root", role="admin")
    return login_headers("root")


@pytest.fixture
def staff_headers(make_user, login_headers):
    make_user("bob")
    return login_headers("bob")
