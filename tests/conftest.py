"""Pytest configuration and fixtures."""

import os
import uuid
from datetime import datetime

# Set test environment variables BEFORE importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing-only-32chars")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

# Disable route-level rate limiting for tests by monkey-patching BEFORE imports
from slowapi import Limiter
from slowapi.util import get_remote_address

_disabled_limiter = Limiter(key_func=get_remote_address, enabled=False)

import app.core.rate_limit as rate_limit_module
rate_limit_module.public_limiter = _disabled_limiter

# Patch PostgreSQL types for SQLite compatibility BEFORE importing models
from sqlalchemy import String, TypeDecorator
import sqlalchemy.dialects.postgresql as pg_dialect


class SQLiteUUID(TypeDecorator):
    """Platform-independent UUID type that works with SQLite."""
    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            if isinstance(value, uuid.UUID):
                return str(value)
            return str(uuid.UUID(value))
        return value

    def process_result_value(self, value, dialect):
        if value is not None:
            return uuid.UUID(value)
        return value


# Monkey-patch the PostgreSQL UUID class before any models are imported
class MockUUID(SQLiteUUID):
    """Mock PostgreSQL UUID that works with SQLite for testing."""
    def __init__(self, as_uuid=True):
        super().__init__()
        self.as_uuid = as_uuid


pg_dialect.UUID = MockUUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.database import Base
from app.core.rate_limit import InMemoryRateLimitStore
from app.core.security import get_password_hash
from app.api.deps import get_db, get_email_service, get_rate_limit_store
from app.models import Story, User
from app.services.email_service import EmailService
from main import app

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

SESSION_COOKIE = "session_token"
DEFAULT_PASSWORD = "Password1!"


class RecordingEmailService(EmailService):
    """Email sender that keeps outgoing messages (with raw tokens) in memory."""

    def __init__(self):
        super().__init__()
        self.sent = []

    def send_verification_email(self, email, name, token):
        self.sent.append({"kind": "verification", "email": email, "name": name, "token": token})

    def send_password_reset_email(self, email, name, token):
        self.sent.append({"kind": "password_reset", "email": email, "name": name, "token": token})

    def last(self, kind):
        for message in reversed(self.sent):
            if message["kind"] == kind:
                return message
        return None


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def rate_limit_store():
    """Fresh attempt counters for each test."""
    return InMemoryRateLimitStore()


@pytest.fixture
def outbox():
    return RecordingEmailService()


@pytest.fixture(scope="function")
def client(db_session, rate_limit_store, outbox):
    """Create a test client with database, rate limit and email overrides."""
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_rate_limit_store] = lambda: rate_limit_store
    app.dependency_overrides[get_email_service] = lambda: outbox
    app.state.db_session_factory = TestingSessionLocal
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Factory for accounts stored directly in the database."""

    def _make_user(email="reader@example.com", password=DEFAULT_PASSWORD, name="Reader", verified=True):
        user = User(
            email=email,
            name=name,
            password_hash=get_password_hash(password),
            is_email_verified=verified,
            email_verified_at=datetime.utcnow() if verified else None,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def verified_user(make_user):
    return make_user()


@pytest.fixture
def login(client):
    """Sign in through the API; the client keeps the session cookie."""

    def _login(email="reader@example.com", password=DEFAULT_PASSWORD):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response

    return _login


@pytest.fixture
def auth_client(client, verified_user, login):
    login()
    return client


@pytest.fixture
def story_payload():
    return {
        "theme": "A journey to the moon",
        "mainCharacterName": "Luna",
        "mainCharacterTraits": "curious, brave",
        "title": "Luna and the Moon",
        "content": "Once upon a time, Luna built a rocket out of cardboard.",
    }


@pytest.fixture
def make_story(db_session):
    """Factory for stories stored directly in the database."""

    def _make_story(user, title="Bedtime Story", content="The stars were sleepy.", **fields):
        story = Story(
            user_id=user.id,
            theme=fields.pop("theme", "Space"),
            main_character_name=fields.pop("main_character_name", "Max"),
            main_character_traits=fields.pop("main_character_traits", "kind"),
            title=title,
            content=content,
            **fields,
        )
        db_session.add(story)
        db_session.commit()
        db_session.refresh(story)
        return story

    return _make_story
