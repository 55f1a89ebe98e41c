"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test
- Staff users and JWT token minting for authenticated tests
- Recording email sender in place of the real provider
- HTTPX AsyncClient with proper headers
"""
import os
from dataclasses import dataclass, field
from typing import AsyncGenerator, Generator

# Must be set before the app (settings, limiter, engine) is imported
os.environ["TESTING"] = "1"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from admissions.main import app
from admissions.core.deps import COOKIE_NAME, get_db, get_email_sender
from admissions.core.security import create_session_token
from admissions.db.base import Base
from admissions.db.enums import Role
from admissions.db.models import Language, User
from admissions.schemas.forms import FormCreate
from admissions.services import form_service
from admissions.services.email_sender import EmailSendError


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Creates a session on a private in-memory database.

    StaticPool keeps a single connection so every thread (the app runs sync
    routes in a threadpool) sees the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()

    yield session

    session.close()
    Base.metadata.drop_all(engine)
    engine.dispose()


def _make_user(db: Session, email: str, name: str, role: Role, **kwargs) -> User:
    user = User(email=email, name=name, role=role.value, **kwargs)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def admin_user(db: Session) -> User:
    return _make_user(db, "admin@langzy.com", "Ada Admin", Role.ADMIN)


@pytest.fixture(scope="function")
def counsellor_user(db: Session) -> User:
    return _make_user(db, "counsellor@langzy.com", "Cole Counsellor", Role.COUNSELLOR)


@pytest.fixture(scope="function")
def tutor_user(db: Session) -> User:
    return _make_user(db, "tutor@langzy.com", "Tess Tutor", Role.TUTOR)


@pytest.fixture(scope="function")
def language(db: Session) -> Language:
    lang = Language(name="English", code="en", flag="🇬🇧")
    db.add(lang)
    db.commit()
    db.refresh(lang)
    return lang


# =============================================================================
# Email
# =============================================================================

@dataclass
class SentEmail:
    to_email: str
    subject: str
    message: str


@dataclass
class FakeEmailSender:
    """Records messages; can be told to fail for everyone or for given addresses."""
    key: str = "fake"
    sent: list[SentEmail] = field(default_factory=list)
    fail: bool = False
    fail_for: set[str] = field(default_factory=set)

    def send(self, to_email: str, subject: str, message: str) -> None:
        if self.fail or to_email in self.fail_for:
            raise EmailSendError("provider unavailable")
        self.sent.append(SentEmail(to_email, subject, message))

    def subjects_to(self, to_email: str) -> list[str]:
        return [m.subject for m in self.sent if m.to_email == to_email]


@pytest.fixture(scope="function")
def email_sender() -> FakeEmailSender:
    return FakeEmailSender()


# =============================================================================
# Form helpers
# =============================================================================

def form_payload(name: str = "IELTS Prep", **overrides) -> dict:
    """Minimal valid create-form body (camelCase, as sent by the admin UI)."""
    payload = {
        "name": name,
        "fields": [{"name": "fullName", "label": "Full Name", "type": "text", "required": True}],
    }
    payload.update(overrides)
    return payload


@pytest.fixture(scope="function")
def make_form(db: Session, admin_user: User):
    """Factory creating forms through the service layer."""
    def _make(name: str = "IELTS Prep", **overrides):
        return form_service.create_form(
            db, admin_user.id, FormCreate.model_validate(form_payload(name, **overrides))
        )
    return _make


def submission(email: str = "a@x.com", full_name: str = "A", **overrides) -> dict:
    payload = {
        "studentInfo": {"fullName": full_name, "email": email},
        "formData": {"fullName": full_name},
    }
    payload.update(overrides)
    return payload


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


def auth_for(user: User) -> TestAuth:
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    return TestAuth(user=user, token=token)


@pytest.fixture(scope="function")
def admin_auth(admin_user: User) -> TestAuth:
    return auth_for(admin_user)


@pytest.fixture(scope="function")
def counsellor_auth(counsellor_user: User) -> TestAuth:
    return auth_for(counsellor_user)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def override_dependencies(db: Session, email_sender: FakeEmailSender):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    yield
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(override_dependencies) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient for testing public endpoints.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


@pytest.fixture(scope="function")
async def authed_client(
    override_dependencies,
    admin_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create AsyncClient authenticated as an admin (JWT cookie + CSRF header).
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={admin_auth.cookie_name: admin_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c


@pytest.fixture(scope="function")
async def counsellor_client(
    override_dependencies,
    counsellor_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient authenticated as a counsellor via Bearer token."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={
            "Authorization": f"Bearer {counsellor_auth.token}",
            "X-Requested-With": "XMLHttpRequest",
        },
    ) as c:
        yield c
