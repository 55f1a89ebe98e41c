"""Request dependencies: database session, staff authentication, role checks, email."""

from typing import Generator

import jwt
from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from admissions.core.security import decode_session_token
from admissions.db.session import SessionLocal
from admissions.schemas.auth import TokenPayload

COOKIE_NAME = "admissions_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """One session per request, closed when the response is done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_token(request: Request) -> str | None:
    """Session cookie first, then an `Authorization: Bearer` header."""
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)):
    """
    Resolve the staff user behind the request.

    The token must verify, name an existing active user, and carry that
    user's current token_version (bumping the version revokes old sessions).

    Raises:
        HTTPException 401: any of the above fails
    """
    from admissions.db.models import User

    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        claims = TokenPayload.model_validate(decode_session_token(token))
    except (jwt.InvalidTokenError, ValidationError):
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.get(User, claims.sub)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")
    if user.token_version != claims.token_version:
        raise HTTPException(status_code=401, detail="Session revoked")
    return user


def get_current_session(request: Request, db: Session = Depends(get_db)):
    """
    Session context for staff endpoints: id, role, email and name.

    A role stored on the user that this service does not know is a 403.
    """
    from admissions.db.enums import Role
    from admissions.schemas.auth import UserSession

    user = get_current_user(request, db)
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator.",
        )
    return UserSession(user_id=user.id, role=Role(user.role), email=user.email, name=user.name)


def require_roles(allowed_roles):
    """
    Build a dependency that admits only the given roles.

    Usage:
        session: UserSession = Depends(require_roles(ROLES_CAN_REVIEW_APPLICATIONS))
    """
    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action",
            )
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """Reject state-changing requests that lack the XHR marker header (403)."""
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )


def get_email_sender():
    """Resend when configured, otherwise a sender that only logs."""
    from admissions.services.email_sender import build_email_sender

    return build_email_sender()
