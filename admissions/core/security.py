"""Staff session tokens (HS256 JWT)."""

from datetime import datetime, timedelta, timezone

import jwt

from admissions.core.config import settings

ALGORITHM = "HS256"


def create_session_token(user_id: str, role: str, token_version: int) -> str:
    """
    Sign a session token for a staff user.

    Logins are handled by the identity service; the CLI and the test-suite use
    this to mint tokens the API accepts.
    """
    issued_at = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "role": role,
        "token_version": token_version,
        "iat": issued_at,
        "exp": issued_at + timedelta(hours=settings.JWT_EXPIRES_HOURS),
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM)


def decode_session_token(token: str) -> dict:
    """
    Verify a session token against every accepted secret.

    Raises jwt.InvalidTokenError when no secret verifies it.
    """
    error: jwt.InvalidTokenError = jwt.InvalidTokenError("No signing secret configured")
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(token, secret, algorithms=[ALGORITHM])
        except jwt.InvalidTokenError as exc:
            error = exc
    raise error
