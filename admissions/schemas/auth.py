"""Authentication-related Pydantic schemas."""

from pydantic import BaseModel

from admissions.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: str  # user_id
    role: str
    token_version: int


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency; carries everything the
    routers need for authorization and for stamping actor ids on writes.
    """
    user_id: str
    role: Role  # Validated enum
    email: str
    name: str
