"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel

from autocrm.db.enums import UserRole


class TokenPayload(BaseModel):
    """Decoded access token payload structure."""
    sub: UUID  # profile id
    email: str | None = None


class UserSession(BaseModel):
    """
    Full session context for authenticated requests.

    Returned by the get_current_session dependency; role and company come
    from the profile row, not from the token.
    """
    user_id: UUID
    role: UserRole
    company_id: UUID | None = None
    email: str
    name: str


class MeResponse(BaseModel):
    """Response schema for GET /me."""
    user_id: UUID
    email: str
    name: str
    role: UserRole
    company_id: UUID | None = None
    company_name: str | None = None
