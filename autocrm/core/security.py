"""Security utilities for identity-provider access tokens."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt

from autocrm.core.config import settings


# =============================================================================
# Access Token (JWT issued by the identity provider)
# =============================================================================

def create_access_token(
    user_id: UUID,
    email: str | None = None,
    expires_hours: int | None = None,
) -> str:
    """
    Create a signed access token for a profile.

    The identity provider normally mints these; this helper exists for the
    CLI (dev tokens) and tests. Always signs with the current secret.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(hours=expires_hours or settings.JWT_EXPIRES_HOURS),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")


def decode_access_token(token: str) -> dict:
    """
    Decode and verify an access token.

    Tries current secret first, then previous (for rotation support).

    Raises:
        jwt.InvalidTokenError: If token invalid with all secrets
    """
    last_error = None
    for secret in settings.jwt_secrets:
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=["HS256"],
                audience=settings.JWT_AUDIENCE,
            )
        except jwt.InvalidTokenError as e:
            last_error = e
            continue
    raise last_error  # type: ignore
