"""FastAPI dependencies for authentication, authorization, and shared services."""

from functools import lru_cache
from typing import Generator

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from autocrm.core.security import decode_access_token
from autocrm.db.session import SessionLocal


CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def resolve_session(db: Session, token: str):
    """
    Build a UserSession from an access token.

    Shared by HTTP requests and the websocket handshake.

    Raises:
        HTTPException 401: Invalid token or unknown profile
    """
    # Import here to avoid circular imports
    from autocrm.db.models import Profile
    from autocrm.schemas.auth import TokenPayload, UserSession

    try:
        user_id = TokenPayload.model_validate(decode_access_token(token)).sub
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    profile = db.get(Profile, user_id)
    if not profile:
        raise HTTPException(status_code=401, detail="Profile not found")

    return UserSession(
        user_id=profile.id,
        role=profile.role,
        company_id=profile.company_id,
        email=profile.email,
        name=profile.name,
    )


def get_current_session(request: Request, db: Session = Depends(get_db)):
    """
    Get full session context: user_id, role, company_id.

    This is the PRIMARY auth dependency for most endpoints.

    Raises:
        HTTPException 401: Not authenticated
    """
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return resolve_session(db, token)


def require_roles(allowed_roles: list):
    """
    Dependency factory for role-based authorization.

    Usage:
        @router.get("/ratings", dependencies=[Depends(require_roles([UserRole.ADMIN]))])
    """
    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action"
            )
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )


# =============================================================================
# Shared services (overridden in tests)
# =============================================================================

@lru_cache
def get_storage():
    from autocrm.services.storage_service import build_storage

    return build_storage()


@lru_cache
def get_ai_assistant():
    from autocrm.services.ai_assist_service import build_assistant

    return build_assistant()
