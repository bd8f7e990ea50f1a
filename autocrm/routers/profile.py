"""Current-user endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from autocrm.core.deps import get_current_session, get_db
from autocrm.schemas.auth import MeResponse, UserSession
from autocrm.services import company_service

router = APIRouter(tags=["Profile"])


@router.get("/me", response_model=MeResponse)
def get_me(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Profile and company of the caller."""
    company_name = None
    if session.company_id:
        company_name = company_service.get_company(db, session.company_id).name
    return MeResponse(
        user_id=session.user_id,
        email=session.email,
        name=session.name,
        role=session.role,
        company_id=session.company_id,
        company_name=company_name,
    )
