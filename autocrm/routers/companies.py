"""Company endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from autocrm.core.deps import (
    get_current_session,
    get_db,
    require_csrf_header,
    require_roles,
)
from autocrm.db.enums import UserRole
from autocrm.schemas.auth import UserSession
from autocrm.schemas.ticket import CompanyCreate, CompanyRead, ProfileSummary
from autocrm.services import company_service, profile_service

router = APIRouter(prefix="/companies", tags=["Companies"])


@router.get("", response_model=list[CompanyRead])
def list_companies(
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return company_service.list_companies(db)


@router.post(
    "",
    response_model=CompanyRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_company(
    data: CompanyCreate,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([UserRole.ADMIN])),
):
    try:
        return company_service.create_company(db, data.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{company_id}/agents", response_model=list[ProfileSummary])
def list_agents(
    company_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([UserRole.ADMIN, UserRole.AGENT])),
):
    """Agents available for assignment within the caller's company."""
    if session.company_id != company_id:
        raise HTTPException(status_code=404, detail="Company not found")
    company = company_service.get_company(db, company_id)
    return profile_service.list_company_agents(db, company.id)
