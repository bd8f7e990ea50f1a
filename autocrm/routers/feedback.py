"""Customer feedback endpoints."""

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
from autocrm.schemas.ticket import FeedbackRead, FeedbackUpsert, RatingSummary
from autocrm.services import feedback_service, ticket_service

router = APIRouter(tags=["Feedback"])


@router.get("/tickets/{ticket_id}/feedback", response_model=FeedbackRead | None)
def get_feedback(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """The caller's feedback for a ticket, or null."""
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    return feedback_service.get_feedback(db, ticket.id, session.user_id)


@router.put(
    "/tickets/{ticket_id}/feedback",
    response_model=FeedbackRead,
    dependencies=[Depends(require_csrf_header)],
)
def put_feedback(
    ticket_id: UUID,
    data: FeedbackUpsert,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    return feedback_service.upsert_feedback(db, session, ticket, data)


@router.get("/feedback/ratings", response_model=RatingSummary)
def get_ratings(
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([UserRole.ADMIN])),
):
    """Customer satisfaction across the admin's company."""
    if not session.company_id:
        raise HTTPException(status_code=400, detail="Admin has no company")
    return feedback_service.company_rating_summary(db, session.company_id)
