"""Ticket endpoints: create, role-scoped list/detail, triage updates."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from autocrm.core.deps import get_current_session, get_db, require_csrf_header
from autocrm.db.enums import TicketEventType, TicketPriority, TicketStatus
from autocrm.schemas.auth import UserSession
from autocrm.schemas.ticket import (
    TicketCreate,
    TicketListResponse,
    TicketPatchRequest,
    TicketRead,
)
from autocrm.services import ticket_service
from autocrm.services.ticket_events import publish_ticket_change, ticket_change_args

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.get("", response_model=TicketListResponse)
def list_tickets(
    status: TicketStatus | None = Query(None),
    priority: TicketPriority | None = Query(None),
    q: str | None = Query(None, max_length=200),
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """
    Tickets visible to the caller, newest first.

    Customers see their own, agents their assigned, admins their company's.
    """
    tickets = ticket_service.list_tickets(
        db, session, status_filter=status, priority_filter=priority, q=q
    )
    return TicketListResponse(
        items=[TicketRead.model_validate(t) for t in tickets], total=len(tickets)
    )


@router.post(
    "",
    response_model=TicketRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_ticket(
    data: TicketCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    ticket = ticket_service.create_ticket(db, session, data)
    background_tasks.add_task(
        publish_ticket_change, *ticket_change_args(TicketEventType.INSERT, ticket)
    )
    return ticket


@router.get("/{ticket_id}", response_model=TicketRead)
def get_ticket(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    return ticket_service.get_ticket(db, session, ticket_id)


@router.patch(
    "/{ticket_id}",
    response_model=TicketRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_ticket(
    ticket_id: UUID,
    data: TicketPatchRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Change status, priority or assignee (agents and admins)."""
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    previous_assignee_id = ticket.assignee_id
    ticket = ticket_service.update_ticket(db, session, ticket, data)
    background_tasks.add_task(
        publish_ticket_change,
        *ticket_change_args(TicketEventType.UPDATE, ticket),
        previous_assignee_id=previous_assignee_id,
    )
    return ticket
