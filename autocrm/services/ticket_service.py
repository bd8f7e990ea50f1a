"""Ticket service: creation, role-scoped reads and triage updates."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import Select, false, or_, select
from sqlalchemy.orm import Session, selectinload

from autocrm.db.enums import (
    DEFAULT_TICKET_PRIORITY,
    DEFAULT_TICKET_STATUS,
    ROLES_CAN_TRIAGE,
    TicketPriority,
    TicketStatus,
    UserRole,
)
from autocrm.db.models import Ticket
from autocrm.schemas.auth import UserSession
from autocrm.schemas.ticket import TicketCreate, TicketPatchRequest
from autocrm.services import profile_service
from autocrm.utils.sanitize import is_blank_html, sanitize_html

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Visibility
# =============================================================================

def scope_to_session(query: Select, session: UserSession) -> Select:
    """
    Restrict a ticket query to what the caller may see.

    - customer: tickets they filed
    - agent: tickets assigned to them
    - admin: tickets of their company (none without a company)
    """
    if session.role == UserRole.CUSTOMER:
        return query.where(Ticket.customer_id == session.user_id)
    if session.role == UserRole.AGENT:
        return query.where(Ticket.assignee_id == session.user_id)
    if session.role == UserRole.ADMIN and session.company_id:
        return query.where(Ticket.company_id == session.company_id)
    return query.where(false())


def _with_people(query: Select) -> Select:
    return query.options(
        selectinload(Ticket.customer),
        selectinload(Ticket.assignee),
        selectinload(Ticket.company),
    )


# =============================================================================
# Service Functions
# =============================================================================

def create_ticket(db: Session, session: UserSession, data: TicketCreate) -> Ticket:
    """File a ticket for the calling customer with default status and priority."""
    if session.role != UserRole.CUSTOMER:
        raise HTTPException(status_code=403, detail="Only customers can create tickets")

    description = sanitize_html(data.description)
    if is_blank_html(description):
        raise HTTPException(status_code=422, detail="Description is required")

    ticket = Ticket(
        title=data.title.strip(),
        description=description,
        status=DEFAULT_TICKET_STATUS,
        priority=DEFAULT_TICKET_PRIORITY,
        customer_id=session.user_id,
        company_id=session.company_id,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info(f"Ticket {ticket.id} created by {session.user_id}")
    return ticket


def list_tickets(
    db: Session,
    session: UserSession,
    *,
    status_filter: TicketStatus | None = None,
    priority_filter: TicketPriority | None = None,
    q: str | None = None,
) -> list[Ticket]:
    """Role-scoped tickets, newest first."""
    query = scope_to_session(_with_people(select(Ticket)), session)

    if status_filter:
        query = query.where(Ticket.status == status_filter)
    if priority_filter:
        query = query.where(Ticket.priority == priority_filter)
    if q and q.strip():
        search = f"%{q.strip()}%"
        query = query.where(
            or_(Ticket.title.ilike(search), Ticket.description.ilike(search))
        )

    query = query.order_by(Ticket.created_at.desc(), Ticket.id.desc())
    return list(db.scalars(query))


def get_ticket(db: Session, session: UserSession, ticket_id: UUID) -> Ticket:
    """Fetch a ticket the caller may see; 404 otherwise."""
    query = scope_to_session(
        _with_people(select(Ticket)).where(Ticket.id == ticket_id), session
    )
    ticket = db.scalar(query)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")
    return ticket


def update_ticket(
    db: Session, session: UserSession, ticket: Ticket, data: TicketPatchRequest
) -> Ticket:
    """Apply status/priority/assignee changes (agents and admins)."""
    if session.role not in ROLES_CAN_TRIAGE:
        raise HTTPException(status_code=403, detail="Only agents and admins can update tickets")

    changes: dict[str, str] = {}

    if data.status is not None and ticket.status != data.status:
        ticket.status = data.status
        changes["status"] = data.status.value

    if data.priority is not None and ticket.priority != data.priority:
        ticket.priority = data.priority
        changes["priority"] = data.priority.value

    if data.assignee_id is not None and ticket.assignee_id != data.assignee_id:
        if not profile_service.is_company_agent(db, data.assignee_id, ticket.company_id):
            raise HTTPException(
                status_code=422, detail="Assignee must be an agent of the ticket's company"
            )
        ticket.assignee_id = data.assignee_id
        changes["assignee_id"] = str(data.assignee_id)

    if not changes:
        return ticket

    ticket.updated_at = _now_utc()
    db.commit()
    db.refresh(ticket)
    logger.info(f"Ticket {ticket.id} updated by {session.user_id}: {changes}")
    return ticket


def merge_ai_metadata(db: Session, ticket: Ticket, patch: dict) -> dict:
    """Shallow-merge patch into ticket.ai_metadata; existing keys not in patch survive."""
    merged = {**(ticket.ai_metadata or {}), **patch}
    # Reassign so the JSON column is flagged dirty
    ticket.ai_metadata = merged
    ticket.updated_at = _now_utc()
    db.commit()
    db.refresh(ticket)
    return ticket.ai_metadata or {}
