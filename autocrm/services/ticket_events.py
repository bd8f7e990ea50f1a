"""Ticket change feed.

Pushes `{"type": "ticket_change", "event": ..., "ticket_id": ...}` to everyone
who can see the ticket: its customer, its assignee and its company's admins.
Clients re-fetch their ticket list on receipt.
"""

from __future__ import annotations

import logging
from uuid import UUID

from autocrm.core.websocket import ConnectionManager, manager as default_manager
from autocrm.db.enums import TicketEventType
from autocrm.db.models import Ticket

logger = logging.getLogger(__name__)


def build_ticket_change(event: TicketEventType, ticket_id: UUID) -> dict:
    return {"type": "ticket_change", "event": event.value, "ticket_id": str(ticket_id)}


async def publish_ticket_change(
    event: TicketEventType,
    ticket_id: UUID,
    customer_id: UUID,
    assignee_id: UUID | None,
    company_id: UUID | None,
    manager: ConnectionManager | None = None,
    previous_assignee_id: UUID | None = None,
) -> None:
    """
    Push a ticket change to connected viewers. Never raises.

    On reassignment pass previous_assignee_id so the old assignee drops the ticket.
    """
    manager = manager or default_manager
    message = build_ticket_change(event, ticket_id)
    recipients = {customer_id}
    if assignee_id:
        recipients.add(assignee_id)
    if previous_assignee_id:
        recipients.add(previous_assignee_id)

    try:
        for user_id in recipients:
            await manager.send_to_user(user_id, message)
        if company_id:
            await manager.send_to_company_admins(company_id, message, exclude=recipients)
    except Exception:
        logger.exception(f"Failed to publish {event.value} for ticket {ticket_id}")


def ticket_change_args(event: TicketEventType, ticket: Ticket) -> tuple:
    """Positional args for publish_ticket_change, captured before the session closes."""
    return (event, ticket.id, ticket.customer_id, ticket.assignee_id, ticket.company_id)
