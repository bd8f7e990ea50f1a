"""Enum definitions for application constants."""

from enum import Enum


class UserRole(str, Enum):
    """
    Profile roles.

    - CUSTOMER: files tickets, sees only their own
    - AGENT: works tickets assigned to them
    - ADMIN: sees and triages every ticket of their company
    """

    CUSTOMER = "customer"
    AGENT = "agent"
    ADMIN = "admin"


class TicketStatus(str, Enum):
    """Ticket lifecycle status. Any transition is allowed."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    """Ticket priority level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def scale(cls) -> list["TicketPriority"]:
        """Ordered severity scale, lowest first."""
        return [cls.LOW, cls.MEDIUM, cls.HIGH]

    @classmethod
    def parse(cls, value: object) -> "TicketPriority | None":
        """Case-insensitive lookup; None for anything that isn't a priority."""
        if not isinstance(value, str):
            return None
        return cls._value2member_map_.get(value.strip().lower())  # type: ignore[return-value]


class TicketEventType(str, Enum):
    """Change-feed event kinds pushed to connected clients."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"


# Roles allowed to triage tickets (status, priority, assignment)
ROLES_CAN_TRIAGE = {UserRole.AGENT, UserRole.ADMIN}

DEFAULT_TICKET_STATUS = TicketStatus.OPEN
DEFAULT_TICKET_PRIORITY = TicketPriority.LOW
