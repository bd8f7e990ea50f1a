"""Pydantic schemas for API request/response models."""

from autocrm.schemas.auth import MeResponse, TokenPayload, UserSession
from autocrm.schemas.ticket import (
    CommentRead,
    FeedbackRead,
    RatingSummary,
    TicketCreate,
    TicketRead,
)

__all__ = [
    "MeResponse",
    "TokenPayload",
    "UserSession",
    "CommentRead",
    "FeedbackRead",
    "RatingSummary",
    "TicketCreate",
    "TicketRead",
]
