"""Pydantic schemas for tickets, comments, attachments and feedback."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from autocrm.db.enums import TicketPriority, TicketStatus, UserRole


class ProfileSummary(BaseModel):
    """Author/assignee/customer reference embedded in ticket payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    role: UserRole


class CompanyRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    created_at: datetime | None = None


class CompanyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)


# =============================================================================
# Tickets
# =============================================================================

class TicketCreate(BaseModel):
    """Customer ticket submission. Description is rich text (HTML)."""

    title: str = Field(max_length=500)
    description: str

    @field_validator("title", "description")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value


class TicketPatchRequest(BaseModel):
    """Status/priority/assignment update (agents and admins)."""

    status: TicketStatus | None = None
    priority: TicketPriority | None = None
    assignee_id: UUID | None = None


class TicketRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    status: TicketStatus
    priority: TicketPriority
    customer: ProfileSummary
    assignee: ProfileSummary | None = None
    company: CompanyRead | None = None
    ai_metadata: dict | None = None
    created_at: datetime
    updated_at: datetime


class TicketListResponse(BaseModel):
    items: list[TicketRead]
    total: int


# =============================================================================
# Comments & Attachments
# =============================================================================

class AttachmentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    file_name: str
    file_type: str
    file_size: int
    file_path: str
    ticket_id: UUID | None = None
    comment_id: UUID | None = None
    uploaded_by: UUID
    created_at: datetime


class AttachmentDownloadResponse(BaseModel):
    download_url: str
    file_name: str


class CommentRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ticket_id: UUID
    content: str
    user: ProfileSummary
    ai_generated: bool = False
    ai_metadata: dict | None = None
    created_at: datetime
    attachments: list[AttachmentRead] = Field(default_factory=list)


# =============================================================================
# Feedback
# =============================================================================

class FeedbackUpsert(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = None


class FeedbackRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    ticket_id: UUID
    user_id: UUID
    rating: int
    comment: str | None = None
    created_at: datetime


class RatingSummary(BaseModel):
    """Company-wide customer satisfaction aggregate."""

    average_rating: float = 0.0
    total_ratings: int = 0
    distribution: dict[int, int] = Field(
        default_factory=lambda: {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    )
