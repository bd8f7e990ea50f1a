"""SQLAlchemy ORM models for the support desk."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from autocrm.db.base import Base, JsonType
from autocrm.db.enums import (
    DEFAULT_TICKET_PRIORITY,
    DEFAULT_TICKET_STATUS,
    TicketPriority,
    TicketStatus,
    UserRole,
)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _enum_type(enum_cls, *, name: str) -> Enum:
    """Store str-enums by value, portable across PostgreSQL and SQLite."""
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
    )


# =============================================================================
# Tenancy & Identity
# =============================================================================

class Company(Base):
    """Tenant boundary for agents, admins and customers."""

    __tablename__ = "companies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    profiles: Mapped[list["Profile"]] = relationship(back_populates="company")


class Profile(Base):
    """
    Application-side record of an identity-provider user.

    The id is the identity provider's user id (JWT `sub`).
    """

    __tablename__ = "profiles"
    __table_args__ = (
        Index("idx_profiles_company_role", "company_id", "role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[UserRole] = mapped_column(
        _enum_type(UserRole, name="user_role"), default=UserRole.CUSTOMER, nullable=False
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    company: Mapped["Company | None"] = relationship(back_populates="profiles")


# =============================================================================
# Tickets
# =============================================================================

class Ticket(Base):
    """
    Customer-filed support request.

    ai_metadata holds the latest AI summary and/or priority analysis and is
    only ever shallow-merged (see ticket_service.merge_ai_metadata).
    """

    __tablename__ = "tickets"
    __table_args__ = (
        Index("idx_tickets_customer", "customer_id", "created_at"),
        Index("idx_tickets_assignee", "assignee_id", "created_at"),
        Index("idx_tickets_company", "company_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        _enum_type(TicketStatus, name="ticket_status"),
        default=DEFAULT_TICKET_STATUS,
        nullable=False,
    )
    priority: Mapped[TicketPriority] = mapped_column(
        _enum_type(TicketPriority, name="ticket_priority"),
        default=DEFAULT_TICKET_PRIORITY,
        nullable=False,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    assignee_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    company_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("companies.id", ondelete="SET NULL"), nullable=True
    )
    ai_metadata: Mapped[dict | None] = mapped_column(JsonType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_now_utc, onupdate=_now_utc, nullable=False
    )

    customer: Mapped["Profile"] = relationship(foreign_keys=[customer_id])
    assignee: Mapped["Profile | None"] = relationship(foreign_keys=[assignee_id])
    company: Mapped["Company | None"] = relationship()
    comments: Mapped[list["Comment"]] = relationship(
        back_populates="ticket", order_by="Comment.created_at"
    )


class Comment(Base):
    """Append-only message on a ticket, authored by a human or the AI assistant."""

    __tablename__ = "comments"
    __table_args__ = (
        Index("idx_comments_ticket_created", "ticket_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    ai_generated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # confidence, model, created, ...
    ai_metadata: Mapped[dict | None] = mapped_column(JsonType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)

    ticket: Mapped["Ticket"] = relationship(back_populates="comments")
    user: Mapped["Profile"] = relationship()
    attachments: Mapped[list["Attachment"]] = relationship(
        order_by="Attachment.created_at", cascade="all, delete-orphan"
    )


class Attachment(Base):
    """
    Stored file linked to exactly one of a ticket or a comment.

    Deleting the row must also remove the object at file_path
    (attachment_service.delete_attachment does both).
    """

    __tablename__ = "attachments"
    __table_args__ = (
        CheckConstraint(
            "(ticket_id IS NULL) <> (comment_id IS NULL)",
            name="ck_attachments_single_parent",
        ),
        Index("idx_attachments_ticket", "ticket_id"),
        Index("idx_attachments_comment", "comment_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    file_path: Mapped[str] = mapped_column(String(512), nullable=False, unique=True)
    ticket_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=True
    )
    comment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=True
    )
    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)


class Feedback(Base):
    """Customer rating for a closed ticket, one per (ticket, user)."""

    __tablename__ = "feedback"
    __table_args__ = (
        UniqueConstraint("ticket_id", "user_id", name="uq_feedback_ticket_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_feedback_rating_range"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ticket_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=_now_utc, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        default=_now_utc, onupdate=_now_utc, nullable=False
    )
