"""Customer feedback on closed tickets and company rating aggregates."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from autocrm.db.enums import TicketStatus
from autocrm.db.models import Feedback, Ticket
from autocrm.schemas.auth import UserSession
from autocrm.schemas.ticket import FeedbackUpsert, RatingSummary

logger = logging.getLogger(__name__)

RATING_VALUES = range(1, 6)


def get_feedback(db: Session, ticket_id: UUID, user_id: UUID) -> Feedback | None:
    return db.scalar(
        select(Feedback).where(Feedback.ticket_id == ticket_id, Feedback.user_id == user_id)
    )


def upsert_feedback(
    db: Session, session: UserSession, ticket: Ticket, data: FeedbackUpsert
) -> Feedback:
    """
    Record the customer's rating for a closed ticket.

    One row per (ticket, user): a second submission updates the first.
    """
    if ticket.customer_id != session.user_id:
        raise HTTPException(status_code=403, detail="Only the ticket's customer can leave feedback")
    if ticket.status != TicketStatus.CLOSED:
        raise HTTPException(status_code=422, detail="Feedback is only accepted on closed tickets")

    feedback = get_feedback(db, ticket.id, session.user_id)
    if feedback is None:
        feedback = Feedback(
            ticket_id=ticket.id,
            user_id=session.user_id,
            rating=data.rating,
            comment=data.comment,
        )
        db.add(feedback)
        try:
            db.commit()
        except IntegrityError:
            # Concurrent first submission won; update that row instead
            db.rollback()
            feedback = get_feedback(db, ticket.id, session.user_id)
            if feedback is None:
                raise
            feedback.rating = data.rating
            feedback.comment = data.comment
            db.commit()
    else:
        feedback.rating = data.rating
        feedback.comment = data.comment
        db.commit()

    db.refresh(feedback)
    logger.info(f"Feedback {feedback.rating}/5 recorded for ticket {ticket.id}")
    return feedback


def company_rating_summary(db: Session, company_id: UUID) -> RatingSummary:
    """Average (one decimal), count and 1-5 distribution over a company's tickets."""
    rows = db.execute(
        select(Feedback.rating, func.count())
        .join(Ticket, Ticket.id == Feedback.ticket_id)
        .where(Ticket.company_id == company_id)
        .group_by(Feedback.rating)
    ).all()

    distribution = {value: 0 for value in RATING_VALUES}
    for rating, count in rows:
        distribution[rating] = count

    total = sum(distribution.values())
    if total == 0:
        return RatingSummary(distribution=distribution)

    average = sum(rating * count for rating, count in distribution.items()) / total
    return RatingSummary(
        average_rating=round(average, 1),
        total_ratings=total,
        distribution=distribution,
    )
