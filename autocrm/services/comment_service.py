"""Comment service: ticket threads, with optional file attachments."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from autocrm.db.models import Comment, Ticket
from autocrm.services import attachment_service
from autocrm.services.attachment_service import PendingUpload, StoredFile
from autocrm.services.storage_service import ObjectStorage
from autocrm.utils.sanitize import is_blank_html, sanitize_html

logger = logging.getLogger(__name__)


def list_comments(db: Session, ticket_id: UUID) -> list[Comment]:
    """Comments on a ticket, oldest first, with author and attachments loaded."""
    return list(
        db.scalars(
            select(Comment)
            .where(Comment.ticket_id == ticket_id)
            .options(selectinload(Comment.user), selectinload(Comment.attachments))
            .order_by(Comment.created_at, Comment.id)
        )
    )


def add_comment(
    db: Session,
    ticket: Ticket,
    user_id: UUID,
    content: str,
    *,
    ai_generated: bool = False,
    ai_metadata: dict | None = None,
) -> Comment:
    comment = Comment(
        ticket_id=ticket.id,
        user_id=user_id,
        content=sanitize_html(content),
        ai_generated=ai_generated,
        ai_metadata=ai_metadata,
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)
    logger.info(f"Comment {comment.id} added to ticket {ticket.id}")
    return comment


def _discard_comment(db: Session, comment_id: UUID) -> None:
    """Compensating delete; failures are logged only."""
    try:
        comment = db.get(Comment, comment_id)
        if comment is not None:
            db.delete(comment)
            db.commit()
    except Exception:
        db.rollback()
        logger.exception(f"Failed to remove comment {comment_id} during cleanup")


async def add_comment_with_attachments(
    db: Session,
    storage: ObjectStorage,
    ticket: Ticket,
    user_id: UUID,
    content: str,
    files: list[PendingUpload],
) -> Comment:
    """
    Create a comment, upload its files in parallel, then record them.

    Files are validated before anything is written. If uploading or recording
    fails after the comment exists, uploaded objects and the comment are
    removed (best effort) and the original error is re-raised.
    """
    attachment_service.validate_uploads(files)
    if is_blank_html(content) and not files:
        raise HTTPException(status_code=422, detail="Comment must have content or files")

    comment = add_comment(db, ticket, user_id, content)
    if not files:
        return comment

    comment_id = comment.id
    stored: list[StoredFile] = []
    try:
        stored = await attachment_service.upload_files(storage, user_id, files)
        attachment_service.insert_attachment_rows(
            db, stored, user_id, comment_id=comment_id
        )
        db.commit()
    except Exception:
        logger.exception(f"Attaching files to comment {comment_id} failed; cleaning up")
        db.rollback()
        await attachment_service.remove_objects(storage, [s.file_path for s in stored])
        _discard_comment(db, comment_id)
        raise

    db.refresh(comment)
    return comment
