"""Ticket comment endpoints, including AI-suggested replies."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from autocrm.core.deps import (
    get_ai_assistant,
    get_current_session,
    get_db,
    get_storage,
    require_csrf_header,
    require_roles,
)
from autocrm.core.structured_logging import build_log_context
from autocrm.db.enums import UserRole
from autocrm.schemas.auth import UserSession
from autocrm.schemas.ticket import CommentRead
from autocrm.services import comment_service, ticket_service
from autocrm.services.ai_assist_service import AIAssistant
from autocrm.services.attachment_service import PendingUpload
from autocrm.services.storage_service import ObjectStorage
from autocrm.utils.sanitize import html_to_text

router = APIRouter(prefix="/tickets/{ticket_id}/comments", tags=["Comments"])
logger = logging.getLogger(__name__)


async def read_uploads(files: list[UploadFile]) -> list[PendingUpload]:
    return [
        PendingUpload(
            file_name=f.filename or "untitled",
            content_type=f.content_type or "application/octet-stream",
            data=await f.read(),
        )
        for f in files
    ]


@router.get("", response_model=list[CommentRead])
def list_comments(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    return comment_service.list_comments(db, ticket.id)


@router.post(
    "",
    response_model=CommentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def add_comment(
    ticket_id: UUID,
    content: Annotated[str, Form()] = "",
    files: Annotated[list[UploadFile], File()] = [],
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    storage: ObjectStorage = Depends(get_storage),
):
    """Post a comment (multipart). Files are stored and linked to the comment."""
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    uploads = await read_uploads(files)
    try:
        return await comment_service.add_comment_with_attachments(
            db, storage, ticket, session.user_id, content, uploads
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except HTTPException:
        raise
    except Exception:
        logger.exception(
            "Failed to add comment",
            extra=build_log_context(user_id=session.user_id, ticket_id=ticket_id),
        )
        raise HTTPException(status_code=502, detail="Failed to add comment. Please try again.")


@router.post(
    "/ai-suggestion",
    response_model=CommentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def add_ai_suggestion(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(require_roles([UserRole.AGENT, UserRole.ADMIN])),
    assistant: AIAssistant = Depends(get_ai_assistant),
):
    """Draft a reply with the assistant and store it as an AI-generated comment."""
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    prior = [html_to_text(c.content) for c in comment_service.list_comments(db, ticket.id)]
    context = f"{ticket.title}\n{html_to_text(ticket.description)}"

    try:
        response = await assistant.generate_response(context, prior)
    except Exception:
        logger.exception(
            "AI suggestion failed",
            extra=build_log_context(user_id=session.user_id, ticket_id=ticket_id),
        )
        raise HTTPException(
            status_code=502, detail="Failed to generate AI response. Please try again."
        )

    return comment_service.add_comment(
        db,
        ticket,
        session.user_id,
        response.content,
        ai_generated=True,
        ai_metadata={"confidence": response.confidence, **response.metadata},
    )
