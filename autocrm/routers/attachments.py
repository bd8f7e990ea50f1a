"""Attachment endpoints for file uploads and downloads."""

import logging
import re
from typing import Annotated
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile
from sqlalchemy.orm import Session

from autocrm.core.deps import (
    get_current_session,
    get_db,
    get_storage,
    require_csrf_header,
)
from autocrm.db.enums import ROLES_CAN_TRIAGE
from autocrm.db.models import Attachment
from autocrm.routers.comments import read_uploads
from autocrm.schemas.auth import UserSession
from autocrm.schemas.ticket import AttachmentDownloadResponse, AttachmentRead
from autocrm.services import attachment_service, ticket_service
from autocrm.services.storage_service import ObjectStorage, StorageError

router = APIRouter(tags=["Attachments"])
logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._ -]")


def content_disposition(file_name: str) -> str:
    """Attachment header with an ASCII fallback name plus the RFC 5987 UTF-8 name."""
    fallback = _UNSAFE_FILENAME_CHARS.sub("_", file_name) or "download"
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(file_name, safe='')}"


def _get_attachment_with_access(
    db: Session, attachment_id: UUID, session: UserSession
) -> Attachment:
    """Attachment whose ticket the caller can see; 404 otherwise."""
    attachment = attachment_service.get_attachment(db, attachment_id)
    ticket_id = attachment_service.attachment_ticket_id(db, attachment)
    ticket_service.get_ticket(db, session, ticket_id)
    return attachment


@router.get("/tickets/{ticket_id}/attachments", response_model=list[AttachmentRead])
def list_attachments(
    ticket_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
):
    """Ticket-level and comment-level attachments of a ticket."""
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    return attachment_service.list_ticket_attachments(db, ticket.id)


@router.post(
    "/tickets/{ticket_id}/attachments",
    response_model=list[AttachmentRead],
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
async def upload_attachments(
    ticket_id: UUID,
    files: Annotated[list[UploadFile], File()],
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    storage: ObjectStorage = Depends(get_storage),
):
    ticket = ticket_service.get_ticket(db, session, ticket_id)
    uploads = await read_uploads(files)
    try:
        return await attachment_service.add_ticket_attachments(
            db, storage, ticket.id, session.user_id, uploads
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError:
        logger.exception(f"Upload failed for ticket {ticket_id}")
        raise HTTPException(status_code=502, detail="Failed to upload files. Please try again.")


@router.get("/attachments/{attachment_id}/download", response_model=AttachmentDownloadResponse)
def download_attachment(
    attachment_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    storage: ObjectStorage = Depends(get_storage),
):
    """Get a download URL for an attachment."""
    attachment = _get_attachment_with_access(db, attachment_id, session)
    try:
        url = attachment_service.download_url(storage, attachment)
    except StorageError:
        logger.exception(f"Could not sign download URL for {attachment_id}")
        raise HTTPException(status_code=500, detail="Failed to generate download URL")

    if url.startswith("/"):
        url = f"{request.base_url}".rstrip("/") + url

    return AttachmentDownloadResponse(download_url=url, file_name=attachment.file_name)


@router.get("/attachments/{attachment_id}/content")
def attachment_content(
    attachment_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    storage: ObjectStorage = Depends(get_storage),
):
    """Raw file bytes, for backends without signed URLs."""
    attachment = _get_attachment_with_access(db, attachment_id, session)
    data = attachment_service.read_attachment(storage, attachment)
    return Response(
        content=data,
        media_type=attachment.file_type or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(attachment.file_name)},
    )


@router.delete(
    "/attachments/{attachment_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_attachment(
    attachment_id: UUID,
    db: Session = Depends(get_db),
    session: UserSession = Depends(get_current_session),
    storage: ObjectStorage = Depends(get_storage),
):
    """Delete an attachment (uploader, agents and admins)."""
    attachment = _get_attachment_with_access(db, attachment_id, session)
    if attachment.uploaded_by != session.user_id and session.role not in ROLES_CAN_TRIAGE:
        raise HTTPException(status_code=403, detail="Not authorized to delete this attachment")
    try:
        attachment_service.delete_attachment(db, storage, attachment)
    except StorageError:
        logger.exception(f"Failed to delete stored file for {attachment_id}")
        raise HTTPException(status_code=502, detail="Failed to delete attachment. Please try again.")
    return Response(status_code=204)
