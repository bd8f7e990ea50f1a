"""Attachment service: validation, storage paths, uploads and lifecycle."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
import uuid
from dataclasses import dataclass

import anyio
from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from autocrm.core.config import settings
from autocrm.db.models import Attachment, Comment
from autocrm.services.storage_service import ObjectStorage

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

ALLOWED_MIME_PREFIXES = ("image/",)
ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}
ALLOWED_EXTENSIONS = {"pdf", "doc", "docx", "txt"}
DEFAULT_EXTENSION = "bin"


@dataclass
class PendingUpload:
    """A file received from the client, not yet stored."""

    file_name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class StoredFile:
    file_name: str
    file_type: str
    file_size: int
    file_path: str


# =============================================================================
# Validation & paths
# =============================================================================

def file_extension(filename: str) -> str:
    return filename.rsplit(".", 1)[-1].lower() if "." in filename else ""


def validate_file(filename: str, content_type: str, file_size: int) -> tuple[bool, str | None]:
    """
    Validate one file against the type allowlist and size limit.

    Returns (is_valid, error_message)
    """
    ext = file_extension(filename)
    type_ok = (
        content_type.startswith(ALLOWED_MIME_PREFIXES)
        or content_type in ALLOWED_MIME_TYPES
        or ext in ALLOWED_EXTENSIONS
    )
    if not type_ok:
        return False, f"File type not allowed: {filename}"

    if file_size > settings.max_upload_size_bytes:
        return False, f"{filename} exceeds {settings.MAX_UPLOAD_SIZE_MB} MB limit"

    return True, None


def validate_uploads(files: list[PendingUpload]) -> None:
    """Check count, types and sizes before anything is uploaded.

    Raises:
        ValueError: first violation found
    """
    if len(files) > settings.MAX_UPLOAD_FILES:
        raise ValueError(f"At most {settings.MAX_UPLOAD_FILES} files per upload")
    for upload in files:
        is_valid, error = validate_file(upload.file_name, upload.content_type, upload.size)
        if not is_valid:
            raise ValueError(error)


def build_storage_path(uploader_id: uuid.UUID, filename: str, now_ms: int | None = None) -> str:
    """`<uploader_id>/<epoch_ms>-<random>.<ext>`"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    ext = file_extension(filename) or DEFAULT_EXTENSION
    return f"{uploader_id}/{now_ms}-{secrets.token_hex(6)}.{ext}"


# =============================================================================
# Storage operations
# =============================================================================

async def remove_objects(storage: ObjectStorage, paths: list[str]) -> None:
    """Best-effort removal used by compensating cleanup. Never raises."""
    if not paths:
        return
    try:
        await anyio.to_thread.run_sync(storage.remove, paths)
    except Exception:
        logger.exception(f"Failed to clean up {len(paths)} stored object(s)")


async def upload_files(
    storage: ObjectStorage, uploader_id: uuid.UUID, files: list[PendingUpload]
) -> list[StoredFile]:
    """
    Upload all files in parallel.

    If any upload fails, the ones that succeeded are removed and the first
    error is re-raised.
    """

    async def _upload(upload: PendingUpload) -> StoredFile:
        path = build_storage_path(uploader_id, upload.file_name)
        await anyio.to_thread.run_sync(
            storage.put, path, upload.data, upload.content_type or "application/octet-stream"
        )
        return StoredFile(
            file_name=upload.file_name,
            file_type=upload.content_type,
            file_size=upload.size,
            file_path=path,
        )

    outcomes = await asyncio.gather(
        *(_upload(upload) for upload in files), return_exceptions=True
    )
    stored = [o for o in outcomes if isinstance(o, StoredFile)]
    errors = [o for o in outcomes if isinstance(o, BaseException)]
    if errors:
        logger.error(f"{len(errors)} of {len(files)} uploads failed; removing the rest")
        await remove_objects(storage, [s.file_path for s in stored])
        raise errors[0]
    return stored


# =============================================================================
# Service Functions
# =============================================================================

def insert_attachment_rows(
    db: Session,
    stored: list[StoredFile],
    uploaded_by: uuid.UUID,
    *,
    ticket_id: uuid.UUID | None = None,
    comment_id: uuid.UUID | None = None,
) -> list[Attachment]:
    """Bulk-insert attachment rows for already-stored files. Caller commits."""
    if (ticket_id is None) == (comment_id is None):
        raise ValueError("Attachment must belong to exactly one of ticket or comment")
    rows = [
        Attachment(
            file_name=item.file_name,
            file_type=item.file_type,
            file_size=item.file_size,
            file_path=item.file_path,
            ticket_id=ticket_id,
            comment_id=comment_id,
            uploaded_by=uploaded_by,
        )
        for item in stored
    ]
    db.add_all(rows)
    db.flush()
    return rows


async def add_ticket_attachments(
    db: Session,
    storage: ObjectStorage,
    ticket_id: uuid.UUID,
    uploader_id: uuid.UUID,
    files: list[PendingUpload],
) -> list[Attachment]:
    """Validate, upload, then record ticket-level attachments."""
    validate_uploads(files)
    if not files:
        return []
    stored = await upload_files(storage, uploader_id, files)
    try:
        rows = insert_attachment_rows(db, stored, uploader_id, ticket_id=ticket_id)
        db.commit()
    except Exception:
        db.rollback()
        await remove_objects(storage, [s.file_path for s in stored])
        raise
    for row in rows:
        db.refresh(row)
    logger.info(f"Stored {len(rows)} attachment(s) on ticket {ticket_id}")
    return rows


def list_ticket_attachments(db: Session, ticket_id: uuid.UUID) -> list[Attachment]:
    """Ticket-level and comment-level attachments, oldest first."""
    comment_ids = select(Comment.id).where(Comment.ticket_id == ticket_id)
    return list(
        db.scalars(
            select(Attachment)
            .where(
                or_(
                    Attachment.ticket_id == ticket_id,
                    Attachment.comment_id.in_(comment_ids),
                )
            )
            .order_by(Attachment.created_at)
        )
    )


def get_attachment(db: Session, attachment_id: uuid.UUID) -> Attachment:
    attachment = db.get(Attachment, attachment_id)
    if not attachment:
        raise HTTPException(status_code=404, detail="Attachment not found")
    return attachment


def attachment_ticket_id(db: Session, attachment: Attachment) -> uuid.UUID:
    """Ticket an attachment ultimately belongs to."""
    if attachment.ticket_id is not None:
        return attachment.ticket_id
    return db.scalar(select(Comment.ticket_id).where(Comment.id == attachment.comment_id))


def download_url(storage: ObjectStorage, attachment: Attachment) -> str:
    url = storage.signed_url(attachment.file_path, settings.SIGNED_URL_EXPIRY_SECONDS)
    return url or f"/attachments/{attachment.id}/content"


def read_attachment(storage: ObjectStorage, attachment: Attachment) -> bytes:
    try:
        return storage.get(attachment.file_path)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Attachment file missing") from exc


def delete_attachment(db: Session, storage: ObjectStorage, attachment: Attachment) -> None:
    """Remove the stored object, then the row."""
    storage.remove([attachment.file_path])
    db.delete(attachment)
    db.commit()
    logger.info(f"Deleted attachment {attachment.id}")
