"""Attachment validation, storage paths, uploads and lifecycle."""

import re
import uuid

import pytest
from sqlalchemy import select

from autocrm.db.enums import UserRole
from autocrm.db.models import Attachment, Ticket
from autocrm.routers.attachments import content_disposition
from autocrm.services import attachment_service
from autocrm.services.attachment_service import (
    PendingUpload,
    build_storage_path,
    upload_files,
    validate_file,
    validate_uploads,
)
from autocrm.services.storage_service import LocalObjectStorage, StorageError


@pytest.fixture
def ticket(db, customer, agent) -> Ticket:
    ticket = Ticket(
        title="Screenshot of error",
        description="See attached",
        customer_id=customer.id,
        company_id=customer.company_id,
        assignee_id=agent.id,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    return ticket


# =============================================================================
# Validation & paths
# =============================================================================

@pytest.mark.parametrize(
    "filename,content_type",
    [
        ("photo.png", "image/png"),
        ("scan.jpeg", "image/jpeg"),
        ("report.pdf", "application/pdf"),
        ("notes.txt", "text/plain"),
        ("letter.docx", "application/octet-stream"),
        ("legacy.DOC", ""),
    ],
)
def test_allowed_files(filename, content_type):
    assert validate_file(filename, content_type, 1024) == (True, None)


def test_disallowed_type():
    ok, error = validate_file("run.sh", "application/x-sh", 10)
    assert not ok
    assert "run.sh" in error


def test_size_limit():
    ok, error = validate_file("big.pdf", "application/pdf", 10 * 1024 * 1024 + 1)
    assert not ok
    assert "10 MB" in error
    assert validate_file("edge.pdf", "application/pdf", 10 * 1024 * 1024) == (True, None)


def test_count_limit():
    files = [PendingUpload(f"{i}.txt", "text/plain", b"x") for i in range(6)]
    with pytest.raises(ValueError, match="At most 5"):
        validate_uploads(files)
    validate_uploads(files[:5])


def test_storage_path_format():
    uploader = uuid.uuid4()

    path = build_storage_path(uploader, "Quarterly Report.PDF", now_ms=1700000000000)

    assert re.fullmatch(rf"{uploader}/1700000000000-[0-9a-f]{{12}}\.pdf", path)


def test_storage_path_without_extension():
    path = build_storage_path(uuid.uuid4(), "README")
    assert path.endswith(".bin")


def test_storage_paths_are_unique():
    uploader = uuid.uuid4()
    paths = {build_storage_path(uploader, "a.txt", now_ms=1) for _ in range(20)}
    assert len(paths) == 20


def test_local_storage_rejects_traversal(storage):
    with pytest.raises(StorageError):
        storage.put("../escape.txt", b"x", "text/plain")


# =============================================================================
# Uploads
# =============================================================================

class FlakyStorage(LocalObjectStorage):
    """Fails any object whose payload is b'bad'."""

    def put(self, path, data, content_type):
        if data == b"bad":
            raise StorageError("disk full")
        super().put(path, data, content_type)


@pytest.mark.asyncio
async def test_partial_upload_failure_removes_successful_uploads(tmp_path):
    storage = FlakyStorage(str(tmp_path))
    files = [
        PendingUpload("a.txt", "text/plain", b"good"),
        PendingUpload("b.txt", "text/plain", b"bad"),
        PendingUpload("c.txt", "text/plain", b"good too"),
    ]

    with pytest.raises(StorageError, match="disk full"):
        await upload_files(storage, uuid.uuid4(), files)

    assert [p for p in tmp_path.rglob("*") if p.is_file()] == []


@pytest.mark.asyncio
async def test_upload_list_download_delete(client, db, ticket, customer, storage, auth_headers):
    res = await client.post(
        f"/tickets/{ticket.id}/attachments",
        files=[("files", ("error.png", b"\x89PNG", "image/png"))],
        headers=auth_headers(customer),
    )
    assert res.status_code == 201
    (created,) = res.json()
    assert created["ticket_id"] == str(ticket.id)
    assert created["file_size"] == 4

    res = await client.get(f"/tickets/{ticket.id}/attachments", headers=auth_headers(customer))
    assert [a["id"] for a in res.json()] == [created["id"]]

    res = await client.get(f"/attachments/{created['id']}/download", headers=auth_headers(customer))
    assert res.status_code == 200
    assert res.json()["file_name"] == "error.png"
    assert res.json()["download_url"] == f"http://test/attachments/{created['id']}/content"

    res = await client.get(f"/attachments/{created['id']}/content", headers=auth_headers(customer))
    assert res.status_code == 200
    assert res.content == b"\x89PNG"

    res = await client.delete(f"/attachments/{created['id']}", headers=auth_headers(customer))
    assert res.status_code == 204
    assert db.scalars(select(Attachment)).all() == []
    with pytest.raises(FileNotFoundError):
        storage.get(created["file_path"])


@pytest.mark.asyncio
async def test_comment_attachments_listed_with_ticket(client, ticket, customer, auth_headers):
    await client.post(
        f"/tickets/{ticket.id}/comments",
        data={"content": "more"},
        files=[("files", ("more.txt", b"x", "text/plain"))],
        headers=auth_headers(customer),
    )

    res = await client.get(f"/tickets/{ticket.id}/attachments", headers=auth_headers(customer))

    assert [a["file_name"] for a in res.json()] == ["more.txt"]
    assert res.json()[0]["comment_id"] is not None


@pytest.mark.asyncio
async def test_customer_cannot_delete_agents_attachment(
    client, db, ticket, customer, agent, auth_headers
):
    res = await client.post(
        f"/tickets/{ticket.id}/attachments",
        files=[("files", ("fix.txt", b"steps", "text/plain"))],
        headers=auth_headers(agent),
    )
    attachment_id = res.json()[0]["id"]

    res = await client.delete(f"/attachments/{attachment_id}", headers=auth_headers(customer))

    assert res.status_code == 403
    assert len(db.scalars(select(Attachment)).all()) == 1


@pytest.mark.asyncio
async def test_attachment_of_hidden_ticket_is_404(
    client, db, ticket, customer, make_profile, auth_headers
):
    res = await client.post(
        f"/tickets/{ticket.id}/attachments",
        files=[("files", ("a.txt", b"x", "text/plain"))],
        headers=auth_headers(customer),
    )
    attachment_id = res.json()[0]["id"]
    stranger = make_profile(UserRole.CUSTOMER, None)

    res = await client.get(f"/attachments/{attachment_id}/download", headers=auth_headers(stranger))

    assert res.status_code == 404


def test_insert_requires_exactly_one_parent(db, customer):
    with pytest.raises(ValueError):
        attachment_service.insert_attachment_rows(db, [], customer.id)


@pytest.mark.asyncio
async def test_content_download_with_non_latin_file_name(client, ticket, customer, auth_headers):
    res = await client.post(
        f"/tickets/{ticket.id}/attachments",
        files=[("files", ("报告.pdf", b"%PDF-1.4", "application/pdf"))],
        headers=auth_headers(customer),
    )
    attachment_id = res.json()[0]["id"]

    res = await client.get(f"/attachments/{attachment_id}/content", headers=auth_headers(customer))

    assert res.status_code == 200
    assert res.content == b"%PDF-1.4"
    disposition = res.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="')
    assert disposition.endswith("filename*=UTF-8''%E6%8A%A5%E5%91%8A.pdf")


def test_content_disposition_keeps_plain_names():
    assert content_disposition("report.pdf") == (
        "attachment; filename=\"report.pdf\"; filename*=UTF-8''report.pdf"
    )


def test_content_disposition_escapes_quotes():
    header = content_disposition('say "hi".txt')

    assert header == "attachment; filename=\"say _hi_.txt\"; filename*=UTF-8''say%20%22hi%22.txt"
    header.encode("latin-1")
