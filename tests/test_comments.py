"""Ticket comments, including attachments and AI-suggested replies."""

import os

import pytest
from sqlalchemy import select

from autocrm.db.models import Attachment, Comment, Ticket
from autocrm.services import attachment_service, comment_service
from autocrm.services.attachment_service import PendingUpload


@pytest.fixture
def ticket(db, customer, agent) -> Ticket:
    ticket = Ticket(
        title="Export broken",
        description="<p>CSV export is empty</p>",
        customer_id=customer.id,
        company_id=customer.company_id,
        assignee_id=agent.id,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    return ticket


def _stored_files(storage) -> list[str]:
    return [
        os.path.join(dirpath, name)
        for dirpath, _, names in os.walk(storage.root)
        for name in names
    ]


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_post_comment_with_attachment(client, ticket, customer, storage, auth_headers):
    res = await client.post(
        f"/tickets/{ticket.id}/comments",
        data={"content": "<p>Log attached</p>"},
        files=[("files", ("export.txt", b"row1,row2", "text/plain"))],
        headers=auth_headers(customer),
    )

    assert res.status_code == 201
    data = res.json()
    assert data["content"] == "<p>Log attached</p>"
    assert data["ai_generated"] is False
    assert len(data["attachments"]) == 1
    attachment = data["attachments"][0]
    assert attachment["file_name"] == "export.txt"
    assert attachment["comment_id"] == data["id"]
    assert attachment["ticket_id"] is None
    assert attachment["file_path"].startswith(f"{customer.id}/")
    assert storage.get(attachment["file_path"]) == b"row1,row2"


@pytest.mark.asyncio
async def test_post_text_only_comment(client, ticket, agent, auth_headers):
    res = await client.post(
        f"/tickets/{ticket.id}/comments",
        data={"content": "Looking into it"},
        headers=auth_headers(agent),
    )

    assert res.status_code == 201

    res = await client.get(f"/tickets/{ticket.id}/comments", headers=auth_headers(agent))
    assert [c["content"] for c in res.json()] == ["Looking into it"]


@pytest.mark.asyncio
async def test_empty_comment_rejected(client, ticket, customer, auth_headers):
    res = await client.post(
        f"/tickets/{ticket.id}/comments",
        data={"content": "<p> </p>"},
        headers=auth_headers(customer),
    )

    assert res.status_code == 422


@pytest.mark.asyncio
async def test_disallowed_file_rejected_before_comment_is_created(
    client, db, ticket, customer, storage, auth_headers
):
    res = await client.post(
        f"/tickets/{ticket.id}/comments",
        data={"content": "see file"},
        files=[("files", ("setup.exe", b"MZ", "application/x-msdownload"))],
        headers=auth_headers(customer),
    )

    assert res.status_code == 400
    assert db.scalars(select(Comment)).all() == []
    assert _stored_files(storage) == []


@pytest.mark.asyncio
async def test_too_many_files_rejected(client, ticket, customer, auth_headers):
    files = [("files", (f"f{i}.txt", b"x", "text/plain")) for i in range(6)]

    res = await client.post(
        f"/tickets/{ticket.id}/comments",
        data={"content": "lots"},
        files=files,
        headers=auth_headers(customer),
    )

    assert res.status_code == 400


@pytest.mark.asyncio
async def test_ai_suggestion_stored_as_ai_comment(client, ticket, agent, stub_provider, auth_headers):
    res = await client.post(
        f"/tickets/{ticket.id}/comments/ai-suggestion", headers=auth_headers(agent)
    )

    assert res.status_code == 201
    data = res.json()
    assert data["ai_generated"] is True
    assert data["ai_metadata"]["confidence"] == 0.95
    assert data["ai_metadata"]["model"] == "stub-model"
    assert "Export broken" in stub_provider.prompts[0]
    assert "CSV export is empty" in stub_provider.prompts[0]


@pytest.mark.asyncio
async def test_ai_suggestion_failure_creates_nothing(
    client, db, ticket, agent, stub_provider, auth_headers
):
    def explode(prompt: str) -> str:
        raise RuntimeError("upstream down")

    stub_provider.reply = explode

    res = await client.post(
        f"/tickets/{ticket.id}/comments/ai-suggestion", headers=auth_headers(agent)
    )

    assert res.status_code == 502
    assert res.json()["detail"] == "Failed to generate AI response. Please try again."
    assert db.scalars(select(Comment)).all() == []


# =============================================================================
# Compensation
# =============================================================================

@pytest.mark.asyncio
async def test_attachment_insert_failure_removes_comment_and_files(
    db, storage, ticket, customer, monkeypatch
):
    def fail(*args, **kwargs):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(attachment_service, "insert_attachment_rows", fail)

    with pytest.raises(RuntimeError, match="insert failed"):
        await comment_service.add_comment_with_attachments(
            db,
            storage,
            ticket,
            customer.id,
            "with file",
            [PendingUpload("trace.txt", "text/plain", b"stack")],
        )

    assert db.scalars(select(Comment)).all() == []
    assert db.scalars(select(Attachment)).all() == []
    assert _stored_files(storage) == []


@pytest.mark.asyncio
async def test_attachment_failure_via_api_returns_502(
    client, db, ticket, customer, storage, monkeypatch, auth_headers
):
    def fail(*args, **kwargs):
        raise RuntimeError("insert failed")

    monkeypatch.setattr(attachment_service, "insert_attachment_rows", fail)

    res = await client.post(
        f"/tickets/{ticket.id}/comments",
        data={"content": "with file"},
        files=[("files", ("trace.txt", b"stack", "text/plain"))],
        headers=auth_headers(customer),
    )

    assert res.status_code == 502
    assert db.scalars(select(Comment)).all() == []
    assert _stored_files(storage) == []
