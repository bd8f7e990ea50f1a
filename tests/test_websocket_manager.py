"""Connection manager and ticket change feed."""

import json
import uuid

import pytest

from autocrm.core.websocket import ConnectionManager
from autocrm.db.enums import TicketEventType, UserRole
from autocrm.services.ticket_events import build_ticket_change, publish_ticket_change


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.accepted = False
        self.sent: list[dict] = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_text(self, data: str):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(data))


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.mark.asyncio
async def test_connect_and_disconnect(manager):
    user_id = uuid.uuid4()
    first, second = FakeWebSocket(), FakeWebSocket()

    await manager.connect(first, user_id, UserRole.CUSTOMER)
    await manager.connect(second, user_id, UserRole.CUSTOMER)
    assert first.accepted
    assert manager.get_connected_count(user_id) == 2

    await manager.disconnect(first, user_id)
    assert manager.get_connected_count(user_id) == 1
    await manager.disconnect(second, user_id)
    assert manager.get_total_connections() == 0


@pytest.mark.asyncio
async def test_closed_sockets_are_dropped(manager):
    user_id = uuid.uuid4()
    await manager.connect(FakeWebSocket(fail=True), user_id, UserRole.AGENT)

    await manager.send_to_user(user_id, {"type": "ping"})

    assert manager.get_connected_count(user_id) == 0


@pytest.mark.asyncio
async def test_change_reaches_customer_assignee_and_company_admins(manager):
    company_id = uuid.uuid4()
    customer_id, agent_id, admin_id, outsider_id = (uuid.uuid4() for _ in range(4))
    sockets = {uid: FakeWebSocket() for uid in (customer_id, agent_id, admin_id, outsider_id)}

    await manager.connect(sockets[customer_id], customer_id, UserRole.CUSTOMER, company_id)
    await manager.connect(sockets[agent_id], agent_id, UserRole.AGENT, company_id)
    await manager.connect(sockets[admin_id], admin_id, UserRole.ADMIN, company_id)
    await manager.connect(sockets[outsider_id], outsider_id, UserRole.ADMIN, uuid.uuid4())

    ticket_id = uuid.uuid4()
    await publish_ticket_change(
        TicketEventType.UPDATE, ticket_id, customer_id, agent_id, company_id, manager=manager
    )

    expected = build_ticket_change(TicketEventType.UPDATE, ticket_id)
    assert expected == {"type": "ticket_change", "event": "UPDATE", "ticket_id": str(ticket_id)}
    assert sockets[customer_id].sent == [expected]
    assert sockets[agent_id].sent == [expected]
    assert sockets[admin_id].sent == [expected]
    assert sockets[outsider_id].sent == []


@pytest.mark.asyncio
async def test_publish_never_raises(manager):
    class BrokenManager(ConnectionManager):
        async def send_to_user(self, user_id, message):
            raise RuntimeError("boom")

    await publish_ticket_change(
        TicketEventType.INSERT, uuid.uuid4(), uuid.uuid4(), None, None, manager=BrokenManager()
    )


@pytest.mark.asyncio
async def test_reassignment_reaches_previous_assignee(manager):
    company_id = uuid.uuid4()
    customer_id, old_agent_id, new_agent_id = (uuid.uuid4() for _ in range(3))
    sockets = {uid: FakeWebSocket() for uid in (customer_id, old_agent_id, new_agent_id)}
    for uid, role in (
        (customer_id, UserRole.CUSTOMER),
        (old_agent_id, UserRole.AGENT),
        (new_agent_id, UserRole.AGENT),
    ):
        await manager.connect(sockets[uid], uid, role, company_id)

    ticket_id = uuid.uuid4()
    await publish_ticket_change(
        TicketEventType.UPDATE,
        ticket_id,
        customer_id,
        new_agent_id,
        company_id,
        manager=manager,
        previous_assignee_id=old_agent_id,
    )

    expected = build_ticket_change(TicketEventType.UPDATE, ticket_id)
    assert sockets[old_agent_id].sent == [expected]
    assert sockets[new_agent_id].sent == [expected]
    assert sockets[customer_id].sent == [expected]
