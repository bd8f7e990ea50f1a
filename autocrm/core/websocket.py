"""
WebSocket connection manager for the ticket change feed.

Keeps active connections per profile, plus each profile's company and role so
company-wide changes can reach that company's admins.
"""

from dataclasses import dataclass
from typing import Dict, Set
from uuid import UUID
import asyncio
import json
import logging

from fastapi import WebSocket

from autocrm.db.enums import UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Member:
    company_id: UUID | None
    role: UserRole


class ConnectionManager:
    """Manages WebSocket connections per profile."""

    def __init__(self):
        # user_id -> set of active WebSocket connections
        self._connections: Dict[UUID, Set[WebSocket]] = {}
        self._members: Dict[UUID, _Member] = {}
        self._lock = asyncio.Lock()

    async def connect(
        self,
        websocket: WebSocket,
        user_id: UUID,
        role: UserRole,
        company_id: UUID | None = None,
    ):
        """Accept and register a new WebSocket connection."""
        await websocket.accept()
        async with self._lock:
            self._connections.setdefault(user_id, set()).add(websocket)
            self._members[user_id] = _Member(company_id=company_id, role=role)

    async def disconnect(self, websocket: WebSocket, user_id: UUID):
        """Remove a WebSocket connection."""
        async with self._lock:
            self._drop(user_id, [websocket])

    def _drop(self, user_id: UUID, sockets: list[WebSocket]) -> None:
        if user_id not in self._connections:
            return
        for ws in sockets:
            self._connections[user_id].discard(ws)
        if not self._connections[user_id]:
            del self._connections[user_id]
            self._members.pop(user_id, None)

    async def send_to_user(self, user_id: UUID, message: dict):
        """Send a message to all connections for a specific user."""
        async with self._lock:
            connections = self._connections.get(user_id, set()).copy()

        if not connections:
            return

        data = json.dumps(message)
        closed = []

        for ws in connections:
            try:
                await ws.send_text(data)
            except Exception:
                # Connection closed or errored
                closed.append(ws)

        if closed:
            logger.debug(f"Dropping {len(closed)} closed socket(s) for user {user_id}")
            async with self._lock:
                self._drop(user_id, closed)

    async def send_to_company_admins(
        self, company_id: UUID, message: dict, exclude: set[UUID] | None = None
    ):
        """Send a message to every connected admin of a company."""
        async with self._lock:
            user_ids = [
                uid
                for uid, member in self._members.items()
                if member.company_id == company_id and member.role == UserRole.ADMIN
            ]

        for user_id in user_ids:
            if exclude and user_id in exclude:
                continue
            await self.send_to_user(user_id, message)

    def get_connected_count(self, user_id: UUID) -> int:
        """Get the number of active connections for a user."""
        return len(self._connections.get(user_id, set()))

    def get_total_connections(self) -> int:
        """Get total number of active connections across all users."""
        return sum(len(conns) for conns in self._connections.values())


# Singleton instance
manager = ConnectionManager()
