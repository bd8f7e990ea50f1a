"""
WebSocket router for the ticket change feed.

Clients connect with `?token=<access token>`, then receive
`{"type": "ticket_change", ...}` messages and re-fetch their ticket list.
"""

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect

from autocrm.core.deps import resolve_session
from autocrm.core.websocket import manager
from autocrm.db.session import SessionLocal

router = APIRouter(prefix="/ws", tags=["WebSocket"])


@router.websocket("/tickets")
async def websocket_tickets(
    websocket: WebSocket,
    token: str | None = Query(None),
):
    if not token:
        await websocket.close(code=4001, reason="Authentication required")
        return

    db = SessionLocal()
    try:
        session = resolve_session(db, token)
    except HTTPException:
        await websocket.close(code=4001, reason="Invalid token")
        return
    finally:
        db.close()

    await manager.connect(websocket, session.user_id, session.role, session.company_id)

    try:
        # Keep connection alive, handle incoming messages (heartbeat/pings)
        while True:
            try:
                data = await websocket.receive_text()
                if data == "ping":
                    await websocket.send_text("pong")
            except WebSocketDisconnect:
                break
    finally:
        await manager.disconnect(websocket, session.user_id)
