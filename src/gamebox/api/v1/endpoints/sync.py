# src/gamebox/api/v1/endpoints/sync.py
"""Cross-tab sync over WebSocket.

Each open tab connects with its access token and tab id. Mutations made in
one tab are relayed to the user's other tabs; a tab never receives its own.

    ws://host/api/v1/sync/ws?token=<jwt>&tab_id=<id>
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from gamebox.services.sync import SyncMessage, get_sync_bus, user_channel

from ..dependencies import SessionFactoryDep, resolve_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["sync"])


@router.websocket("/ws")
async def sync_socket(
    websocket: WebSocket,
    session_factory: SessionFactoryDep,
    token: str = "",
    tab_id: str | None = None,
) -> None:
    # Only the handshake touches the database; the loop holds no session.
    user_id: str | None = None
    if token:
        with session_factory() as db:
            user = resolve_user(db, token)
            user_id = user.id if user else None
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication failed")
        return
    origin = (tab_id or "").strip()[:64] or None

    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[SyncMessage] = asyncio.Queue()

    # Publishers may run on a worker thread; hop back onto this loop.
    def handler(message: SyncMessage) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, message)

    bus = get_sync_bus()
    subscription = bus.subscribe(user_channel(user_id), handler, origin=origin)
    logger.info("Sync socket opened for %s tab=%s", user_id, origin)

    receiver = asyncio.ensure_future(websocket.receive_text())
    getter = asyncio.ensure_future(queue.get())
    try:
        while True:
            done, _ = await asyncio.wait({receiver, getter}, return_when=asyncio.FIRST_COMPLETED)
            if receiver in done:
                if receiver.result() == "ping":
                    await websocket.send_text("pong")
                receiver = asyncio.ensure_future(websocket.receive_text())
            if getter in done:
                await websocket.send_json(getter.result().to_dict())
                getter = asyncio.ensure_future(queue.get())
    except WebSocketDisconnect:
        logger.info("Sync socket closed for %s tab=%s", user_id, origin)
    finally:
        bus.unsubscribe(subscription)
        for task in (receiver, getter):
            task.cancel()
