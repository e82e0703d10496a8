"""Cross-tab sync WebSocket."""

from collections.abc import Iterator
from contextlib import contextmanager

import pytest
from fastapi import WebSocketDisconnect

from gamebox.core.security import create_access_token
from gamebox.db.session import get_db, get_session_factory
from gamebox.services.sync import KIND_FOLLOW, get_sync_bus


def test_socket_relays_other_tabs_only(client, alice, bob) -> None:
    token = create_access_token(alice.id)
    bus = get_sync_bus()

    with client.websocket_connect(f"/api/v1/sync/ws?token={token}&tab_id=tab-a") as ws:
        ws.send_text("ping")
        assert ws.receive_text() == "pong"

        bus.publish_to_user(alice.id, "tab-a", KIND_FOLLOW, user_id=bob.id, following=False)
        bus.publish_to_user(alice.id, "tab-b", KIND_FOLLOW, user_id=bob.id, following=True)

        message = ws.receive_json()

    assert message["origin"] == "tab-b"
    assert message["payload"] == {"kind": KIND_FOLLOW, "user_id": bob.id, "following": True}


def test_socket_releases_session_after_handshake(app, client, alice, db_session) -> None:
    events: list[str] = []

    @contextmanager
    def tracked_session() -> Iterator:
        events.append("open")
        try:
            yield db_session
        finally:
            events.append("close")

    def request_scoped_session() -> Iterator:
        events.append("request-scoped")
        yield db_session

    app.dependency_overrides[get_session_factory] = lambda: tracked_session
    app.dependency_overrides[get_db] = request_scoped_session
    token = create_access_token(alice.id)

    with client.websocket_connect(f"/api/v1/sync/ws?token={token}&tab_id=tab-a") as ws:
        ws.send_text("ping")
        assert ws.receive_text() == "pong"
        # The socket is live and its lookup session is already closed.
        assert events == ["open", "close"]


def test_socket_rejects_bad_token(client) -> None:
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/api/v1/sync/ws?token=nope&tab_id=tab-a") as ws:
            ws.receive_text()

    assert excinfo.value.code == 1008
