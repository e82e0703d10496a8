"""Notifications, search, sidebar and service endpoints."""

from fastapi import status

from gamebox import __version__
from gamebox.services.result import ServiceResult
from gamebox.services.sync import KIND_NOTIFICATIONS, SyncMessage, get_sync_bus, user_channel


def test_notification_inbox(client, alice, bob, carol, alice_headers, headers_for, make_post) -> None:
    post = make_post(alice)
    client.post(f"/api/v1/users/{alice.id}/follow", headers=headers_for(bob))
    client.post(f"/api/v1/posts/{post.id}/like", headers=headers_for(carol))

    inbox = client.get("/api/v1/notifications", headers=alice_headers).json()
    assert {n["type"] for n in inbox} == {"follow", "like"}
    assert client.get("/api/v1/notifications/unread-count", headers=alice_headers).json() == {
        "unread": 2
    }

    like_id = next(n["id"] for n in inbox if n["type"] == "like")
    r = client.post("/api/v1/notifications/read", json={"ids": [like_id]}, headers=alice_headers)
    assert r.json() == {"unread": 1}

    unread = client.get("/api/v1/notifications", params={"unread": True}, headers=alice_headers)
    assert [n["type"] for n in unread.json()] == ["follow"]


def test_read_all_broadcasts(client, alice, bob, headers_for) -> None:
    client.post(f"/api/v1/users/{alice.id}/follow", headers=headers_for(bob))
    received: list[SyncMessage] = []
    bus = get_sync_bus()
    subscription = bus.subscribe(user_channel(alice.id), received.append, origin="tab-2")
    try:
        r = client.post("/api/v1/notifications/read-all", headers=headers_for(alice, tab_id="tab-1"))
    finally:
        bus.unsubscribe(subscription)

    assert r.json() == {"unread": 0}
    assert [(m.kind, m.payload["unread"]) for m in received] == [(KIND_NOTIFICATIONS, 0)]


def test_notifications_require_auth(client) -> None:
    assert client.get("/api/v1/notifications").status_code == status.HTTP_401_UNAUTHORIZED


def test_search_scopes(client, alice, make_game) -> None:
    make_game("Alien: Isolation")

    everything = client.get("/api/v1/search", params={"q": "ali"}).json()
    assert everything["scope"] == "all"
    assert [u["username"] for u in everything["users"]] == ["alice"]
    assert [g["name"] for g in everything["games"]] == ["Alien: Isolation"]

    people = client.get("/api/v1/search", params={"q": "@ali"}).json()
    assert people["scope"] == "users"
    assert people["q"] == "ali"
    assert people["games"] == []


def test_search_failure_is_soft(client, mocker) -> None:
    mocker.patch("gamebox.api.v1.endpoints.search.search", side_effect=RuntimeError("boom"))

    r = client.get("/api/v1/search", params={"q": "game:zelda"})

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"q": "zelda", "scope": "games", "users": [], "games": []}


def test_sidebar(client, alice, bob, carol, alice_headers, headers_for, game, make_post) -> None:
    client.put(f"/api/v1/library/{game.id}", json={"status": "Playing"}, headers=alice_headers)
    client.post(f"/api/v1/users/{carol.id}/follow", headers=headers_for(bob))
    make_post(bob, "tagged", tags=["metroidvania", "indie"])
    make_post(carol, "also tagged", tags=["metroidvania"])

    sidebar = client.get("/api/v1/sidebar", headers=alice_headers).json()

    assert [g["name"] for g in sidebar["games"]] == ["Hollow Knight"]
    assert sidebar["users"][0]["username"] == "carol"
    assert alice.id not in {u["id"] for u in sidebar["users"]}
    assert sidebar["topics"][0] == {"tag": "metroidvania", "count": 2}


def test_sidebar_failure_is_soft(client, mocker) -> None:
    mocker.patch(
        "gamebox.api.v1.endpoints.sidebar.get_sidebar",
        return_value=ServiceResult.fail("SIDEBAR_FAILED", "db down"),
    )
    r = client.get("/api/v1/sidebar")
    assert r.json() == {"games": [], "users": [], "topics": []}


def test_health_and_root(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}
    root = client.get("/").json()
    assert root["version"] == __version__
    assert root["docs"] == "/docs"
