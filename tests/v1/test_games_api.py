"""Game catalogue, reviews, library and maintenance endpoints."""

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import status
from sqlalchemy.exc import SQLAlchemyError

from gamebox.api.v1.dependencies import get_igdb_client_dep
from gamebox.core.settings import settings
from gamebox.services.igdb import IgdbConfigError, IgdbError, IgdbGame


@pytest.fixture()
def fake_igdb(app) -> Iterator[MagicMock]:
    client = MagicMock()
    client.search = AsyncMock(return_value=[])
    client.fetch_version_parents = AsyncMock(return_value={})
    client.fetch_summaries = AsyncMock(return_value={})
    app.dependency_overrides[get_igdb_client_dep] = lambda: client
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_igdb_client_dep, None)


def test_game_detail_with_viewer_state(client, alice, bob, alice_headers, game, make_review) -> None:
    make_review(bob, game, rating=60)
    client.put(f"/api/v1/library/{game.id}", json={"status": "Completed"}, headers=alice_headers)
    client.put(f"/api/v1/games/{game.id}/review", json={"rating": 100}, headers=alice_headers)

    detail = client.get(f"/api/v1/games/{game.id}", headers=alice_headers).json()
    assert detail["name"] == "Hollow Knight"
    assert detail["review_count"] == 2
    assert detail["average_rating"] == pytest.approx(80.0)
    assert detail["my_status"] == "Completed"
    assert detail["my_rating"] == 100

    anon = client.get(f"/api/v1/games/{game.id}").json()
    assert anon["my_status"] is None
    assert anon["my_rating"] is None

    assert client.get("/api/v1/games/987654").status_code == status.HTTP_404_NOT_FOUND


def test_review_upsert_and_delete(client, alice_headers, game) -> None:
    url = f"/api/v1/games/{game.id}/review"

    created = client.put(url, json={"rating": 70, "body": " solid "}, headers=alice_headers)
    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["stars"] == 3.5
    assert created.json()["body"] == "solid"

    updated = client.put(url, json={"rating": 90}, headers=alice_headers)
    assert updated.status_code == status.HTTP_200_OK
    assert updated.json()["rating"] == 90

    assert [r["rating"] for r in client.get(f"/api/v1/games/{game.id}/reviews").json()] == [90]

    assert client.put(url, json={"rating": 101}, headers=alice_headers).status_code == 422
    missing = client.put("/api/v1/games/987654/review", json={"rating": 50}, headers=alice_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    assert client.delete(url, headers=alice_headers).status_code == status.HTTP_204_NO_CONTENT
    assert client.get(f"/api/v1/games/{game.id}/reviews").json() == []


def test_library_endpoints(client, alice_headers, game, make_game) -> None:
    celeste = make_game("Celeste")
    client.put(f"/api/v1/library/{game.id}", json={"status": "Backlog"}, headers=alice_headers)
    r = client.put(f"/api/v1/library/{celeste.id}", json={"status": "Playing"}, headers=alice_headers)
    assert r.json() == {"game_id": celeste.id, "status": "Playing"}

    listing = client.get("/api/v1/library", params={"sort": "status"}, headers=alice_headers)
    assert [item["name"] for item in listing.json()] == ["Celeste", "Hollow Knight"]

    status_r = client.get(f"/api/v1/library/{game.id}", headers=alice_headers).json()
    assert status_r["status"] == "Backlog"

    bad = client.put(f"/api/v1/library/{game.id}", json={"status": "Wishlist"}, headers=alice_headers)
    assert bad.status_code == 422
    missing = client.put("/api/v1/library/987654", json={"status": "Playing"}, headers=alice_headers)
    assert missing.status_code == status.HTTP_404_NOT_FOUND

    removed = client.delete(f"/api/v1/library/{game.id}", headers=alice_headers).json()
    assert removed == {"game_id": game.id, "status": None}
    assert client.get("/api/v1/library").status_code == status.HTTP_401_UNAUTHORIZED


def test_browse(client, alice, game, make_review) -> None:
    make_review(alice, game)

    r = client.get("/api/v1/games/browse", params={"sections": "trending,new", "sinceDays": "7"})

    assert r.status_code == status.HTTP_200_OK
    sections = r.json()["sections"]
    assert set(sections) == {"trending", "new"}
    assert [g["name"] for g in sections["trending"]] == ["Hollow Knight"]


def test_browse_failure_is_soft(client, mocker) -> None:
    mocker.patch(
        "gamebox.api.v1.endpoints.games.browse_games", side_effect=SQLAlchemyError("boom")
    )
    r = client.get("/api/v1/games/browse", params={"sections": "top"})
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"sections": {"top": []}}


def test_igdb_search_upserts(client, fake_igdb, make_game) -> None:
    make_game("Celeste", igdb_id=42, cover_url="https://img.example/old.jpg")
    fake_igdb.search.return_value = [
        IgdbGame(igdb_id=42, name="Celeste", cover_url=None, release_year=2018),
        IgdbGame(igdb_id=43, name="Celeste 64", cover_url="https://img.example/64.jpg", release_year=2024),
    ]

    r = client.get("/api/v1/games/igdb-search", params={"q": " celeste ", "limit": 5})

    assert [item["igdb_id"] for item in r.json()["items"]] == [42, 43]
    fake_igdb.search.assert_awaited_once_with("celeste", 5)
    hits = client.get("/api/v1/search", params={"q": "game:celeste"}).json()["games"]
    by_name = {hit["name"]: hit for hit in hits}
    assert by_name["Celeste"]["cover_url"] == "https://img.example/old.jpg"


def test_igdb_search_failure_returns_nothing(client, fake_igdb) -> None:
    fake_igdb.search.side_effect = IgdbError("IGDB error 500")
    assert client.get("/api/v1/games/igdb-search", params={"q": "zelda"}).json() == {"items": []}
    assert client.get("/api/v1/games/igdb-search", params={"q": " "}).json() == {"items": []}
    assert client.get("/api/v1/games/igdb-search", params={"limit": 99}).status_code == 422


def test_maintenance_backfill(client, fake_igdb, make_game) -> None:
    make_game("Base", igdb_id=10)
    make_game("Deluxe", igdb_id=11)
    fake_igdb.fetch_version_parents.return_value = {11: 10}

    dry = client.post("/api/v1/maintenance/backfill-games", json={"op": "parents", "dryRun": True})
    assert dry.json()["dry_run"] is True
    assert dry.json()["updated"] == 1

    real = client.post("/api/v1/maintenance/backfill-games", json={"op": "parents"})
    assert real.json() == {"scanned": 2, "updated": 1}

    bad = client.post("/api/v1/maintenance/backfill-games", json={"op": "covers"})
    assert bad.status_code == status.HTTP_400_BAD_REQUEST


def test_maintenance_summaries_and_seed(client, fake_igdb, make_game) -> None:
    make_game("Needs summary", igdb_id=20)
    fake_igdb.fetch_summaries.return_value = {20: "A summary."}
    r = client.post("/api/v1/maintenance/backfill-summaries", json={})
    assert r.json() == {"scanned": 1, "updated": 1}

    fake_igdb.search.return_value = [IgdbGame(igdb_id=30, name="Tunic", cover_url="c", release_year=2022)]
    seeded = client.post("/api/v1/maintenance/seed-games", json={"names": ["Tunic", "  "]})
    assert [row["name"] for row in seeded.json()["items"]] == ["Tunic"]
    assert client.post("/api/v1/maintenance/seed-games", json={"names": []}).json() == {"items": []}


def test_maintenance_upstream_errors(client, fake_igdb, make_game) -> None:
    make_game("Base", igdb_id=10)
    fake_igdb.fetch_version_parents.side_effect = IgdbConfigError("Missing IGDB credentials")
    r = client.post("/api/v1/maintenance/backfill-games", json={})
    assert r.status_code == status.HTTP_503_SERVICE_UNAVAILABLE

    fake_igdb.fetch_version_parents.side_effect = IgdbError("IGDB error 500")
    r = client.post("/api/v1/maintenance/backfill-games", json={})
    assert r.status_code == status.HTTP_502_BAD_GATEWAY


def test_maintenance_requires_secret(client, fake_igdb, mocker) -> None:
    mocker.patch.object(settings, "maintenance_secret", "s3cret")

    hidden = client.post("/api/v1/maintenance/seed-games", json={"names": []})
    assert hidden.status_code == status.HTTP_404_NOT_FOUND

    allowed = client.post(
        "/api/v1/maintenance/seed-games",
        json={"names": []},
        headers={"X-Maintenance-Secret": "s3cret"},
    )
    assert allowed.status_code == status.HTTP_200_OK
