"""Game catalogue: IGDB upserts, browse sections and maintenance jobs."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest
import sqlalchemy as sa

from gamebox.db.time import utcnow
from gamebox.models import Game
from gamebox.services.games import (
    backfill_parents,
    backfill_summaries,
    browse_games,
    clamp_browse_limit,
    clamp_since_days,
    parse_sections,
    pick_best_match,
    seed_games,
    upsert_games,
)
from gamebox.services.igdb import IgdbGame


def _hit(igdb_id: int, name: str, cover: str | None = None, year: int | None = None) -> IgdbGame:
    return IgdbGame(igdb_id=igdb_id, name=name, cover_url=cover, release_year=year)


def _fake_igdb() -> MagicMock:
    client = MagicMock()
    client.fetch_version_parents = AsyncMock()
    client.fetch_summaries = AsyncMock()
    client.search = AsyncMock()
    return client


def test_upsert_never_clears_cover(db_session, make_game) -> None:
    make_game("Hades", igdb_id=1, cover_url="https://img.example/hades.jpg")

    rows = upsert_games(
        db_session,
        [
            _hit(1, "Hades (2020)", cover=None, year=2020),
            _hit(2, "Hades II", cover="https://img.example/h2.jpg"),
        ],
    )

    assert "cover_url" not in rows[0]
    assert rows[1]["cover_url"] == "https://img.example/h2.jpg"
    games = {g.igdb_id: g for g in db_session.scalars(sa.select(Game))}
    assert games[1].name == "Hades (2020)"
    assert games[1].cover_url == "https://img.example/hades.jpg"
    assert games[1].release_year == 2020
    assert games[2].name == "Hades II"


def test_upsert_nothing() -> None:
    db = MagicMock()
    assert upsert_games(db, []) == []
    db.commit.assert_not_called()


def test_pick_best_match_prefers_cover_then_earliest_year() -> None:
    assert pick_best_match([]) is None
    best = pick_best_match(
        [
            _hit(1, "Remake", cover="c", year=2019),
            _hit(2, "No cover", year=1990),
            _hit(3, "Original", cover="c", year=1998),
            _hit(4, "Undated", cover="c"),
        ]
    )
    assert best.igdb_id == 3


@pytest.mark.parametrize(("raw", "expected"), [(None, 12), ("2", 4), ("100", 30), (20, 20)])
def test_clamp_browse_limit(raw, expected) -> None:
    assert clamp_browse_limit(raw) == expected


@pytest.mark.parametrize(("raw", "expected"), [(None, 14), ("1", 7), ("90", 30), ("10", 10)])
def test_clamp_since_days(raw, expected) -> None:
    assert clamp_since_days(raw) == expected


def test_parse_sections() -> None:
    assert parse_sections(None) == ["trending", "new", "top"]
    assert parse_sections("top, bogus,new") == ["top", "new"]


def test_browse_sections(db_session, make_user, make_game, make_review) -> None:
    users = [make_user() for _ in range(5)]
    popular = make_game("Popular", release_year=2015)
    niche = make_game("Niche", release_year=2024)
    edition = make_game("Popular: Deluxe", release_year=2025, parent_igdb_id=popular.igdb_id)
    for user in users:
        make_review(user, popular, rating=90)
        make_review(user, edition, rating=95)
    make_review(users[0], niche, rating=100)
    make_review(
        users[1], niche, rating=10, created_at=utcnow() - timedelta(days=60)
    )

    sections = browse_games(db_session, limit=4, since_days=7)

    assert [g["name"] for g in sections["trending"]] == ["Popular", "Niche"]
    assert [g["name"] for g in sections["new"]] == ["Niche", "Popular"]
    assert [g["name"] for g in sections["top"]] == ["Popular"]
    assert browse_games(db_session, ["new"]).keys() == {"new"}


@pytest.mark.asyncio
async def test_backfill_parents(db_session, make_game) -> None:
    base = make_game("Base", igdb_id=10)
    make_game("Deluxe", igdb_id=11)
    make_game("Local only", igdb_id=None)
    client = _fake_igdb()
    client.fetch_version_parents.return_value = {10: None, 11: 10}

    preview = await backfill_parents(db_session, client, dry_run=True)

    assert preview.to_payload() == {
        "scanned": 2,
        "updated": 1,
        "dry_run": True,
        "sample": [{"igdb_id": 11, "parent_igdb_id": 10}],
    }
    assert db_session.scalar(sa.select(Game.parent_igdb_id).where(Game.igdb_id == 11)) is None

    report = await backfill_parents(db_session, client, limit="5000")

    assert report.to_payload() == {"scanned": 2, "updated": 1}
    assert db_session.scalar(sa.select(Game.parent_igdb_id).where(Game.igdb_id == 11)) == 10
    assert sorted(client.fetch_version_parents.await_args.args[0]) == [base.igdb_id, 11]


@pytest.mark.asyncio
async def test_backfill_parents_without_candidates(db_session) -> None:
    client = _fake_igdb()
    report = await backfill_parents(db_session, client)
    assert report.to_payload() == {"scanned": 0, "updated": 0}
    client.fetch_version_parents.assert_not_awaited()


@pytest.mark.asyncio
async def test_backfill_summaries(db_session, make_game) -> None:
    make_game("Has summary", igdb_id=20, summary="already here")
    make_game("Needs one", igdb_id=21)
    make_game("Also needs one", igdb_id=22)
    client = _fake_igdb()
    client.fetch_summaries.return_value = {21: "A long summary about the game."}

    report = await backfill_summaries(db_session, client)

    assert report.to_payload() == {"scanned": 2, "updated": 1}
    assert sorted(client.fetch_summaries.await_args.args[0]) == [21, 22]
    assert db_session.scalar(sa.select(Game.summary).where(Game.igdb_id == 21)) == (
        "A long summary about the game."
    )
    assert db_session.scalar(sa.select(Game.summary).where(Game.igdb_id == 22)) is None


@pytest.mark.asyncio
async def test_seed_games_throttles_and_upserts(db_session) -> None:
    client = _fake_igdb()
    client.search.side_effect = [
        [_hit(30, "Celeste", cover="c", year=2018), _hit(31, "Celeste Classic", year=2015)],
        [],
    ]
    sleep = AsyncMock()

    rows = await seed_games(
        db_session, client, ["Celeste", "Nothing"], throttle_seconds=0.5, sleep=sleep
    )

    assert [row["igdb_id"] for row in rows] == [30]
    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.5)
    assert db_session.scalar(sa.select(Game.name).where(Game.igdb_id == 30)) == "Celeste"
