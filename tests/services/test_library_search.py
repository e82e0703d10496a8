"""Library sorting, status upserts and user/game search."""

from __future__ import annotations

from datetime import timedelta

import pytest

from gamebox.db.time import utcnow
from gamebox.services.library import (
    LibraryItem,
    apply_sort,
    get_library_status,
    list_library,
    remove_from_library,
    set_library_status,
)
from gamebox.services.search import parse_query, score_text, search, search_games, search_users

NOW = utcnow()


def _item(name: str, status: str = "Backlog", rating: int | None = None, age: int = 0) -> LibraryItem:
    return LibraryItem(
        game_id=abs(hash(name)) % 10_000,
        name=name,
        cover_url=None,
        release_year=None,
        status=status,
        updated_at=NOW - timedelta(minutes=age),
        rating=rating,
    )


ITEMS = [
    _item("celeste", "Completed", rating=90, age=3),
    _item("Hades", "Playing", rating=None, age=1),
    _item("Outer Wilds", "Dropped", rating=40, age=2),
    _item("braid", "Playing", rating=75, age=0),
]


@pytest.mark.parametrize(
    ("sort", "expected"),
    [
        ("recent", ["braid", "Hades", "Outer Wilds", "celeste"]),
        ("az", ["braid", "celeste", "Hades", "Outer Wilds"]),
        ("za", ["Outer Wilds", "Hades", "celeste", "braid"]),
        ("status", ["braid", "Hades", "celeste", "Outer Wilds"]),
        ("ratingHigh", ["celeste", "braid", "Outer Wilds", "Hades"]),
        ("ratingLow", ["Outer Wilds", "braid", "celeste", "Hades"]),
        ("nonsense", ["celeste", "Hades", "Outer Wilds", "braid"]),
    ],
)
def test_apply_sort(sort, expected) -> None:
    assert [item.name for item in apply_sort(ITEMS, sort)] == expected


def test_library_status_upsert_and_remove(db_session, alice, game) -> None:
    assert get_library_status(db_session, alice.id, game.id) is None
    assert set_library_status(db_session, alice.id, game.id, "Backlog").ok
    assert set_library_status(db_session, alice.id, game.id, "Playing").ok
    assert get_library_status(db_session, alice.id, game.id) == "Playing"

    assert set_library_status(db_session, alice.id, game.id, "Wishlist").ok is False
    assert set_library_status(db_session, alice.id, 999_999, "Playing").error == "Game not found"

    assert remove_from_library(db_session, alice.id, game.id).ok
    assert remove_from_library(db_session, alice.id, game.id).ok
    assert get_library_status(db_session, alice.id, game.id) is None


def test_list_library_joins_ratings(db_session, alice, bob, game, make_game, make_review) -> None:
    celeste = make_game("Celeste")
    set_library_status(db_session, alice.id, game.id, "Completed")
    set_library_status(db_session, alice.id, celeste.id, "Playing")
    set_library_status(db_session, bob.id, celeste.id, "Dropped")
    make_review(alice, game, rating=95)
    make_review(bob, celeste, rating=20)

    items = list_library(db_session, alice.id, sort="az")

    assert [(i.name, i.status, i.rating) for i in items] == [
        ("Celeste", "Playing", None),
        ("Hollow Knight", "Completed", 95),
    ]
    playing = list_library(db_session, alice.id, status="Playing")
    assert [i.name for i in playing] == ["Celeste"]


@pytest.mark.parametrize(
    ("raw", "q", "scope"),
    [
        ("  zelda ", "zelda", "all"),
        ("@alice", "alice", "users"),
        ("user: bob", "bob", "users"),
        ("Users:carol", "carol", "users"),
        ("game:hades", "hades", "games"),
        ("games: outer wilds", "outer wilds", "games"),
        (None, "", "all"),
    ],
)
def test_parse_query(raw, q, scope) -> None:
    parsed = parse_query(raw)
    assert (parsed.q, parsed.scope) == (q, scope)


def test_score_text() -> None:
    assert score_text("hades", "Hades") == 3
    assert score_text("had", "Hades") == 2
    assert score_text("ade", "Hades", None) == 1
    assert score_text("zzz", "Hades") == 0
    assert score_text("ii", "Hades", "Hades II") == 1


def test_search_users_ranks_exact_first(db_session, make_user) -> None:
    make_user("sam_plays")
    make_user("sam")
    make_user("xsam", display_name="Someone")
    make_user("nobody", display_name="Not Here")

    hits = search_users(db_session, "@sam")

    assert [h.username for h in hits] == ["sam", "sam_plays", "xsam"]
    assert [h.score for h in hits] == [3, 2, 1]


def test_search_games_matches_aliases_and_skips_editions(db_session, make_game) -> None:
    botw = make_game("Breath of the Wild", aliases=["BotW", "Zelda BOTW"])
    base = make_game("Hollow Knight")
    make_game("Hollow Knight: Voidheart Edition", parent_igdb_id=base.igdb_id)

    assert [h.id for h in search_games(db_session, "botw")] == [botw.id]
    assert [h.name for h in search_games(db_session, "hollow")] == ["Hollow Knight"]
    assert search_games(db_session, "   ") == []


def test_search_games_matches_non_ascii_aliases(db_session, make_game) -> None:
    red = make_game("Pokemon Red", aliases=["ポケットモンスター 赤", "Pokémon Rouge"])

    by_kana = search_games(db_session, "ポケット")
    by_accent = search_games(db_session, "Pokémon Rouge")

    assert [(h.id, h.score) for h in by_kana] == [(red.id, 2)]
    assert [(h.id, h.score) for h in by_accent] == [(red.id, 3)]


def test_search_respects_scope(db_session, make_user, make_game) -> None:
    make_user("celestefan")
    make_game("Celeste")

    both = search(db_session, "celeste")
    assert [u.username for u in both.users] == ["celestefan"]
    assert [g.name for g in both.games] == ["Celeste"]

    games_only = search(db_session, "game:celeste")
    assert games_only.scope == "games"
    assert games_only.users == []

    assert search(db_session, "@").q == ""
