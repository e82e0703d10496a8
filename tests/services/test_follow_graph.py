"""Follow, block and mute state machine tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from gamebox.models import Block, Follow, Mute, Notification
from gamebox.services.blocks import block_user, get_block_sets, unblock_user
from gamebox.services.follows import (
    REASON_BLOCKED_BY,
    REASON_I_BLOCKED,
    REASON_SELF,
    can_follow,
    follow,
    get_follow_counts,
    is_following,
    list_followers,
    list_following,
    list_following_ids,
    toggle_follow,
    unfollow,
)
from gamebox.services.mutes import MuteCache, get_mute_set, is_muted, mute_user, unmute_user
from gamebox.services.relationships import get_relationship
from gamebox.services.result import is_unique_violation
from gamebox.services.store import insert_once


def _follow_rows(db, follower_id: str, followee_id: str) -> int:
    return db.scalar(
        sa.select(sa.func.count())
        .select_from(Follow)
        .where(Follow.follower_id == follower_id, Follow.followee_id == followee_id)
    )


class _DriverError(Exception):
    def __init__(self, message: str, pgcode: str | None = None) -> None:
        super().__init__(message)
        self.pgcode = pgcode


def test_follow_then_unfollow(db_session, alice, bob) -> None:
    outcome = follow(db_session, alice.id, bob.id)
    assert outcome.ok and outcome.following
    assert is_following(db_session, alice.id, bob.id)
    assert not is_following(db_session, bob.id, alice.id)

    outcome = unfollow(db_session, alice.id, bob.id)
    assert outcome.ok and not outcome.following
    assert _follow_rows(db_session, alice.id, bob.id) == 0


def test_follow_self_is_rejected(db_session, alice) -> None:
    outcome = follow(db_session, alice.id, alice.id)
    assert outcome.ok is False
    assert outcome.reason == REASON_SELF


@pytest.mark.parametrize("blocker", ["viewer", "target"])
def test_follow_across_block_is_rejected(db_session, alice, bob, blocker) -> None:
    if blocker == "viewer":
        block_user(db_session, alice.id, bob.id)
        expected = REASON_I_BLOCKED
    else:
        block_user(db_session, bob.id, alice.id)
        expected = REASON_BLOCKED_BY

    assert can_follow(db_session, alice.id, bob.id).reason == expected
    outcome = follow(db_session, alice.id, bob.id)

    assert outcome.ok is False
    assert outcome.reason == expected
    assert _follow_rows(db_session, alice.id, bob.id) == 0


def test_unfollow_without_edge_is_noop(db_session, alice, bob) -> None:
    outcome = unfollow(db_session, alice.id, bob.id)
    assert outcome.ok is True
    assert outcome.following is False


def test_repeated_follow_is_idempotent(db_session, alice, bob) -> None:
    assert follow(db_session, alice.id, bob.id).ok
    second = follow(db_session, alice.id, bob.id)

    assert second.ok and second.following
    assert _follow_rows(db_session, alice.id, bob.id) == 1


def test_insert_once_absorbs_unique_violation() -> None:
    db = MagicMock()
    db.execute.side_effect = IntegrityError(
        "INSERT INTO follows", {}, _DriverError("duplicate key value", pgcode="23505")
    )

    assert insert_once(db, Follow, follower_id="a", followee_id="b") is False
    db.rollback.assert_called_once()
    db.commit.assert_not_called()


def test_insert_once_reraises_other_integrity_errors() -> None:
    db = MagicMock()
    db.execute.side_effect = IntegrityError(
        "INSERT INTO follows", {}, _DriverError("NOT NULL constraint failed: follows.followee_id")
    )

    with pytest.raises(IntegrityError):
        insert_once(db, Follow, follower_id="a", followee_id=None)
    db.rollback.assert_called_once()


def test_is_unique_violation_reads_message_when_no_code() -> None:
    exc = IntegrityError(
        "INSERT", {}, _DriverError("UNIQUE constraint failed: follows.follower_id")
    )
    assert is_unique_violation(exc)
    assert not is_unique_violation(_DriverError("foreign key mismatch"))


def test_follow_survives_duplicate_race(db_session, alice, bob, mocker) -> None:
    # Another request inserted the edge between the check and our insert.
    mocker.patch("gamebox.services.follows.insert_once", return_value=False)
    notify = mocker.patch("gamebox.services.follows.notify_follow")

    outcome = follow(db_session, alice.id, bob.id)

    assert outcome.ok and outcome.following
    notify.assert_not_called()


def test_block_keeps_existing_follow(db_session, alice, bob) -> None:
    follow(db_session, alice.id, bob.id)
    block_user(db_session, bob.id, alice.id)

    retry = follow(db_session, alice.id, bob.id)

    assert retry.ok is False
    assert retry.reason == REASON_BLOCKED_BY
    assert retry.following is True
    assert _follow_rows(db_session, alice.id, bob.id) == 1


def test_toggle_follow_flips(db_session, alice, bob) -> None:
    assert toggle_follow(db_session, alice.id, bob.id).following is True
    assert toggle_follow(db_session, alice.id, bob.id).following is False
    # A stale belief of "not following" just re-follows idempotently.
    follow(db_session, alice.id, bob.id)
    assert toggle_follow(db_session, alice.id, bob.id, is_following_now=False).following is True


def test_follow_lists_and_counts(db_session, alice, bob, carol) -> None:
    follow(db_session, alice.id, carol.id)
    follow(db_session, bob.id, carol.id)
    follow(db_session, carol.id, alice.id)

    counts = get_follow_counts(db_session, carol.id)
    assert (counts.followers, counts.following) == (2, 1)
    assert {p.id for p in list_followers(db_session, carol.id)} == {alice.id, bob.id}
    assert [p.id for p in list_following(db_session, carol.id)] == [alice.id]
    assert list_following_ids(db_session, alice.id) == [carol.id]
    assert list_following_ids(db_session, None) == []


def test_follow_notifies_and_unfollow_clears(db_session, alice, bob) -> None:
    follow(db_session, alice.id, bob.id)
    rows = db_session.scalars(sa.select(Notification).where(Notification.user_id == bob.id)).all()
    assert [(n.type, n.actor_id) for n in rows] == [("follow", alice.id)]

    unfollow(db_session, alice.id, bob.id)
    assert db_session.scalar(sa.select(sa.func.count()).select_from(Notification)) == 0


def test_block_is_idempotent_and_purges_notifications(db_session, alice, bob) -> None:
    follow(db_session, alice.id, bob.id)
    follow(db_session, bob.id, alice.id)

    first = block_user(db_session, alice.id, bob.id)
    second = block_user(db_session, alice.id, bob.id)

    assert first.ok and first.extra["created"] is True
    assert second.ok and second.extra["created"] is False
    assert db_session.scalar(sa.select(sa.func.count()).select_from(Block)) == 1
    assert db_session.scalar(sa.select(sa.func.count()).select_from(Notification)) == 0


def test_block_sets_and_unblock(db_session, alice, bob, carol) -> None:
    block_user(db_session, alice.id, bob.id)
    block_user(db_session, carol.id, alice.id)

    sets = get_block_sets(db_session, alice.id)
    assert sets.i_blocked == {bob.id}
    assert sets.blocked_me == {carol.id}
    assert sets.hidden == {bob.id, carol.id}
    assert get_block_sets(db_session, None).hidden == frozenset()

    unblock_user(db_session, alice.id, bob.id)
    unblock_user(db_session, alice.id, bob.id)
    assert get_block_sets(db_session, alice.id).i_blocked == frozenset()


def test_self_block_and_self_mute_are_refused(db_session, alice) -> None:
    assert block_user(db_session, alice.id, alice.id).ok is False
    assert mute_user(db_session, alice.id, alice.id).ok is False


def test_mute_round_trip(db_session, alice, bob) -> None:
    assert mute_user(db_session, alice.id, bob.id).ok
    assert mute_user(db_session, alice.id, bob.id).ok
    assert db_session.scalar(sa.select(sa.func.count()).select_from(Mute)) == 1
    assert is_muted(db_session, alice.id, bob.id)
    assert not is_muted(db_session, bob.id, alice.id)

    unmute_user(db_session, alice.id, bob.id)
    assert not is_muted(db_session, alice.id, bob.id)


def test_mute_cache_expires_after_ttl(db_session, alice, bob) -> None:
    now = [100.0]
    cache = MuteCache(10.0, clock=lambda: now[0])

    assert get_mute_set(db_session, alice.id, cache=cache) == frozenset()
    db_session.add(Mute(user_id=alice.id, muted_id=bob.id))
    db_session.commit()

    now[0] += 5
    assert get_mute_set(db_session, alice.id, cache=cache) == frozenset()
    assert get_mute_set(db_session, alice.id, cache=cache, force=True) == {bob.id}

    cache.invalidate()
    db_session.execute(sa.delete(Mute))
    db_session.commit()
    get_mute_set(db_session, alice.id, cache=cache)
    now[0] += 11
    assert cache.get(alice.id) is None


def test_relationship_states(db_session, alice, bob) -> None:
    assert get_relationship(db_session, None, bob.id).block == "none"
    assert get_relationship(db_session, alice.id, alice.id).following is False

    follow(db_session, alice.id, bob.id)
    mute_user(db_session, alice.id, bob.id)
    rel = get_relationship(db_session, alice.id, bob.id)
    assert (rel.following, rel.followed_by, rel.block, rel.muted) == (True, False, "none", True)

    block_user(db_session, bob.id, alice.id)
    assert get_relationship(db_session, alice.id, bob.id).block == "blocked-by"
    block_user(db_session, alice.id, bob.id)
    assert get_relationship(db_session, alice.id, bob.id).block == "i-blocked"
