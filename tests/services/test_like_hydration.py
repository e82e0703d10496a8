"""Like toggles, bulk like/comment hydration and notification fan-out."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import sqlalchemy as sa

from gamebox.models import Notification, Post, PostLike
from gamebox.services.blocks import block_user
from gamebox.services.comments import (
    MAX_COMMENT_LENGTH,
    add_post_comment,
    add_review_comment,
    fetch_post_comment_counts_bulk,
    fetch_review_comment_counts_bulk,
    list_post_comments,
    list_review_comments,
)
from gamebox.services.likes import (
    fetch_post_likes_bulk,
    get_like_state_for_pairs,
    like_key,
    post_like_key,
    toggle_like,
    toggle_post_like,
)
from gamebox.services.notifications import (
    PREVIEW_LENGTH,
    create_notification,
    get_unread_count,
    list_notifications,
    mark_all_read,
    mark_read,
)
from gamebox.services.store import insert_once


def _notifications(db, user_id: str) -> list[Notification]:
    return list(db.scalars(sa.select(Notification).where(Notification.user_id == user_id)))


def test_double_toggle_restores_post_like(db_session, alice, bob, make_post) -> None:
    post = make_post(bob)
    before = fetch_post_likes_bulk(db_session, alice.id, [post.id])[post_like_key(post.id)]

    first = toggle_post_like(db_session, alice.id, post.id)
    second = toggle_post_like(db_session, alice.id, post.id)

    assert (first.liked, first.count) == (True, 1)
    assert (second.liked, second.count) == (before.liked, before.count)
    assert db_session.get(Post, post.id).like_count == 0


def test_double_toggle_restores_review_like(db_session, alice, bob, game, make_review) -> None:
    make_review(bob, game)
    make_review(alice, game)
    toggle_like(db_session, alice.id, alice.id, game.id)

    first = toggle_like(db_session, bob.id, alice.id, game.id)
    second = toggle_like(db_session, bob.id, alice.id, game.id)

    assert (first.liked, first.count) == (True, 2)
    assert (second.liked, second.count) == (False, 1)


def test_toggle_missing_targets(db_session, alice, game) -> None:
    assert toggle_post_like(db_session, alice.id, "missing").error == "Post not found"
    assert toggle_like(db_session, alice.id, alice.id, game.id).error == "Review not found"


def test_duplicate_like_insert_is_already_applied(db_session, alice, bob, make_post) -> None:
    post = make_post(bob)
    assert insert_once(db_session, PostLike, post_id=post.id, user_id=alice.id) is True
    assert insert_once(db_session, PostLike, post_id=post.id, user_id=alice.id) is False
    rows = db_session.scalar(sa.select(sa.func.count()).select_from(PostLike))
    assert rows == 1


def test_bulk_post_likes(db_session, alice, bob, carol, make_post) -> None:
    liked = make_post(bob, "liked")
    other = make_post(bob, "other")
    toggle_post_like(db_session, alice.id, liked.id)
    toggle_post_like(db_session, carol.id, liked.id)
    toggle_post_like(db_session, carol.id, other.id)

    state = fetch_post_likes_bulk(db_session, alice.id, [liked.id, other.id, liked.id, None])

    assert set(state) == {post_like_key(liked.id), post_like_key(other.id)}
    assert state[post_like_key(liked.id)].liked is True
    assert state[post_like_key(liked.id)].count == 2
    assert state[post_like_key(other.id)].liked is False
    assert state[post_like_key(other.id)].count == 1

    anon = fetch_post_likes_bulk(db_session, None, [liked.id])
    assert anon[post_like_key(liked.id)].liked is False
    assert anon[post_like_key(liked.id)].count == 2


def test_empty_batches_skip_the_database() -> None:
    db = MagicMock()

    assert fetch_post_likes_bulk(db, "viewer", []) == {}
    assert get_like_state_for_pairs(db, "viewer", []) == (set(), {})
    assert fetch_post_comment_counts_bulk(db, []) == {}
    assert fetch_review_comment_counts_bulk(db, []) == {}
    db.execute.assert_not_called()
    db.scalars.assert_not_called()


def test_review_like_pairs(db_session, alice, bob, carol, game, make_game, make_review) -> None:
    other_game = make_game("Celeste")
    make_review(bob, game)
    make_review(carol, other_game)
    toggle_like(db_session, alice.id, bob.id, game.id)
    toggle_like(db_session, carol.id, bob.id, game.id)

    liked, counts = get_like_state_for_pairs(
        db_session,
        alice.id,
        [(bob.id, game.id), (carol.id, other_game.id), (bob.id, game.id), (carol.id, game.id)],
    )

    assert liked == {like_key(bob.id, game.id)}
    assert counts == {
        like_key(bob.id, game.id): 2,
        like_key(carol.id, other_game.id): 0,
        like_key(carol.id, game.id): 0,
    }


def test_likes_notify_owner_once(db_session, alice, bob, make_post) -> None:
    post = make_post(bob)

    toggle_post_like(db_session, alice.id, post.id)
    notes = _notifications(db_session, bob.id)
    assert [(n.type, n.actor_id, n.post_id) for n in notes] == [("like", alice.id, post.id)]

    toggle_post_like(db_session, alice.id, post.id)
    assert _notifications(db_session, bob.id) == []

    toggle_post_like(db_session, bob.id, post.id)
    assert _notifications(db_session, bob.id) == []


def test_comments_update_counts_and_notify(db_session, alice, bob, make_post) -> None:
    post = make_post(bob)
    body = "x" * (PREVIEW_LENGTH + 40)

    outcome = add_post_comment(db_session, alice.id, post.id, f"  {body}  ")
    add_post_comment(db_session, bob.id, post.id, "thanks")

    assert outcome.ok
    assert outcome.comment.body == body
    assert db_session.get(Post, post.id).comment_count == 2
    assert fetch_post_comment_counts_bulk(db_session, [post.id, "nope"]) == {post.id: 2, "nope": 0}
    [note] = _notifications(db_session, bob.id)
    assert note.type == "comment"
    assert note.meta == {"preview": "x" * PREVIEW_LENGTH}
    assert [c.body for c in list_post_comments(db_session, post.id, limit=1)] in (
        [body],
        ["thanks"],
    )


@pytest.mark.parametrize("raw", ["", "   ", "y" * (MAX_COMMENT_LENGTH + 1)])
def test_comment_body_validation(db_session, alice, bob, make_post, raw) -> None:
    post = make_post(bob)
    outcome = add_post_comment(db_session, alice.id, post.id, raw)
    assert outcome.ok is False
    assert outcome.comment is None


def test_review_comments(db_session, alice, bob, game, make_review) -> None:
    make_review(bob, game)

    assert add_review_comment(db_session, alice.id, alice.id, game.id, "hi").error == (
        "Review not found"
    )
    outcome = add_review_comment(db_session, alice.id, bob.id, game.id, "great take")

    assert outcome.ok
    assert [c.body for c in list_review_comments(db_session, bob.id, game.id)] == ["great take"]
    assert fetch_review_comment_counts_bulk(db_session, [(bob.id, game.id)]) == {
        like_key(bob.id, game.id): 1
    }
    [note] = _notifications(db_session, bob.id)
    assert (note.type, note.game_id) == ("comment", game.id)


def test_no_notifications_across_blocks(db_session, alice, bob, make_post) -> None:
    post = make_post(bob)
    block_user(db_session, bob.id, alice.id)

    toggle_post_like(db_session, alice.id, post.id)

    assert _notifications(db_session, bob.id) == []
    assert create_notification(db_session, "like", user_id=bob.id, actor_id=bob.id) is False


def test_duplicate_notification_is_ignored(db_session, alice, bob) -> None:
    assert create_notification(db_session, "follow", user_id=bob.id, actor_id=alice.id)
    assert not create_notification(db_session, "follow", user_id=bob.id, actor_id=alice.id)
    assert len(_notifications(db_session, bob.id)) == 1


def test_mark_read(db_session, alice, bob, carol) -> None:
    create_notification(db_session, "follow", user_id=bob.id, actor_id=alice.id)
    create_notification(db_session, "follow", user_id=bob.id, actor_id=carol.id)
    create_notification(db_session, "follow", user_id=alice.id, actor_id=carol.id)
    first, second = list_notifications(db_session, bob.id)
    foreign = list_notifications(db_session, alice.id)[0]

    assert get_unread_count(db_session, bob.id) == 2
    assert mark_read(db_session, bob.id, [first.id, first.id, foreign.id]) == 1
    assert mark_read(db_session, bob.id, []) == 0
    assert get_unread_count(db_session, bob.id) == 1
    assert [n.id for n in list_notifications(db_session, bob.id, unread_only=True)] == [second.id]
    assert get_unread_count(db_session, alice.id) == 1

    assert mark_all_read(db_session, bob.id) == 1
    assert get_unread_count(db_session, bob.id) == 0
