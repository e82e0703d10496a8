"""Bulk like hydration and like toggles for posts and reviews.

Toggles are a set-membership flip (delete if present, else insert) followed
by a re-read of the authoritative count. Counts returned to callers always
come from the like tables, never from client-side arithmetic.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gamebox.models import Post, PostLike, Review, ReviewLike
from gamebox.services.notifications import clear_like, notify_like
from gamebox.services.store import delete_where, insert_once

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeEntry:
    liked: bool
    count: int


@dataclass(frozen=True)
class LikeToggleResult:
    """Post-toggle state; ``error`` is set and state unchanged on failure."""

    liked: bool
    count: int
    error: str | None = None


def post_like_key(post_id: str) -> str:
    return f"post:{post_id}"


def like_key(review_user_id: str, game_id: int) -> str:
    """Key identifying a review (one review per user and game)."""
    return f"{review_user_id}:{game_id}"


def _unique(values: Iterable[str | None]) -> list[str]:
    return list(dict.fromkeys(v for v in values if v))


def fetch_post_likes_bulk(
    db: Session,
    viewer_id: str | None,
    post_ids: Iterable[str],
) -> dict[str, LikeEntry]:
    """Return like state for many posts, keyed by :func:`post_like_key`.

    An empty id list returns ``{}`` without touching the database. Anonymous
    viewers get counts with ``liked=False`` everywhere.
    """
    ids = _unique(post_ids)
    if not ids:
        return {}
    counts: dict[str, int] = {
        post_id: int(total)
        for post_id, total in db.execute(
            sa.select(PostLike.post_id, sa.func.count())
            .where(PostLike.post_id.in_(ids))
            .group_by(PostLike.post_id)
        ).all()
    }
    liked: set[str] = set()
    if viewer_id:
        liked = set(
            db.scalars(
                sa.select(PostLike.post_id).where(
                    PostLike.user_id == viewer_id, PostLike.post_id.in_(ids)
                )
            )
        )
    return {
        post_like_key(pid): LikeEntry(liked=pid in liked, count=counts.get(pid, 0))
        for pid in ids
    }


def count_post_likes(db: Session, post_id: str) -> int:
    stmt = sa.select(sa.func.count()).select_from(PostLike).where(PostLike.post_id == post_id)
    return int(db.scalar(stmt) or 0)


def toggle_post_like(db: Session, user_id: str, post_id: str) -> LikeToggleResult:
    """Flip ``user_id``'s like on a post and sync ``posts.like_count``."""
    post = db.get(Post, post_id)
    if post is None:
        return LikeToggleResult(liked=False, count=0, error="Post not found")
    was_liked = (
        db.execute(
            sa.select(PostLike.post_id).where(
                PostLike.post_id == post_id, PostLike.user_id == user_id
            )
        ).first()
        is not None
    )
    try:
        if was_liked:
            delete_where(db, PostLike, PostLike.post_id == post_id, PostLike.user_id == user_id)
        else:
            insert_once(db, PostLike, post_id=post_id, user_id=user_id)
        count = count_post_likes(db, post_id)
        db.execute(sa.update(Post).where(Post.id == post_id).values(like_count=count))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Toggling like on post %s for %s failed", post_id, user_id)
        return LikeToggleResult(
            liked=was_liked, count=count_post_likes(db, post_id), error="Could not update like"
        )

    if was_liked:
        clear_like(db, actor_id=user_id, owner_id=post.user_id, post_id=post_id)
    else:
        notify_like(db, actor_id=user_id, owner_id=post.user_id, post_id=post_id)
    return LikeToggleResult(liked=not was_liked, count=count)


def get_like_state_for_pairs(
    db: Session,
    viewer_id: str | None,
    pairs: Iterable[tuple[str, int]],
) -> tuple[set[str], dict[str, int]]:
    """Return ``(liked_keys, counts)`` for a batch of reviews.

    Pairs are de-duplicated; an empty batch performs no query.
    """
    wanted = {like_key(user_id, game_id) for user_id, game_id in pairs if user_id}
    if not wanted:
        return set(), {}
    user_ids = {key.rsplit(":", 1)[0] for key in wanted}
    game_ids = {int(key.rsplit(":", 1)[1]) for key in wanted}

    rows = db.execute(
        sa.select(ReviewLike.liker_id, ReviewLike.review_user_id, ReviewLike.game_id).where(
            ReviewLike.review_user_id.in_(user_ids), ReviewLike.game_id.in_(game_ids)
        )
    ).all()
    counts = {key: 0 for key in wanted}
    liked: set[str] = set()
    for liker_id, review_user_id, game_id in rows:
        key = like_key(review_user_id, game_id)
        if key not in counts:
            continue
        counts[key] += 1
        if viewer_id and liker_id == viewer_id:
            liked.add(key)
    return liked, counts


def count_review_likes(db: Session, review_user_id: str, game_id: int) -> int:
    stmt = sa.select(sa.func.count()).select_from(ReviewLike).where(
        ReviewLike.review_user_id == review_user_id, ReviewLike.game_id == game_id
    )
    return int(db.scalar(stmt) or 0)


def toggle_like(
    db: Session,
    viewer_id: str,
    review_user_id: str,
    game_id: int,
) -> LikeToggleResult:
    """Flip ``viewer_id``'s like on the review ``(review_user_id, game_id)``."""
    if db.get(Review, (review_user_id, game_id)) is None:
        return LikeToggleResult(liked=False, count=0, error="Review not found")
    criteria = (
        ReviewLike.liker_id == viewer_id,
        ReviewLike.review_user_id == review_user_id,
        ReviewLike.game_id == game_id,
    )
    was_liked = db.execute(sa.select(ReviewLike.liker_id).where(*criteria)).first() is not None
    try:
        if was_liked:
            delete_where(db, ReviewLike, *criteria)
        else:
            insert_once(
                db,
                ReviewLike,
                liker_id=viewer_id,
                review_user_id=review_user_id,
                game_id=game_id,
            )
        count = count_review_likes(db, review_user_id, game_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Toggling like on review %s/%s for %s failed", review_user_id, game_id, viewer_id
        )
        return LikeToggleResult(
            liked=was_liked,
            count=count_review_likes(db, review_user_id, game_id),
            error="Could not update like",
        )

    if was_liked:
        clear_like(db, actor_id=viewer_id, owner_id=review_user_id, game_id=game_id)
    else:
        notify_like(db, actor_id=viewer_id, owner_id=review_user_id, game_id=game_id)
    return LikeToggleResult(liked=not was_liked, count=count)
