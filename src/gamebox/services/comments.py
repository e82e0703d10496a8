"""Comments on posts and reviews, plus bulk comment-count hydration."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gamebox.models import Post, PostComment, Review, ReviewComment
from gamebox.services.likes import like_key
from gamebox.services.notifications import notify_comment

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 500
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class CommentOutcome:
    ok: bool
    comment: PostComment | ReviewComment | None = None
    error: str | None = None


def normalize_comment_body(raw: str | None) -> str | None:
    """Trim a comment; None when it is empty or too long."""
    body = (raw or "").strip()
    if not body or len(body) > MAX_COMMENT_LENGTH:
        return None
    return body


def _page_size(limit: int) -> int:
    return max(1, min(limit, MAX_PAGE_SIZE))


def fetch_post_comment_counts_bulk(db: Session, post_ids: Iterable[str]) -> dict[str, int]:
    """Comment totals per post id; an empty batch performs no query."""
    ids = list(dict.fromkeys(pid for pid in post_ids if pid))
    if not ids:
        return {}
    counts = {pid: 0 for pid in ids}
    rows = db.execute(
        sa.select(PostComment.post_id, sa.func.count())
        .where(PostComment.post_id.in_(ids))
        .group_by(PostComment.post_id)
    ).all()
    for post_id, total in rows:
        counts[post_id] = int(total)
    return counts


def fetch_review_comment_counts_bulk(
    db: Session,
    pairs: Iterable[tuple[str, int]],
) -> dict[str, int]:
    """Comment totals per review, keyed by :func:`like_key`."""
    wanted = {like_key(user_id, game_id): (user_id, game_id) for user_id, game_id in pairs}
    if not wanted:
        return {}
    counts = {key: 0 for key in wanted}
    rows = db.execute(
        sa.select(ReviewComment.review_user_id, ReviewComment.game_id, sa.func.count())
        .where(
            ReviewComment.review_user_id.in_({u for u, _ in wanted.values()}),
            ReviewComment.game_id.in_({g for _, g in wanted.values()}),
        )
        .group_by(ReviewComment.review_user_id, ReviewComment.game_id)
    ).all()
    for review_user_id, game_id, total in rows:
        key = like_key(review_user_id, game_id)
        if key in counts:
            counts[key] = int(total)
    return counts


def list_post_comments(
    db: Session,
    post_id: str,
    *,
    before: datetime | None = None,
    limit: int = 50,
) -> list[PostComment]:
    """Newest-first comments on a post, optionally older than ``before``."""
    stmt = sa.select(PostComment).where(PostComment.post_id == post_id)
    if before is not None:
        stmt = stmt.where(PostComment.created_at < before)
    stmt = stmt.order_by(PostComment.created_at.desc(), PostComment.id.desc())
    return list(db.scalars(stmt.limit(_page_size(limit))))


def list_review_comments(
    db: Session,
    review_user_id: str,
    game_id: int,
    *,
    before: datetime | None = None,
    limit: int = 50,
) -> list[ReviewComment]:
    stmt = sa.select(ReviewComment).where(
        ReviewComment.review_user_id == review_user_id, ReviewComment.game_id == game_id
    )
    if before is not None:
        stmt = stmt.where(ReviewComment.created_at < before)
    stmt = stmt.order_by(ReviewComment.created_at.desc(), ReviewComment.id.desc())
    return list(db.scalars(stmt.limit(_page_size(limit))))


def add_post_comment(db: Session, user_id: str, post_id: str, raw_body: str) -> CommentOutcome:
    """Add a comment, re-derive ``posts.comment_count`` and notify the author."""
    body = normalize_comment_body(raw_body)
    if body is None:
        return CommentOutcome(ok=False, error=f"Comment must be 1-{MAX_COMMENT_LENGTH} characters")
    post = db.get(Post, post_id)
    if post is None:
        return CommentOutcome(ok=False, error="Post not found")
    comment = PostComment(post_id=post_id, user_id=user_id, body=body)
    try:
        db.add(comment)
        db.flush()
        total = db.scalar(
            sa.select(sa.func.count()).select_from(PostComment).where(PostComment.post_id == post_id)
        )
        post.comment_count = int(total or 0)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Adding comment on post %s for %s failed", post_id, user_id)
        return CommentOutcome(ok=False, error="Could not add comment")
    db.refresh(comment)
    notify_comment(
        db,
        actor_id=user_id,
        owner_id=post.user_id,
        comment_id=comment.id,
        body=body,
        post_id=post_id,
    )
    return CommentOutcome(ok=True, comment=comment)


def add_review_comment(
    db: Session,
    commenter_id: str,
    review_user_id: str,
    game_id: int,
    raw_body: str,
) -> CommentOutcome:
    body = normalize_comment_body(raw_body)
    if body is None:
        return CommentOutcome(ok=False, error=f"Comment must be 1-{MAX_COMMENT_LENGTH} characters")
    if db.get(Review, (review_user_id, game_id)) is None:
        return CommentOutcome(ok=False, error="Review not found")
    comment = ReviewComment(
        review_user_id=review_user_id,
        game_id=game_id,
        commenter_id=commenter_id,
        body=body,
    )
    try:
        db.add(comment)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "Adding comment on review %s/%s for %s failed", review_user_id, game_id, commenter_id
        )
        return CommentOutcome(ok=False, error="Could not add comment")
    db.refresh(comment)
    notify_comment(
        db,
        actor_id=commenter_id,
        owner_id=review_user_id,
        comment_id=comment.id,
        body=body,
        game_id=game_id,
    )
    return CommentOutcome(ok=True, comment=comment)
