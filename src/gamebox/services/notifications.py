"""Notification fan-out for likes, comments and follows.

Creation is best effort: a failure to notify never fails the action that
triggered it. Nobody is notified about their own actions or across a block.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gamebox.db.time import utcnow
from gamebox.models import Block, Notification

logger = logging.getLogger(__name__)

PREVIEW_LENGTH = 160


def _match(column: Any, value: Any) -> Any:
    return column.is_(None) if value is None else column == value


def _blocked_between(db: Session, a: str, b: str) -> bool:
    stmt = sa.select(Block.blocker_id).where(
        sa.or_(
            sa.and_(Block.blocker_id == a, Block.blocked_id == b),
            sa.and_(Block.blocker_id == b, Block.blocked_id == a),
        )
    )
    return db.execute(stmt.limit(1)).first() is not None


def _event_filter(
    kind: str,
    *,
    user_id: str,
    actor_id: str,
    game_id: int | None,
    post_id: str | None,
    comment_id: str | None,
) -> list[Any]:
    return [
        Notification.type == kind,
        Notification.user_id == user_id,
        Notification.actor_id == actor_id,
        _match(Notification.game_id, game_id),
        _match(Notification.post_id, post_id),
        _match(Notification.comment_id, comment_id),
    ]


def create_notification(
    db: Session,
    kind: str,
    *,
    user_id: str,
    actor_id: str,
    game_id: int | None = None,
    post_id: str | None = None,
    comment_id: str | None = None,
    meta: dict[str, Any] | None = None,
) -> bool:
    """Insert a notification unless it is a self-notify, blocked, or duplicate.

    Returns True when a row was written.
    """
    if not user_id or not actor_id or user_id == actor_id:
        return False
    try:
        if _blocked_between(db, user_id, actor_id):
            return False
        criteria = _event_filter(
            kind,
            user_id=user_id,
            actor_id=actor_id,
            game_id=game_id,
            post_id=post_id,
            comment_id=comment_id,
        )
        exists = db.execute(sa.select(Notification.id).where(*criteria).limit(1)).first()
        if exists is not None:
            return False
        db.add(
            Notification(
                type=kind,
                user_id=user_id,
                actor_id=actor_id,
                game_id=game_id,
                post_id=post_id,
                comment_id=comment_id,
                meta=meta,
            )
        )
        db.commit()
        return True
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create %s notification for %s", kind, user_id)
        return False


def clear_notification(
    db: Session,
    kind: str,
    *,
    user_id: str,
    actor_id: str,
    game_id: int | None = None,
    post_id: str | None = None,
    comment_id: str | None = None,
) -> int:
    """Remove a previously created notification; returns rows deleted."""
    if user_id == actor_id:
        return 0
    criteria = _event_filter(
        kind,
        user_id=user_id,
        actor_id=actor_id,
        game_id=game_id,
        post_id=post_id,
        comment_id=comment_id,
    )
    try:
        result = db.execute(sa.delete(Notification).where(*criteria))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to clear %s notification for %s", kind, user_id)
        return 0
    return int(result.rowcount or 0)


def notify_like(
    db: Session,
    *,
    actor_id: str,
    owner_id: str,
    post_id: str | None = None,
    game_id: int | None = None,
) -> bool:
    return create_notification(
        db, "like", user_id=owner_id, actor_id=actor_id, post_id=post_id, game_id=game_id
    )


def clear_like(
    db: Session,
    *,
    actor_id: str,
    owner_id: str,
    post_id: str | None = None,
    game_id: int | None = None,
) -> int:
    return clear_notification(
        db, "like", user_id=owner_id, actor_id=actor_id, post_id=post_id, game_id=game_id
    )


def notify_comment(
    db: Session,
    *,
    actor_id: str,
    owner_id: str,
    comment_id: str,
    body: str,
    post_id: str | None = None,
    game_id: int | None = None,
) -> bool:
    """Notify the owner of a post or review about a new comment."""
    preview = body.strip()[:PREVIEW_LENGTH]
    return create_notification(
        db,
        "comment",
        user_id=owner_id,
        actor_id=actor_id,
        post_id=post_id,
        game_id=game_id,
        comment_id=comment_id,
        meta={"preview": preview},
    )


def notify_follow(db: Session, *, follower_id: str, followee_id: str) -> bool:
    return create_notification(db, "follow", user_id=followee_id, actor_id=follower_id)


def clear_follow(db: Session, *, follower_id: str, followee_id: str) -> int:
    return clear_notification(db, "follow", user_id=followee_id, actor_id=follower_id)


def list_notifications(
    db: Session,
    user_id: str,
    *,
    limit: int = 50,
    unread_only: bool = False,
) -> list[Notification]:
    """Return the newest notifications addressed to ``user_id``."""
    stmt = sa.select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        stmt = stmt.where(Notification.read_at.is_(None))
    stmt = stmt.order_by(Notification.created_at.desc(), Notification.id.desc())
    return list(db.scalars(stmt.limit(max(1, min(limit, 100)))))


def get_unread_count(db: Session, user_id: str) -> int:
    stmt = sa.select(sa.func.count()).select_from(Notification).where(
        Notification.user_id == user_id,
        Notification.read_at.is_(None),
    )
    return int(db.scalar(stmt) or 0)


def mark_read(db: Session, user_id: str, ids: Iterable[int]) -> int:
    """Mark the given notifications read; ids belonging to others are ignored."""
    wanted = sorted(set(ids))
    if not wanted:
        return 0
    result = db.execute(
        sa.update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.id.in_(wanted),
            Notification.read_at.is_(None),
        )
        .values(read_at=utcnow())
    )
    db.commit()
    return int(result.rowcount or 0)


def mark_all_read(db: Session, user_id: str) -> int:
    result = db.execute(
        sa.update(Notification)
        .where(Notification.user_id == user_id, Notification.read_at.is_(None))
        .values(read_at=utcnow())
    )
    db.commit()
    return int(result.rowcount or 0)


def purge_all_between(db: Session, a: str, b: str) -> int:
    """Delete every notification exchanged between two users, in both directions."""
    result = db.execute(
        sa.delete(Notification).where(
            sa.or_(
                sa.and_(Notification.user_id == a, Notification.actor_id == b),
                sa.and_(Notification.user_id == b, Notification.actor_id == a),
            )
        )
    )
    db.commit()
    return int(result.rowcount or 0)
