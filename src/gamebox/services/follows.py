"""Follow graph operations.

``follow`` is refused when either user blocks the other. ``unfollow`` is
always allowed and never fails when there is nothing to remove.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gamebox.models import Follow, Profile
from gamebox.services.blocks import get_block_sets
from gamebox.services.notifications import clear_follow, notify_follow
from gamebox.services.store import delete_where, insert_once

logger = logging.getLogger(__name__)

REASON_SELF = "self"
REASON_I_BLOCKED = "i-blocked"
REASON_BLOCKED_BY = "blocked-by"
REASON_ERROR = "error"


@dataclass(frozen=True)
class FollowCheck:
    ok: bool
    reason: str | None = None


@dataclass(frozen=True)
class FollowOutcome:
    """Result of a follow/unfollow mutation."""

    ok: bool
    reason: str | None = None
    following: bool = False


@dataclass(frozen=True)
class FollowCounts:
    followers: int = 0
    following: int = 0


def can_follow(db: Session, me: str, target: str) -> FollowCheck:
    """Check whether ``me`` may start following ``target``."""
    if me == target:
        return FollowCheck(ok=False, reason=REASON_SELF)
    blocks = get_block_sets(db, me)
    if target in blocks.i_blocked:
        return FollowCheck(ok=False, reason=REASON_I_BLOCKED)
    if target in blocks.blocked_me:
        return FollowCheck(ok=False, reason=REASON_BLOCKED_BY)
    return FollowCheck(ok=True)


def is_following(db: Session, me: str | None, target: str) -> bool:
    if not me:
        return False
    stmt = sa.select(Follow.follower_id).where(
        Follow.follower_id == me, Follow.followee_id == target
    )
    return db.execute(stmt.limit(1)).first() is not None


def follow(db: Session, me: str, target: str) -> FollowOutcome:
    """Start following ``target``; an existing follow counts as success."""
    check = can_follow(db, me, target)
    if not check.ok:
        return FollowOutcome(ok=False, reason=check.reason, following=is_following(db, me, target))
    try:
        created = insert_once(db, Follow, follower_id=me, followee_id=target)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Follow %s -> %s failed", me, target)
        return FollowOutcome(ok=False, reason=REASON_ERROR, following=is_following(db, me, target))
    if created:
        notify_follow(db, follower_id=me, followee_id=target)
    return FollowOutcome(ok=True, following=True)


def unfollow(db: Session, me: str, target: str) -> FollowOutcome:
    """Stop following ``target``. Removing a missing edge is a no-op."""
    try:
        delete_where(db, Follow, Follow.follower_id == me, Follow.followee_id == target)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Unfollow %s -> %s failed", me, target)
        return FollowOutcome(ok=False, reason=REASON_ERROR, following=is_following(db, me, target))
    clear_follow(db, follower_id=me, followee_id=target)
    return FollowOutcome(ok=True, following=False)


def toggle_follow(
    db: Session,
    me: str,
    target: str,
    is_following_now: bool | None = None,
) -> FollowOutcome:
    """Flip the follow edge. The caller may pass the state it believes is current."""
    current = is_following(db, me, target) if is_following_now is None else is_following_now
    return unfollow(db, me, target) if current else follow(db, me, target)


def get_follow_counts(db: Session, user_id: str) -> FollowCounts:
    followers = db.scalar(
        sa.select(sa.func.count()).select_from(Follow).where(Follow.followee_id == user_id)
    )
    following = db.scalar(
        sa.select(sa.func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    )
    return FollowCounts(followers=int(followers or 0), following=int(following or 0))


def list_following_ids(db: Session, user_id: str | None) -> list[str]:
    if not user_id:
        return []
    return list(db.scalars(sa.select(Follow.followee_id).where(Follow.follower_id == user_id)))


def list_followers(db: Session, user_id: str, *, limit: int = 50) -> list[Profile]:
    """Profiles following ``user_id``, most recent follow first."""
    stmt = (
        sa.select(Profile)
        .join(Follow, Follow.follower_id == Profile.id)
        .where(Follow.followee_id == user_id)
        .order_by(Follow.created_at.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt))


def list_following(db: Session, user_id: str, *, limit: int = 50) -> list[Profile]:
    """Profiles ``user_id`` follows, most recent follow first."""
    stmt = (
        sa.select(Profile)
        .join(Follow, Follow.followee_id == Profile.id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
        .limit(limit)
    )
    return list(db.scalars(stmt))
