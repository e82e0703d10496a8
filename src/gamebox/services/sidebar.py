"""Sidebar preload: continue-playing games, who to follow, trending tags."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gamebox.db.time import utcnow
from gamebox.models import Follow, Game, LibraryEntry, Post, Profile
from gamebox.services.blocks import get_block_sets
from gamebox.services.result import ServiceResult

logger = logging.getLogger(__name__)

SIDEBAR_SIZE = 5
TOPIC_WINDOW_DAYS = 7


@dataclass(frozen=True)
class Sidebar:
    games: list[dict[str, Any]] = field(default_factory=list)
    users: list[dict[str, Any]] = field(default_factory=list)
    topics: list[dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {"games": self.games, "users": self.users, "topics": self.topics}


def continue_playing(db: Session, viewer_id: str | None) -> list[dict[str, Any]]:
    if not viewer_id:
        return []
    rows = db.execute(
        sa.select(Game, LibraryEntry.updated_at)
        .join(LibraryEntry, LibraryEntry.game_id == Game.id)
        .where(LibraryEntry.user_id == viewer_id, LibraryEntry.status == "Playing")
        .order_by(LibraryEntry.updated_at.desc())
        .limit(SIDEBAR_SIZE)
    ).all()
    return [
        {"id": game.id, "name": game.name, "cover_url": game.cover_url}
        for game, _ in rows
    ]


def who_to_follow(db: Session, viewer_id: str | None) -> list[dict[str, Any]]:
    """Most-followed users the viewer does not follow yet and is not blocked from."""
    followers = sa.func.count(Follow.follower_id)
    stmt = (
        sa.select(Profile, followers)
        .outerjoin(Follow, Follow.followee_id == Profile.id)
        .where(Profile.username.is_not(None))
        .group_by(Profile.id)
        .order_by(followers.desc(), Profile.created_at.desc())
    )
    if viewer_id:
        already = sa.select(Follow.followee_id).where(Follow.follower_id == viewer_id)
        excluded = {viewer_id, *get_block_sets(db, viewer_id).hidden}
        stmt = stmt.where(Profile.id.not_in(already), Profile.id.not_in(excluded))
    return [
        {
            "id": profile.id,
            "username": profile.username,
            "display_name": profile.display_name,
            "avatar_url": profile.avatar_url,
            "followers": int(count),
        }
        for profile, count in db.execute(stmt.limit(SIDEBAR_SIZE)).all()
    ]


def trending_topics(db: Session, *, now: datetime | None = None) -> list[dict[str, Any]]:
    since = (now or utcnow()) - timedelta(days=TOPIC_WINDOW_DAYS)
    counts: Counter[str] = Counter()
    for tags in db.scalars(sa.select(Post.tags).where(Post.created_at >= since)):
        counts.update({tag.lower() for tag in tags or [] if tag})
    return [{"tag": tag, "count": n} for tag, n in counts.most_common(SIDEBAR_SIZE)]


def get_sidebar(db: Session, viewer_id: str | None) -> ServiceResult[Sidebar]:
    try:
        sidebar = Sidebar(
            games=continue_playing(db, viewer_id),
            users=who_to_follow(db, viewer_id),
            topics=trending_topics(db),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("[sidebar] failed for viewer=%s", viewer_id or "anon")
        return ServiceResult.fail("SIDEBAR_FAILED", str(exc))
    return ServiceResult.ok(sidebar)
