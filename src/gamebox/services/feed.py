"""Keyset-paginated activity feed.

Pages are ordered by ``(created_at DESC, id DESC)``. The cursor is the last
returned item's ``(id, created_at)`` pair and the next page starts strictly
after it, so concurrent inserts never shift or duplicate items.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from gamebox.core.settings import settings
from gamebox.db.time import as_utc, parse_timestamp
from gamebox.models import Game, Post, PostLike, Profile
from gamebox.services.blocks import get_block_sets
from gamebox.services.follows import list_following_ids
from gamebox.services.mutes import get_mute_set
from gamebox.services.result import ServiceResult

logger = logging.getLogger(__name__)

FEED_TABS: tuple[str, ...] = ("following", "for-you")
FEED_FILTERS: tuple[str, ...] = ("all", "clips", "reviews", "screens")
DEFAULT_TAB = "for-you"
DEFAULT_FILTER = "all"

# Content filters are keyword heuristics over the post body.
FILTER_KEYWORDS: dict[str, tuple[str, ...]] = {
    "clips": ("clip", "video"),
    "reviews": ("review", "rating"),
    "screens": ("screenshot", "screen"),
}


@dataclass(frozen=True)
class FeedCursor:
    id: str
    created_at: datetime

    @classmethod
    def parse(cls, raw: object) -> FeedCursor | None:
        """Accept ``{"id": ..., "created_at": ...}``; anything else means no cursor."""
        if not isinstance(raw, Mapping) or "id" not in raw or "created_at" not in raw:
            return None
        if raw["id"] is None:
            return None
        created_at = parse_timestamp(raw["created_at"])
        if created_at is None:
            return None
        return cls(id=str(raw["id"]), created_at=created_at)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "created_at": self.created_at.isoformat()}


def clamp_limit(raw: object) -> int:
    """Clamp a requested page size to ``[1, feed_max_limit]``.

    Non-numbers and non-finite floats (NaN, Infinity) get the default.
    """
    if isinstance(raw, bool) or not isinstance(raw, int | float):
        return settings.feed_default_limit
    if isinstance(raw, float) and not math.isfinite(raw):
        return settings.feed_default_limit
    return max(1, min(settings.feed_max_limit, int(raw)))


@dataclass(frozen=True)
class FeedQuery:
    viewer_id: str | None = None
    tab: str = DEFAULT_TAB
    filter: str = DEFAULT_FILTER
    cursor: FeedCursor | None = None
    limit: int = 20

    @classmethod
    def from_raw(
        cls,
        viewer_id: str | None = None,
        tab: object = None,
        filter: object = None,
        cursor: object = None,
        limit: object = None,
    ) -> FeedQuery:
        """Normalize loosely-typed request input; unknown values fall back to defaults."""
        return cls(
            viewer_id=viewer_id or None,
            tab=tab if isinstance(tab, str) and tab in FEED_TABS else DEFAULT_TAB,
            filter=filter if isinstance(filter, str) and filter in FEED_FILTERS else DEFAULT_FILTER,
            cursor=FeedCursor.parse(cursor),
            limit=clamp_limit(limit),
        )


@dataclass(frozen=True)
class AuthorPreview:
    id: str
    username: str | None
    display_name: str | None
    avatar_url: str | None


@dataclass(frozen=True)
class GamePreview:
    id: int
    name: str
    cover_url: str | None


@dataclass(frozen=True)
class FeedItem:
    id: str
    body: str
    created_at: datetime
    author: AuthorPreview
    game: GamePreview | None
    media_urls: list[str]
    tags: list[str]
    like_count: int
    comment_count: int
    liked: bool

    @property
    def cursor(self) -> FeedCursor:
        return FeedCursor(id=self.id, created_at=self.created_at)


@dataclass(frozen=True)
class FeedPage:
    items: list[FeedItem] = field(default_factory=list)
    next_cursor: FeedCursor | None = None
    has_more: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "items": [_item_payload(item) for item in self.items],
            "next_cursor": self.next_cursor.to_dict() if self.next_cursor else None,
            "has_more": self.has_more,
        }


def empty_payload() -> dict[str, Any]:
    """The fail-soft response body for feed requests."""
    return FeedPage().to_payload()


def _item_payload(item: FeedItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "body": item.body,
        "created_at": item.created_at.isoformat(),
        "author": {
            "id": item.author.id,
            "username": item.author.username,
            "display_name": item.author.display_name,
            "avatar_url": item.author.avatar_url,
        },
        "game": (
            {"id": item.game.id, "name": item.game.name, "cover_url": item.game.cover_url}
            if item.game
            else None
        ),
        "media_urls": list(item.media_urls),
        "tags": list(item.tags),
        "like_count": item.like_count,
        "comment_count": item.comment_count,
        "liked": item.liked,
    }


def _build_statement(db: Session, query: FeedQuery) -> sa.Select[Any]:
    stmt = (
        sa.select(Post, Profile, Game)
        .join(Profile, Profile.id == Post.user_id)
        .outerjoin(Game, Game.id == Post.game_id)
    )

    if query.tab == "following" and query.viewer_id:
        authors = {query.viewer_id, *list_following_ids(db, query.viewer_id)}
        stmt = stmt.where(Post.user_id.in_(authors))

    hidden = get_mute_set(db, query.viewer_id) | get_block_sets(db, query.viewer_id).hidden
    if hidden:
        stmt = stmt.where(Post.user_id.not_in(hidden))

    keywords = FILTER_KEYWORDS.get(query.filter)
    if keywords:
        stmt = stmt.where(sa.or_(*(Post.body.ilike(f"%{word}%") for word in keywords)))

    if query.cursor is not None:
        stmt = stmt.where(
            sa.or_(
                Post.created_at < query.cursor.created_at,
                sa.and_(
                    Post.created_at == query.cursor.created_at,
                    Post.id < query.cursor.id,
                ),
            )
        )

    # One extra row tells us whether another page exists.
    return stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(query.limit + 1)


def _liked_post_ids(db: Session, viewer_id: str | None, post_ids: list[str]) -> set[str]:
    if not viewer_id or not post_ids:
        return set()
    stmt = sa.select(PostLike.post_id).where(
        PostLike.user_id == viewer_id, PostLike.post_id.in_(post_ids)
    )
    return set(db.scalars(stmt))


def get_feed(db: Session, query: FeedQuery) -> ServiceResult[FeedPage]:
    """Fetch one feed page for ``query``."""
    try:
        rows = db.execute(_build_statement(db, query)).all()
        has_more = len(rows) > query.limit
        rows = rows[: query.limit]
        liked = _liked_post_ids(db, query.viewer_id, [post.id for post, _, _ in rows])
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(
            "[feed] query failed tab=%s filter=%s viewer=%s",
            query.tab,
            query.filter,
            query.viewer_id or "anon",
        )
        return ServiceResult.fail("FEED_QUERY_FAILED", str(exc))

    items = [
        FeedItem(
            id=post.id,
            body=post.body,
            created_at=as_utc(post.created_at),
            author=AuthorPreview(
                id=author.id,
                username=author.username,
                display_name=author.display_name,
                avatar_url=author.avatar_url,
            ),
            game=GamePreview(id=game.id, name=game.name, cover_url=game.cover_url) if game else None,
            media_urls=list(post.media_urls or []),
            tags=list(post.tags or []),
            like_count=post.like_count,
            comment_count=post.comment_count,
            liked=post.id in liked,
        )
        for post, author, game in rows
    ]
    next_cursor = items[-1].cursor if has_more and items else None
    logger.debug(
        "[feed] %d items tab=%s filter=%s viewer=%s", len(items), query.tab, query.filter,
        query.viewer_id or "anon",
    )
    return ServiceResult.ok(FeedPage(items=items, next_cursor=next_cursor, has_more=has_more))
