"""Game catalogue: browse sections, IGDB upserts and maintenance backfills."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import Session

from gamebox.core.settings import settings
from gamebox.db.time import utcnow
from gamebox.models import Game, Review
from gamebox.models.game import game_row
from gamebox.services.igdb import IgdbClient, IgdbGame

logger = logging.getLogger(__name__)

BROWSE_SECTIONS: tuple[str, ...] = ("trending", "new", "top")
TOP_WINDOW_DAYS = 90
TOP_MIN_REVIEWS = 5
MAX_BACKFILL_LIMIT = 1000
SAMPLE_SIZE = 5


def clamp_browse_limit(raw: object) -> int:
    try:
        value = int(raw)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        value = 12
    return max(4, min(30, value))


def clamp_since_days(raw: object) -> int:
    try:
        value = int(raw)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        value = 14
    return max(7, min(30, value))


def parse_sections(raw: str | None) -> list[str]:
    if not raw:
        return list(BROWSE_SECTIONS)
    return [s.strip() for s in raw.split(",") if s.strip() in BROWSE_SECTIONS]


def _base_games_in_order(db: Session, ids: Sequence[int]) -> list[dict[str, Any]]:
    """Load canonical (non-edition) games preserving the order of ``ids``."""
    if not ids:
        return []
    games = db.scalars(
        sa.select(Game).where(Game.id.in_(ids), Game.parent_igdb_id.is_(None))
    ).all()
    by_id = {game.id: game for game in games}
    return [game_row(by_id[i]) for i in ids if i in by_id]


def _trending_ids(db: Session, since: datetime, limit: int) -> list[int]:
    total = sa.func.count(Review.user_id)
    stmt = (
        sa.select(Review.game_id, total)
        .join(Game, Game.id == Review.game_id)
        .where(Review.created_at >= since, Game.parent_igdb_id.is_(None))
        .group_by(Review.game_id)
        .order_by(total.desc(), Review.game_id)
        .limit(limit)
    )
    return [game_id for game_id, _ in db.execute(stmt).all()]


def _top_ids(db: Session, since: datetime, limit: int) -> list[int]:
    average = sa.func.avg(Review.rating)
    stmt = (
        sa.select(Review.game_id, average)
        .join(Game, Game.id == Review.game_id)
        .where(Review.created_at >= since, Game.parent_igdb_id.is_(None))
        .group_by(Review.game_id)
        .having(sa.func.count(Review.user_id) >= TOP_MIN_REVIEWS)
        .order_by(average.desc(), Review.game_id)
        .limit(limit)
    )
    return [game_id for game_id, _ in db.execute(stmt).all()]


def browse_games(
    db: Session,
    sections: Iterable[str] = BROWSE_SECTIONS,
    *,
    limit: object = 12,
    since_days: object = 14,
    now: datetime | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Build the requested browse sections. Editions never appear."""
    limit = clamp_browse_limit(limit)
    since_days = clamp_since_days(since_days)
    now = now or utcnow()
    wanted = set(sections)
    out: dict[str, list[dict[str, Any]]] = {}

    if "trending" in wanted:
        ids = _trending_ids(db, now - timedelta(days=since_days), limit)
        out["trending"] = _base_games_in_order(db, ids)

    if "new" in wanted:
        newest = db.scalars(
            sa.select(Game)
            .where(Game.parent_igdb_id.is_(None), Game.release_year.is_not(None))
            .order_by(Game.release_year.desc(), Game.created_at.desc(), Game.id.desc())
            .limit(limit)
        ).all()
        out["new"] = [game_row(game) for game in newest]

    if "top" in wanted:
        ids = _top_ids(db, now - timedelta(days=TOP_WINDOW_DAYS), limit)
        out["top"] = _base_games_in_order(db, ids)

    return out


def upsert_games(db: Session, games: Sequence[IgdbGame]) -> list[dict[str, Any]]:
    """Insert or update games keyed on ``igdb_id``.

    An existing cover is never replaced by a missing one. Returns the rows as
    written, without ``cover_url`` where IGDB had none.
    """
    written: list[dict[str, Any]] = []
    if not games:
        return written
    existing = {
        game.igdb_id: game
        for game in db.scalars(
            sa.select(Game).where(Game.igdb_id.in_({g.igdb_id for g in games}))
        )
    }
    for item in games:
        row = item.as_row()
        if row["cover_url"] is None:
            row.pop("cover_url")
        game = existing.get(item.igdb_id)
        if game is None:
            game = Game(**row)
            db.add(game)
            existing[item.igdb_id] = game
        else:
            for key, value in row.items():
                setattr(game, key, value)
        written.append(row)
    db.commit()
    return written


def pick_best_match(candidates: Sequence[IgdbGame]) -> IgdbGame | None:
    """Prefer a result with a cover, then the earliest release year."""
    if not candidates:
        return None
    return sorted(
        candidates,
        key=lambda g: (0 if g.cover_url else 1, g.release_year if g.release_year is not None else 9999),
    )[0]


@dataclass(frozen=True)
class BackfillReport:
    scanned: int = 0
    updated: int = 0
    dry_run: bool = False
    sample: list[dict[str, Any]] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"scanned": self.scanned, "updated": self.updated}
        if self.dry_run:
            payload["dry_run"] = True
            payload["sample"] = self.sample
        return payload


def _backfill_limit(raw: object, default: int = 200) -> int:
    try:
        value = int(raw)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        value = default
    return max(1, min(value, MAX_BACKFILL_LIMIT))


async def backfill_parents(
    db: Session,
    client: IgdbClient,
    *,
    limit: object = 200,
    dry_run: bool = False,
) -> BackfillReport:
    """Link edition rows to their base game using IGDB's ``version_parent``."""
    candidates = db.scalars(
        sa.select(Game)
        .where(Game.igdb_id.is_not(None), Game.parent_igdb_id.is_(None))
        .order_by(Game.created_at.desc(), Game.id.desc())
        .limit(_backfill_limit(limit))
    ).all()
    if not candidates:
        return BackfillReport(dry_run=dry_run)

    parents = await client.fetch_version_parents([g.igdb_id for g in candidates if g.igdb_id])
    updates = [
        {"igdb_id": g.igdb_id, "parent_igdb_id": parents[g.igdb_id]}
        for g in candidates
        if g.igdb_id is not None and parents.get(g.igdb_id) is not None
    ]
    if dry_run:
        return BackfillReport(
            scanned=len(candidates),
            updated=len(updates),
            dry_run=True,
            sample=updates[:SAMPLE_SIZE],
        )

    by_igdb = {g.igdb_id: g for g in candidates}
    for update in updates:
        by_igdb[update["igdb_id"]].parent_igdb_id = update["parent_igdb_id"]
    db.commit()
    logger.info("Parent backfill scanned %d games, linked %d", len(candidates), len(updates))
    return BackfillReport(scanned=len(candidates), updated=len(updates))


async def backfill_summaries(
    db: Session,
    client: IgdbClient,
    *,
    limit: object = 200,
    dry_run: bool = False,
) -> BackfillReport:
    """Fill in missing summaries for base games from IGDB."""
    candidates = db.scalars(
        sa.select(Game)
        .where(
            Game.summary.is_(None),
            Game.parent_igdb_id.is_(None),
            Game.igdb_id.is_not(None),
        )
        .order_by(Game.created_at.desc(), Game.id.desc())
        .limit(_backfill_limit(limit))
    ).all()
    if not candidates:
        return BackfillReport(dry_run=dry_run)

    summaries = await client.fetch_summaries([g.igdb_id for g in candidates if g.igdb_id])
    if dry_run:
        sample = [
            {"igdb_id": igdb_id, "summary": summary[:80] + "…"}
            for igdb_id, summary in list(summaries.items())[:SAMPLE_SIZE]
        ]
        return BackfillReport(
            scanned=len(candidates), updated=len(summaries), dry_run=True, sample=sample
        )

    updated = 0
    for game in candidates:
        summary = summaries.get(game.igdb_id or 0)
        if summary:
            game.summary = summary
            updated += 1
    db.commit()
    logger.info("Summary backfill scanned %d games, updated %d", len(candidates), updated)
    return BackfillReport(scanned=len(candidates), updated=updated)


async def seed_games(
    db: Session,
    client: IgdbClient,
    names: Sequence[str],
    *,
    throttle_seconds: float | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> list[dict[str, Any]]:
    """Look up each name on IGDB, keep the best match, and upsert the batch."""
    delay = settings.igdb_seed_throttle_seconds if throttle_seconds is None else throttle_seconds
    picked: list[IgdbGame] = []
    for name in names:
        best = pick_best_match(await client.search(str(name), 3))
        if best is not None:
            picked.append(best)
        if delay > 0:
            await sleep(delay)
    return upsert_games(db, picked)


def get_game(db: Session, game_id: int) -> Game | None:
    return db.get(Game, game_id)
