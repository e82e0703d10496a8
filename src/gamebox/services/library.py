"""Per-user game library: status tracking and sortable listings."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from gamebox.db.time import as_utc, utcnow
from gamebox.models import LIBRARY_STATUSES, Game, LibraryEntry, Review
from gamebox.services.result import MutationOutcome, is_unique_violation

SORT_KEYS: tuple[str, ...] = ("recent", "az", "za", "status", "ratingHigh", "ratingLow")
STATUS_RANK: dict[str, int] = {"Playing": 0, "Backlog": 1, "Completed": 2, "Dropped": 3}


@dataclass(frozen=True)
class LibraryItem:
    game_id: int
    name: str
    cover_url: str | None
    release_year: int | None
    status: str
    updated_at: datetime
    rating: int | None = None


def _name_key(item: LibraryItem) -> str:
    return item.name.lower()


def apply_sort(items: Sequence[LibraryItem], sort: str) -> list[LibraryItem]:
    """Order library items; unknown sort keys leave the order unchanged.

    Missing ratings sort last in both rating orders.
    """
    rows = list(items)
    if sort == "recent":
        return sorted(rows, key=lambda r: r.updated_at, reverse=True)
    if sort == "az":
        return sorted(rows, key=_name_key)
    if sort == "za":
        return sorted(rows, key=_name_key, reverse=True)
    if sort == "status":
        return sorted(rows, key=lambda r: (STATUS_RANK.get(r.status, 999), _name_key(r)))
    if sort == "ratingHigh":
        return sorted(
            rows, key=lambda r: (-(r.rating if r.rating is not None else -1), _name_key(r))
        )
    if sort == "ratingLow":
        return sorted(rows, key=lambda r: (r.rating if r.rating is not None else 101, _name_key(r)))
    return rows


def get_library_status(db: Session, user_id: str, game_id: int) -> str | None:
    entry = db.get(LibraryEntry, (user_id, game_id))
    return entry.status if entry else None


def set_library_status(db: Session, user_id: str, game_id: int, status: str) -> MutationOutcome:
    """Upsert the library status for ``(user_id, game_id)``."""
    if status not in LIBRARY_STATUSES:
        return MutationOutcome(ok=False, error=f"Unknown status: {status}")
    if db.get(Game, game_id) is None:
        return MutationOutcome(ok=False, error="Game not found")
    entry = db.get(LibraryEntry, (user_id, game_id))
    if entry is None:
        db.add(LibraryEntry(user_id=user_id, game_id=game_id, status=status, updated_at=utcnow()))
    else:
        entry.status = status
        entry.updated_at = utcnow()
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if not is_unique_violation(exc):
            raise
        db.execute(
            sa.update(LibraryEntry)
            .where(LibraryEntry.user_id == user_id, LibraryEntry.game_id == game_id)
            .values(status=status, updated_at=utcnow())
        )
        db.commit()
    return MutationOutcome(ok=True)


def remove_from_library(db: Session, user_id: str, game_id: int) -> MutationOutcome:
    db.execute(
        sa.delete(LibraryEntry).where(
            LibraryEntry.user_id == user_id, LibraryEntry.game_id == game_id
        )
    )
    db.commit()
    return MutationOutcome(ok=True)


def list_library(
    db: Session,
    user_id: str,
    *,
    sort: str = "recent",
    status: str | None = None,
) -> list[LibraryItem]:
    """Return ``user_id``'s library with their own rating for each game."""
    stmt = (
        sa.select(LibraryEntry, Game, Review.rating)
        .join(Game, Game.id == LibraryEntry.game_id)
        .outerjoin(
            Review,
            sa.and_(Review.user_id == LibraryEntry.user_id, Review.game_id == LibraryEntry.game_id),
        )
        .where(LibraryEntry.user_id == user_id)
    )
    if status in LIBRARY_STATUSES:
        stmt = stmt.where(LibraryEntry.status == status)
    items = [
        LibraryItem(
            game_id=game.id,
            name=game.name,
            cover_url=game.cover_url,
            release_year=game.release_year,
            status=entry.status,
            updated_at=as_utc(entry.updated_at),
            rating=rating,
        )
        for entry, game, rating in db.execute(stmt).all()
    ]
    return apply_sort(items, sort if sort in SORT_KEYS else "recent")
