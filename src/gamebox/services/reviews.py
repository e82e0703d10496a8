"""Game reviews: one per user and game, rated 0-100."""

from __future__ import annotations

from collections.abc import Iterable

import sqlalchemy as sa
from sqlalchemy.orm import Session

from gamebox.db.time import utcnow
from gamebox.models import Game, Review
from gamebox.services.result import MutationOutcome

MIN_RATING = 0
MAX_RATING = 100


def rating_to_stars(rating: int) -> float:
    return rating / 20


def get_review(db: Session, user_id: str, game_id: int) -> Review | None:
    return db.get(Review, (user_id, game_id))


def upsert_review(
    db: Session,
    user_id: str,
    game_id: int,
    rating: int,
    body: str | None = None,
) -> MutationOutcome:
    """Create or replace ``user_id``'s review of ``game_id``."""
    if not MIN_RATING <= rating <= MAX_RATING:
        return MutationOutcome(ok=False, error="Rating must be between 0 and 100")
    if db.get(Game, game_id) is None:
        return MutationOutcome(ok=False, error="Game not found")
    text = (body or "").strip() or None
    review = db.get(Review, (user_id, game_id))
    created = review is None
    if review is None:
        db.add(Review(user_id=user_id, game_id=game_id, rating=rating, body=text))
    else:
        review.rating = rating
        review.body = text
        review.updated_at = utcnow()
    db.commit()
    return MutationOutcome(ok=True, extra={"created": created})


def delete_review(db: Session, user_id: str, game_id: int) -> MutationOutcome:
    db.execute(sa.delete(Review).where(Review.user_id == user_id, Review.game_id == game_id))
    db.commit()
    return MutationOutcome(ok=True)


def fetch_user_ratings_map(
    db: Session,
    user_id: str | None,
    game_ids: Iterable[int],
) -> dict[int, int]:
    """Map game id to ``user_id``'s rating for the games they reviewed."""
    ids = set(game_ids)
    if not user_id or not ids:
        return {}
    rows = db.execute(
        sa.select(Review.game_id, Review.rating).where(
            Review.user_id == user_id, Review.game_id.in_(ids)
        )
    ).all()
    return {game_id: rating for game_id, rating in rows}


def list_game_reviews(db: Session, game_id: int, *, limit: int = 50) -> list[Review]:
    stmt = (
        sa.select(Review)
        .where(Review.game_id == game_id)
        .order_by(Review.updated_at.desc())
        .limit(max(1, min(limit, 100)))
    )
    return list(db.scalars(stmt))


def get_rating_summary(db: Session, game_id: int) -> tuple[float | None, int]:
    """Return ``(average rating, review count)`` for a game."""
    average, total = db.execute(
        sa.select(sa.func.avg(Review.rating), sa.func.count(Review.user_id)).where(
            Review.game_id == game_id
        )
    ).one()
    return (float(average) if average is not None else None, int(total or 0))
