# src/gamebox/models/game.py
"""SQLAlchemy models for games, reviews and per-user library entries."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from gamebox.db.session import Base
from gamebox.db.time import utcnow

LIBRARY_STATUSES: tuple[str, ...] = ("Backlog", "Playing", "Completed", "Dropped")


class Game(Base):
    """Game metadata mirrored from IGDB.

    Rows with ``parent_igdb_id`` set are editions or variants of a canonical
    base game and are hidden from browse and search.
    """

    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    igdb_id: Mapped[int | None] = mapped_column(BigInteger, unique=True, nullable=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    cover_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    release_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    aliases: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    popularity: Mapped[float | None] = mapped_column(Float, nullable=True)
    parent_igdb_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    preview: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class Review(Base):
    """One review per (user, game); rating is stored on a 0-100 scale."""

    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating >= 0 AND rating <= 100", name="ck_reviews_rating_range"),
        Index("ix_reviews_game_id", "game_id"),
    )

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    @property
    def stars(self) -> float:
        """Return the rating on the 0-5 star display scale."""
        return self.rating / 20


class LibraryEntry(Base):
    """Per-user library status for a game."""

    __tablename__ = "library"
    __table_args__ = (
        CheckConstraint(
            "status IN ('Backlog', 'Playing', 'Completed', 'Dropped')",
            name="ck_library_status",
        ),
    )

    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="CASCADE"), primary_key=True
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


def game_row(game: Game) -> dict[str, Any]:
    """Return the compact card representation used by browse and search."""
    return {
        "id": game.id,
        "igdb_id": game.igdb_id,
        "name": game.name,
        "cover_url": game.cover_url,
        "release_year": game.release_year,
        "parent_igdb_id": game.parent_igdb_id,
        "preview": game.preview,
    }
