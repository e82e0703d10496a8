# src/gamebox/models/notification.py
"""Notification rows created as side effects of likes, comments and follows."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from gamebox.db.session import Base
from gamebox.db.time import utcnow

NOTIFICATION_TYPES: tuple[str, ...] = ("like", "comment", "follow")


class Notification(Base):
    """Notification addressed to ``user_id`` about an action by ``actor_id``."""

    __tablename__ = "notifications"
    __table_args__ = (
        Index("ix_notifications_user_unread", "user_id", "read_at"),
        # Nullable target columns make a unique index useless for dedup; the
        # service checks for an identical event before inserting.
        Index("ix_notifications_event", "type", "user_id", "actor_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    actor_id: Mapped[str] = mapped_column(String(36), nullable=False)
    game_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    post_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    comment_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
