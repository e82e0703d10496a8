# src/gamebox/models/user.py
"""SQLAlchemy models for user profiles and sign-in bookkeeping."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gamebox.db.session import Base
from gamebox.db.time import utcnow


def new_uuid() -> str:
    """Return a random UUID4 rendered as a string primary key."""
    return str(uuid.uuid4())


class Profile(Base):
    """Public profile created on first sign-in.

    The username stays null until onboarding picks one; it is stored lowercase.
    """

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    username: Mapped[str | None] = mapped_column(String(32), unique=True, nullable=True)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def label(self) -> str:
        """Return the best human-readable name for the profile."""
        return self.display_name or self.username or ""


class UsedMagicLink(Base):
    """Record indicating that a magic-link token has already been redeemed."""

    __tablename__ = "used_magic_links"

    jti: Mapped[str] = mapped_column(String(64), primary_key=True)
    used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
