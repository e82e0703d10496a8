# src/gamebox/models/post.py
"""SQLAlchemy models for posts, likes and comments."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from gamebox.db.session import Base
from gamebox.db.time import utcnow
from gamebox.models.user import new_uuid


class Post(Base):
    """Text/media update published by a user.

    ``like_count`` and ``comment_count`` are denormalized and always re-derived
    from the like/comment tables after a mutation.
    """

    __tablename__ = "posts"
    __table_args__ = (
        # Keyset pagination walks (created_at DESC, id DESC).
        Index("ix_posts_created_at_id", "created_at", "id"),
        Index("ix_posts_user_id", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    media_urls: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    game_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("games.id", ondelete="SET NULL"), nullable=True
    )
    like_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class PostLike(Base):
    """Per-user like on a post; the composite key prevents double likes."""

    __tablename__ = "post_likes"

    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class PostComment(Base):
    """Comment attached to a post."""

    __tablename__ = "post_comments"
    __table_args__ = (Index("ix_post_comments_post_id_created_at", "post_id", "created_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    post_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ReviewLike(Base):
    """Like on a review, keyed by the review's (user, game) pair."""

    __tablename__ = "likes"
    __table_args__ = (Index("ix_likes_review", "review_user_id", "game_id"),)

    liker_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    review_user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    game_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class ReviewComment(Base):
    """Comment attached to a review."""

    __tablename__ = "review_comments"
    __table_args__ = (
        Index("ix_review_comments_review", "review_user_id", "game_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    review_user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    game_id: Mapped[int] = mapped_column(Integer, nullable=False)
    commenter_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
