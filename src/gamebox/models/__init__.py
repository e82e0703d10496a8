# src/gamebox/models/__init__.py
"""SQLAlchemy models for the Gamebox application."""

from .game import LIBRARY_STATUSES, Game, LibraryEntry, Review
from .notification import NOTIFICATION_TYPES, Notification
from .post import Post, PostComment, PostLike, ReviewComment, ReviewLike
from .social import Block, Follow, Mute
from .user import Profile, UsedMagicLink

__all__ = [
    "Game", "LibraryEntry", "Review", "LIBRARY_STATUSES",
    "Notification", "NOTIFICATION_TYPES",
    "Post", "PostComment", "PostLike", "ReviewComment", "ReviewLike",
    "Block", "Follow", "Mute",
    "Profile", "UsedMagicLink",
]
