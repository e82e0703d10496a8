# src/gamebox/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .game import BrowseResponse, GameCard, GameDetail
from .library import LibraryItemResponse, LibraryStatusUpdate
from .notification import NotificationResponse
from .post import CommentCreate, CommentResponse, PostCreate, PostResponse
from .review import ReviewResponse, ReviewUpsert
from .search import SearchResponse
from .user import MeResponse, TokenResponse, UserPreview, UserProfileResponse

__all__ = [
    "BrowseResponse", "GameCard", "GameDetail",
    "LibraryItemResponse", "LibraryStatusUpdate",
    "NotificationResponse",
    "CommentCreate", "CommentResponse", "PostCreate", "PostResponse",
    "ReviewResponse", "ReviewUpsert",
    "SearchResponse",
    "MeResponse", "TokenResponse", "UserPreview", "UserProfileResponse",
]
