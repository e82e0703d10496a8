# src/gamebox/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .feed import router as feed_router
from .games import router as games_router
from .library import router as library_router
from .maintenance import router as maintenance_router
from .notifications import router as notifications_router
from .posts import router as posts_router
from .reviews import router as reviews_router
from .search import router as search_router
from .sidebar import router as sidebar_router
from .sync import router as sync_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "feed_router",
    "posts_router",
    "reviews_router",
    "games_router",
    "library_router",
    "users_router",
    "notifications_router",
    "search_router",
    "sidebar_router",
    "maintenance_router",
    "sync_router",
]
