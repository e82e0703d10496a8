# src/gamebox/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    feed_router,
    games_router,
    library_router,
    maintenance_router,
    notifications_router,
    posts_router,
    reviews_router,
    search_router,
    sidebar_router,
    sync_router,
    users_router,
)

ROUTERS = (
    auth_router,
    feed_router,
    posts_router,
    reviews_router,
    games_router,
    library_router,
    users_router,
    notifications_router,
    search_router,
    sidebar_router,
    maintenance_router,
    sync_router,
)

__all__ = [
    "ROUTERS",
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
