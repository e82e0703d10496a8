# src/gamebox/services/__init__.py
"""Data-access and integration services for the Gamebox application."""

from .igdb import IgdbClient, IgdbConfigError, IgdbError, get_igdb_client
from .rate_limit import RateLimiter, get_rate_limiter
from .result import DataServiceError, MutationOutcome, ServiceResult, is_unique_violation
from .sync import SyncBus, SyncMessage, get_sync_bus

__all__ = [
    "IgdbClient",
    "IgdbConfigError",
    "IgdbError",
    "get_igdb_client",
    "RateLimiter",
    "get_rate_limiter",
    "DataServiceError",
    "MutationOutcome",
    "ServiceResult",
    "is_unique_violation",
    "SyncBus",
    "SyncMessage",
    "get_sync_bus",
]
