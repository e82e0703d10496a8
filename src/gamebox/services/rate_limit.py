"""Fixed-window rate limiting for write actions.

Counters live in Redis (``INCR`` + ``EXPIRE`` per ``(user, action)`` key)
when ``REDIS_URL`` is configured. Without Redis, or once Redis errors, the
limiter counts in process memory and evicts windows that have closed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from threading import Lock
from typing import Any

import redis

from gamebox.core.settings import settings

logger = logging.getLogger(__name__)

KEY_PREFIX = "ratelimit"


class RateLimiter:
    """Count actions per (user, action) inside fixed time windows."""

    def __init__(
        self,
        limits: Mapping[str, int],
        window_seconds: int,
        *,
        redis_client: Any = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._limits = dict(limits)
        self._window = window_seconds
        self._redis = redis_client
        self._clock = clock
        self._counters: dict[tuple[str, str], list[float]] = {}
        self._last_sweep = clock()
        self._lock = Lock()

    @property
    def uses_redis(self) -> bool:
        return self._redis is not None

    def hit(self, user_id: str, action: str) -> bool:
        """Record one action; return False when the caller is over the limit.

        Actions without a configured limit are always allowed.
        """
        limit = self._limits.get(action)
        if limit is None:
            return True
        if self._redis is not None:
            try:
                return self._hit_redis(user_id, action, limit)
            except redis.RedisError as exc:
                logger.warning("Redis rate limiting unavailable, counting in memory: %s", exc)
                self._redis = None
        return self._hit_memory(user_id, action, limit)

    def _hit_redis(self, user_id: str, action: str, limit: int) -> bool:
        key = f"{KEY_PREFIX}:{action}:{user_id}"
        pipe = self._redis.pipeline()
        pipe.incr(key)
        pipe.expire(key, self._window, nx=True)
        count = int(pipe.execute()[0])
        return count <= limit

    def _hit_memory(self, user_id: str, action: str, limit: int) -> bool:
        now = self._clock()
        key = (user_id, action)
        with self._lock:
            if now - self._last_sweep >= self._window:
                self._evict_expired(now)
            entry = self._counters.get(key)
            if entry is None or now - entry[0] >= self._window:
                self._counters[key] = [now, 1]
                return True
            if entry[1] >= limit:
                return False
            entry[1] += 1
            return True

    def _evict_expired(self, now: float) -> None:
        expired = [key for key, entry in self._counters.items() if now - entry[0] >= self._window]
        for key in expired:
            del self._counters[key]
        self._last_sweep = now

    def tracked_keys(self) -> int:
        """Number of in-memory windows currently held."""
        with self._lock:
            return len(self._counters)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._last_sweep = self._clock()


def connect_redis(url: str | None) -> Any:
    """Build a Redis client for ``url``, or None when no URL is configured."""
    if not url:
        return None
    return redis.from_url(url)


_LIMITER: RateLimiter | None = None
_LIMITER_LOCK = Lock()


def get_rate_limiter() -> RateLimiter:
    """Return the process-wide rate limiter."""
    global _LIMITER
    with _LIMITER_LOCK:
        if _LIMITER is None:
            _LIMITER = RateLimiter(
                settings.rate_limits,
                settings.rate_limit_window_seconds,
                redis_client=connect_redis(settings.redis_url),
            )
        return _LIMITER
