"""Mute relationships and the short-lived per-viewer mute cache."""

from __future__ import annotations

import time
from collections.abc import Callable
from threading import Lock

import sqlalchemy as sa
from sqlalchemy.orm import Session

from gamebox.core.settings import settings
from gamebox.models import Mute
from gamebox.services.result import MutationOutcome
from gamebox.services.store import delete_where, insert_once


class MuteCache:
    """Cache each viewer's muted ids for a few seconds."""

    def __init__(
        self,
        ttl_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, frozenset[str]]] = {}
        self._lock = Lock()

    def get(self, viewer_id: str) -> frozenset[str] | None:
        with self._lock:
            entry = self._entries.get(viewer_id)
            if entry is None:
                return None
            stored_at, ids = entry
            if self._clock() - stored_at > self._ttl:
                self._entries.pop(viewer_id, None)
                return None
            return ids

    def put(self, viewer_id: str, ids: frozenset[str]) -> None:
        with self._lock:
            self._entries[viewer_id] = (self._clock(), ids)

    def invalidate(self, viewer_id: str | None = None) -> None:
        """Drop one viewer's entry, or everything when ``viewer_id`` is None."""
        with self._lock:
            if viewer_id is None:
                self._entries.clear()
            else:
                self._entries.pop(viewer_id, None)


_MUTE_CACHE = MuteCache(settings.mute_cache_ttl_seconds)


def get_mute_cache() -> MuteCache:
    return _MUTE_CACHE


def get_mute_set(
    db: Session,
    viewer_id: str | None,
    *,
    force: bool = False,
    cache: MuteCache | None = None,
) -> frozenset[str]:
    """Return the ids ``viewer_id`` has muted, served from cache when fresh."""
    if not viewer_id:
        return frozenset()
    cache = cache or _MUTE_CACHE
    if not force:
        cached = cache.get(viewer_id)
        if cached is not None:
            return cached
    ids = frozenset(
        db.scalars(sa.select(Mute.muted_id).where(Mute.user_id == viewer_id)).all()
    )
    cache.put(viewer_id, ids)
    return ids


def is_muted(db: Session, viewer_id: str, target_id: str) -> bool:
    return target_id in get_mute_set(db, viewer_id)


def mute_user(db: Session, user_id: str, target_id: str) -> MutationOutcome:
    """Mute ``target_id`` for ``user_id``; repeating the call is a no-op."""
    if user_id == target_id:
        return MutationOutcome(ok=False, error="You cannot mute yourself")
    insert_once(db, Mute, user_id=user_id, muted_id=target_id)
    _MUTE_CACHE.invalidate(user_id)
    return MutationOutcome(ok=True)


def unmute_user(db: Session, user_id: str, target_id: str) -> MutationOutcome:
    delete_where(db, Mute, Mute.user_id == user_id, Mute.muted_id == target_id)
    _MUTE_CACHE.invalidate(user_id)
    return MutationOutcome(ok=True)
