"""Optimistic state helpers used by :class:`gamebox.client.tab.TabSession`."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

S = TypeVar("S")
R = TypeVar("R")


class OptimisticToggle(Generic[S]):
    """Apply a tentative state, confirm it with the server's answer, or roll back.

    ``read`` and ``write`` access the piece of local state being toggled.
    """

    def __init__(self, read: Callable[[], S], write: Callable[[S], None]) -> None:
        self._read = read
        self._write = write

    async def run(self, tentative: S, request: Callable[[], Awaitable[S]]) -> S:
        previous = self._read()
        self._write(tentative)
        try:
            confirmed = await request()
        except Exception:
            self._write(previous)
            raise
        self._write(confirmed)
        return confirmed


class RequestGeneration:
    """Last-request-wins guard for overlapping searches and feed loads.

    Each call to :meth:`next` invalidates every earlier token, so a slow
    response that resolves after a newer request was issued is dropped.
    """

    def __init__(self) -> None:
        self._current = 0

    @property
    def current(self) -> int:
        return self._current

    def next(self) -> int:
        self._current += 1
        return self._current

    def is_current(self, token: int) -> bool:
        return token == self._current

    async def run(self, request: Callable[[], Awaitable[R]]) -> R | None:
        """Await ``request`` and return its result, or None if it went stale."""
        token = self.next()
        result = await request()
        return result if self.is_current(token) else None
