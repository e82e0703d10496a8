"""In-process publish/subscribe used to fan state changes out to open tabs.

Each signed-in user has a channel (``user:<id>``). Mutating endpoints publish
the new state after the change is committed, tagged with the originating tab
id; subscribers never receive messages from their own origin. Delivery is
best effort and unordered across publishers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock
from typing import Any

from gamebox.db.time import utcnow

logger = logging.getLogger(__name__)

KIND_POST_LIKE = "post-like"
KIND_REVIEW_LIKE = "review-like"
KIND_FOLLOW = "follow"
KIND_MUTE = "mute"
KIND_BLOCK = "block"
KIND_COMMENT = "comment"
KIND_NOTIFICATIONS = "notifications"


def user_channel(user_id: str) -> str:
    return f"user:{user_id}"


@dataclass(frozen=True)
class SyncMessage:
    channel: str
    origin: str | None
    payload: dict[str, Any]
    sent_at: datetime = field(default_factory=utcnow)

    @property
    def kind(self) -> str | None:
        return self.payload.get("kind")

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel": self.channel,
            "origin": self.origin,
            "payload": self.payload,
            "sent_at": self.sent_at.isoformat(),
        }


SyncHandler = Callable[[SyncMessage], None]


@dataclass(frozen=True)
class Subscription:
    """Handle returned by :meth:`SyncBus.subscribe`; pass it back to unsubscribe."""

    channel: str
    origin: str | None
    handler: SyncHandler
    token: int


class SyncBus:
    """Thread-safe fan-out of :class:`SyncMessage` objects to channel subscribers."""

    def __init__(self) -> None:
        self._subscribers: dict[str, dict[int, Subscription]] = {}
        self._lock = Lock()
        self._next_token = 0

    def subscribe(self, channel: str, handler: SyncHandler, *, origin: str | None = None) -> Subscription:
        with self._lock:
            self._next_token += 1
            subscription = Subscription(channel, origin, handler, self._next_token)
            self._subscribers.setdefault(channel, {})[subscription.token] = subscription
            return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            bucket = self._subscribers.get(subscription.channel)
            if not bucket:
                return
            bucket.pop(subscription.token, None)
            if not bucket:
                self._subscribers.pop(subscription.channel, None)

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subscribers.get(channel, {}))

    def publish(self, channel: str, origin: str | None, payload: dict[str, Any]) -> int:
        """Deliver ``payload`` to every subscriber of ``channel`` except ``origin``.

        Returns the number of handlers that received the message.
        """
        message = SyncMessage(channel=channel, origin=origin, payload=dict(payload))
        with self._lock:
            targets = list(self._subscribers.get(channel, {}).values())
        delivered = 0
        for subscription in targets:
            if origin is not None and subscription.origin == origin:
                continue
            try:
                subscription.handler(message)
            except Exception:
                logger.exception("Sync handler failed on %s", channel)
                continue
            delivered += 1
        return delivered

    def publish_to_user(
        self,
        user_id: str,
        origin: str | None,
        kind: str,
        /,
        **data: Any,
    ) -> int:
        return self.publish(user_channel(user_id), origin, {"kind": kind, **data})


_BUS = SyncBus()


def get_sync_bus() -> SyncBus:
    """Return the process-wide sync bus."""
    return _BUS
