"""Per-tab client state with optimistic mutations and cross-tab merging."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from gamebox.client.api import GameboxClient
from gamebox.client.optimistic import OptimisticToggle, RequestGeneration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LikeState:
    liked: bool = False
    count: int = 0

    def flipped(self) -> LikeState:
        return LikeState(liked=not self.liked, count=max(0, self.count + (-1 if self.liked else 1)))


def review_key(review_user_id: str, game_id: int) -> str:
    return f"{review_user_id}:{game_id}"


@dataclass
class TabSession:
    """Local view of one open tab.

    Mutations show their result immediately, are confirmed against the
    server's answer, and roll back when the request fails. Broadcasts from
    the user's other tabs are merged with :meth:`apply_sync`.
    """

    client: GameboxClient
    post_likes: dict[str, LikeState] = field(default_factory=dict)
    review_likes: dict[str, LikeState] = field(default_factory=dict)
    following: set[str] = field(default_factory=set)
    muted: set[str] = field(default_factory=set)
    blocked: set[str] = field(default_factory=set)
    feed_generation: RequestGeneration = field(default_factory=RequestGeneration)
    search_generation: RequestGeneration = field(default_factory=RequestGeneration)

    @property
    def tab_id(self) -> str:
        return self.client.tab_id

    # Likes

    async def toggle_post_like(self, post_id: str) -> LikeState:
        current = self.post_likes.get(post_id, LikeState())

        def write(state: LikeState) -> None:
            self.post_likes[post_id] = state

        async def request() -> LikeState:
            data = await self.client.toggle_post_like(post_id)
            return LikeState(liked=bool(data["liked"]), count=int(data["count"]))

        toggle = OptimisticToggle(lambda: self.post_likes.get(post_id, LikeState()), write)
        return await toggle.run(current.flipped(), request)

    async def toggle_review_like(self, review_user_id: str, game_id: int) -> LikeState:
        key = review_key(review_user_id, game_id)
        current = self.review_likes.get(key, LikeState())

        def write(state: LikeState) -> None:
            self.review_likes[key] = state

        async def request() -> LikeState:
            data = await self.client.toggle_review_like(review_user_id, game_id)
            return LikeState(liked=bool(data["liked"]), count=int(data["count"]))

        toggle = OptimisticToggle(lambda: self.review_likes.get(key, LikeState()), write)
        return await toggle.run(current.flipped(), request)

    # Relationships

    def _membership(self, members: set[str], user_id: str) -> OptimisticToggle[bool]:
        def write(present: bool) -> None:
            if present:
                members.add(user_id)
            else:
                members.discard(user_id)

        return OptimisticToggle(lambda: user_id in members, write)

    async def set_following(self, user_id: str, follow: bool) -> bool:
        """Follow or unfollow; a server-side rejection rolls the change back."""

        async def request() -> bool:
            data = await (self.client.follow(user_id) if follow else self.client.unfollow(user_id))
            return bool(data["following"])

        return await self._membership(self.following, user_id).run(follow, request)

    async def set_muted(self, user_id: str, mute: bool) -> bool:
        async def request() -> bool:
            data = await (self.client.mute(user_id) if mute else self.client.unmute(user_id))
            return bool(data["muted"])

        return await self._membership(self.muted, user_id).run(mute, request)

    async def set_blocked(self, user_id: str, block: bool) -> bool:
        async def request() -> bool:
            data = await (self.client.block(user_id) if block else self.client.unblock(user_id))
            return data["block"] == "i-blocked"

        return await self._membership(self.blocked, user_id).run(block, request)

    # Cross-tab merge

    def apply_sync(self, message: dict[str, Any]) -> bool:
        """Merge a broadcast from another tab. Returns True when state changed.

        Messages this tab originated, and unknown kinds, are ignored.
        """
        if message.get("origin") == self.tab_id:
            return False
        payload = message.get("payload") or {}
        kind = payload.get("kind")

        if kind == "post-like" and payload.get("post_id"):
            self.post_likes[payload["post_id"]] = LikeState(
                liked=bool(payload.get("liked")), count=int(payload.get("count") or 0)
            )
            return True
        if kind == "review-like" and payload.get("review_user_id"):
            key = review_key(payload["review_user_id"], int(payload["game_id"]))
            self.review_likes[key] = LikeState(
                liked=bool(payload.get("liked")), count=int(payload.get("count") or 0)
            )
            return True
        for wanted, members, flag in (
            ("follow", self.following, "following"),
            ("mute", self.muted, "muted"),
            ("block", self.blocked, "blocked"),
        ):
            if kind == wanted and payload.get("user_id"):
                if payload.get(flag):
                    members.add(payload["user_id"])
                else:
                    members.discard(payload["user_id"])
                return True
        return False

    # Reads

    async def load_feed(self, **query: Any) -> dict[str, Any] | None:
        """Fetch a feed page; returns None when a newer load superseded this one."""
        page = await self.feed_generation.run(lambda: self.client.feed(**query))
        if page is None:
            return None
        for item in page.get("items", []):
            self.post_likes[item["id"]] = LikeState(
                liked=bool(item.get("liked")), count=int(item.get("like_count") or 0)
            )
        return page

    async def search(self, q: str) -> dict[str, Any] | None:
        return await self.search_generation.run(lambda: self.client.search(q))

    async def refresh(self) -> None:
        """Resynchronize from the server, e.g. when the tab regains focus."""
        self.following = set(await self.client.following_ids())
        if self.post_likes:
            likes = await self.client.post_likes(sorted(self.post_likes))
            for key, entry in likes.items():
                post_id = key.split(":", 1)[1]
                self.post_likes[post_id] = LikeState(
                    liked=bool(entry["liked"]), count=int(entry["count"])
                )
        if self.review_likes:
            pairs = []
            for key in self.review_likes:
                user_id, game_id = key.rsplit(":", 1)
                pairs.append((user_id, int(game_id)))
            state = await self.client.review_likes(pairs)
            liked = set(state.get("liked", []))
            counts = state.get("counts", {})
            for key in list(self.review_likes):
                self.review_likes[key] = LikeState(liked=key in liked, count=int(counts.get(key, 0)))
