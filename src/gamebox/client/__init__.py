"""Async client for the Gamebox API with per-tab optimistic state."""

from .api import GameboxApiError, GameboxClient, new_tab_id
from .optimistic import OptimisticToggle, RequestGeneration
from .tab import LikeState, TabSession

__all__ = [
    "GameboxApiError",
    "GameboxClient",
    "LikeState",
    "OptimisticToggle",
    "RequestGeneration",
    "TabSession",
    "new_tab_id",
]
