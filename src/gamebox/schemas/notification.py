"""Notification schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationResponse(BaseModel):
    id: int
    type: str
    actor_id: str
    game_id: int | None = None
    post_id: str | None = None
    comment_id: str | None = None
    meta: dict[str, Any] | None = None
    created_at: datetime
    read_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class MarkReadRequest(BaseModel):
    ids: list[int] = Field(default_factory=list, max_length=500)


class UnreadCountResponse(BaseModel):
    unread: int
