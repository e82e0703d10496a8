# src/gamebox/api/v1/endpoints/notifications.py
"""Notification inbox for the signed-in user."""

from __future__ import annotations

from fastapi import APIRouter, Query

from gamebox.models import Notification
from gamebox.schemas.notification import (
    MarkReadRequest,
    NotificationResponse,
    UnreadCountResponse,
)
from gamebox.services.notifications import (
    get_unread_count,
    list_notifications,
    mark_all_read,
    mark_read,
)
from gamebox.services.sync import KIND_NOTIFICATIONS

from ..dependencies import CurrentUserDep, SessionDep, SyncBusDep, TabIdDep

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def read_notifications(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(50, ge=1, le=100),
    unread: bool = Query(False, description="Only return unread notifications"),
) -> list[Notification]:
    return list_notifications(db, current_user.id, limit=limit, unread_only=unread)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def read_unread_count(current_user: CurrentUserDep, db: SessionDep) -> UnreadCountResponse:
    return UnreadCountResponse(unread=get_unread_count(db, current_user.id))


@router.post("/read", response_model=UnreadCountResponse)
async def mark_notifications_read(
    payload: MarkReadRequest,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
) -> UnreadCountResponse:
    """Mark some notifications read and return the remaining unread count."""
    if mark_read(db, current_user.id, payload.ids):
        unread = get_unread_count(db, current_user.id)
        bus.publish_to_user(current_user.id, tab_id, KIND_NOTIFICATIONS, unread=unread)
        return UnreadCountResponse(unread=unread)
    return UnreadCountResponse(unread=get_unread_count(db, current_user.id))


@router.post("/read-all", response_model=UnreadCountResponse)
async def mark_all_notifications_read(
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
) -> UnreadCountResponse:
    if mark_all_read(db, current_user.id):
        bus.publish_to_user(current_user.id, tab_id, KIND_NOTIFICATIONS, unread=0)
    return UnreadCountResponse(unread=0)
