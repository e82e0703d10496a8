# src/gamebox/api/v1/endpoints/feed.py
"""Feed endpoints. Failures degrade to an empty page, never a 5xx."""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Request

from gamebox.schemas.user import FollowingIdsResponse
from gamebox.services.feed import FeedQuery, empty_payload, get_feed
from gamebox.services.follows import list_following_ids

from ..dependencies import OptionalUserDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["feed"])


async def _read_json_object(request: Request) -> dict[str, Any]:
    """Parse the body as a JSON object; anything else is treated as ``{}``."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


@router.post("")
async def read_feed(request: Request, db: SessionDep, viewer: OptionalUserDep) -> dict[str, Any]:
    """Return one page of the feed.

    Body fields: ``tab`` (``following`` | ``for-you``), ``filter`` (``all`` |
    ``clips`` | ``reviews`` | ``screens``), ``cursor`` (``{id, created_at}``),
    ``limit`` (1-50). Unknown values fall back to defaults.
    """
    body = await _read_json_object(request)
    try:
        query = FeedQuery.from_raw(
            viewer_id=viewer.id if viewer else None,
            tab=body.get("tab"),
            filter=body.get("filter"),
            cursor=body.get("cursor"),
            limit=body.get("limit"),
        )
        result = get_feed(db, query)
    except Exception:
        logger.exception("[api/feed] unexpected failure body=%s", body)
        return empty_payload()

    if not result.success or result.data is None:
        logger.error("[api/feed] %s body=%s", result.error, body)
        return empty_payload()
    return result.data.to_payload()


@router.get("/following-ids", response_model=FollowingIdsResponse)
async def read_following_ids(db: SessionDep, viewer: OptionalUserDep) -> FollowingIdsResponse:
    """Ids the viewer follows; empty for anonymous viewers or on failure."""
    if viewer is None:
        return FollowingIdsResponse(ids=[])
    try:
        ids = list_following_ids(db, viewer.id)
    except Exception:
        logger.exception("[api/feed/following-ids] failed for %s", viewer.id)
        return FollowingIdsResponse(ids=[])
    return FollowingIdsResponse(ids=ids)
