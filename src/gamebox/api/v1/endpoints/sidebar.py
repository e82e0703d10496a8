# src/gamebox/api/v1/endpoints/sidebar.py
"""Home sidebar: continue playing, who to follow and trending topics."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter

from gamebox.services.sidebar import Sidebar, get_sidebar

from ..dependencies import OptionalUserDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sidebar", tags=["sidebar"])


@router.get("")
async def read_sidebar(db: SessionDep, viewer: OptionalUserDep) -> dict[str, Any]:
    result = get_sidebar(db, viewer.id if viewer else None)
    if not result.success or result.data is None:
        logger.error("[api/sidebar] %s", result.error)
        return Sidebar().to_payload()
    return result.data.to_payload()
