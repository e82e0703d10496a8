# src/gamebox/api/v1/endpoints/search.py
"""Combined user and game search."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from gamebox.schemas.search import SearchResponse
from gamebox.services.search import parse_query, search

from ..dependencies import SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def run_search(
    db: SessionDep,
    q: str = Query("", max_length=200, description="Prefix with @ or user:/game: to scope"),
    limit: int = Query(8, ge=1, le=25),
) -> SearchResponse:
    """Search people and titles. Errors degrade to an empty result."""
    try:
        results = search(db, q, limit=limit)
    except Exception:
        logger.exception("[api/search] failed q=%r", q)
        db.rollback()
        parsed = parse_query(q)
        return SearchResponse(q=parsed.q, scope=parsed.scope)
    return SearchResponse.model_validate(results)
