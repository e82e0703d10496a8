# src/gamebox/api/v1/endpoints/games.py
"""Game catalogue, IGDB search and per-game review endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response, status

from gamebox.models import Game, Review
from gamebox.schemas.game import BrowseResponse, GameDetail
from gamebox.schemas.review import ReviewResponse, ReviewUpsert
from gamebox.services.games import (
    browse_games,
    clamp_browse_limit,
    clamp_since_days,
    get_game,
    parse_sections,
    upsert_games,
)
from gamebox.services.igdb import MAX_SEARCH_LIMIT, IgdbError
from gamebox.services.library import get_library_status
from gamebox.services.reviews import (
    delete_review,
    get_rating_summary,
    get_review,
    list_game_reviews,
    upsert_review,
)

from ..dependencies import CurrentUserDep, IgdbClientDep, OptionalUserDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/games", tags=["games"])


@router.get("/browse", response_model=BrowseResponse)
async def browse(
    db: SessionDep,
    sections: str | None = Query(None, description="Comma separated: trending,new,top"),
    limit: str | None = Query(None),
    since_days: str | None = Query(None, alias="sinceDays"),
) -> dict[str, Any]:
    """Browse sections. A failed query yields empty sections rather than an error."""
    wanted = parse_sections(sections)
    try:
        result = browse_games(
            db,
            wanted,
            limit=clamp_browse_limit(limit),
            since_days=clamp_since_days(since_days),
        )
    except Exception:
        logger.exception("[api/games/browse] failed sections=%s", wanted)
        db.rollback()
        result = {section: [] for section in wanted}
    return {"sections": result}


@router.get("/igdb-search")
async def igdb_search(
    db: SessionDep,
    igdb: IgdbClientDep,
    q: str = Query("", max_length=200),
    limit: int = Query(10, ge=1, le=MAX_SEARCH_LIMIT),
) -> dict[str, list[dict[str, Any]]]:
    """Search IGDB and cache the hits locally. Upstream failures return no items."""
    term = q.strip()
    if not term:
        return {"items": []}
    try:
        hits = await igdb.search(term, limit)
    except IgdbError as exc:
        logger.warning("[api/games/igdb-search] q=%r failed: %s", term, exc)
        return {"items": []}
    return {"items": upsert_games(db, hits)}


@router.get("/{game_id}", response_model=GameDetail)
async def read_game(game_id: int, db: SessionDep, viewer: OptionalUserDep) -> GameDetail:
    game = get_game(db, game_id)
    if game is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    average, count = get_rating_summary(db, game_id)
    my_review = get_review(db, viewer.id, game_id) if viewer else None
    return GameDetail(
        id=game.id,
        igdb_id=game.igdb_id,
        name=game.name,
        cover_url=game.cover_url,
        release_year=game.release_year,
        parent_igdb_id=game.parent_igdb_id,
        preview=game.preview,
        summary=game.summary,
        aliases=list(game.aliases or []),
        average_rating=average,
        review_count=count,
        my_status=get_library_status(db, viewer.id, game_id) if viewer else None,
        my_rating=my_review.rating if my_review else None,
    )


@router.get("/{game_id}/reviews", response_model=list[ReviewResponse])
async def read_game_reviews(
    game_id: int,
    db: SessionDep,
    limit: int = Query(50, ge=1, le=100),
) -> list[Review]:
    if db.get(Game, game_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return list_game_reviews(db, game_id, limit=limit)


@router.put("/{game_id}/review", response_model=ReviewResponse)
async def put_review(
    game_id: int,
    payload: ReviewUpsert,
    response: Response,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Review:
    """Create or replace the caller's review of a game."""
    outcome = upsert_review(db, current_user.id, game_id, payload.rating, payload.body)
    if outcome.error == "Game not found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=outcome.error)
    if not outcome.ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.error)
    if outcome.extra.get("created"):
        response.status_code = status.HTTP_201_CREATED
    return get_review(db, current_user.id, game_id)  # type: ignore[return-value]


@router.delete("/{game_id}/review", status_code=status.HTTP_204_NO_CONTENT)
async def remove_review(game_id: int, current_user: CurrentUserDep, db: SessionDep) -> Response:
    delete_review(db, current_user.id, game_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
