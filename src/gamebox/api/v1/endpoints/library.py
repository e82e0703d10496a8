# src/gamebox/api/v1/endpoints/library.py
"""The signed-in user's game library."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from gamebox.schemas.library import (
    LibraryItemResponse,
    LibraryStatusResponse,
    LibraryStatusUpdate,
)
from gamebox.services.library import (
    get_library_status,
    list_library,
    remove_from_library,
    set_library_status,
)

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/library", tags=["library"])


@router.get("", response_model=list[LibraryItemResponse])
async def read_library(
    current_user: CurrentUserDep,
    db: SessionDep,
    sort: str = Query("recent", description="recent, az, za, status, ratingHigh or ratingLow"),
    status_filter: str | None = Query(None, alias="status"),
) -> list[LibraryItemResponse]:
    items = list_library(db, current_user.id, sort=sort, status=status_filter)
    return [LibraryItemResponse.model_validate(item) for item in items]


@router.get("/{game_id}", response_model=LibraryStatusResponse)
async def read_library_status(
    game_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> LibraryStatusResponse:
    return LibraryStatusResponse(
        game_id=game_id,
        status=get_library_status(db, current_user.id, game_id),  # type: ignore[arg-type]
    )


@router.put("/{game_id}", response_model=LibraryStatusResponse)
async def update_library_status(
    game_id: int,
    payload: LibraryStatusUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> LibraryStatusResponse:
    """Add a game to the library or move it to another shelf."""
    outcome = set_library_status(db, current_user.id, game_id, payload.status)
    if outcome.error == "Game not found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=outcome.error)
    if not outcome.ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.error)
    return LibraryStatusResponse(game_id=game_id, status=payload.status)


@router.delete("/{game_id}", response_model=LibraryStatusResponse)
async def delete_library_entry(
    game_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> LibraryStatusResponse:
    remove_from_library(db, current_user.id, game_id)
    return LibraryStatusResponse(game_id=game_id, status=None)
