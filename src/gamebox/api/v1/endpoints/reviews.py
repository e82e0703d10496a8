# src/gamebox/api/v1/endpoints/reviews.py
"""Review like and review comment endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.orm import Session

from gamebox.models import Review
from gamebox.schemas.post import CommentCreate, CommentResponse, LikeToggleResponse
from gamebox.schemas.review import ReviewLikesResponse, ReviewPairsRequest
from gamebox.services.comments import (
    add_review_comment,
    fetch_review_comment_counts_bulk,
    list_review_comments,
)
from gamebox.services.likes import get_like_state_for_pairs, toggle_like
from gamebox.services.sync import KIND_COMMENT, KIND_REVIEW_LIKE

from ..dependencies import (
    CurrentUserDep,
    OptionalUserDep,
    RateLimiterDep,
    SessionDep,
    SyncBusDep,
    TabIdDep,
    enforce_rate_limit,
)
from .posts import comment_payloads

router = APIRouter(prefix="/reviews", tags=["reviews"])


def _get_review_or_404(db: Session, user_id: str, game_id: int) -> Review:
    review = db.get(Review, (user_id, game_id))
    if review is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    return review


@router.post("/likes", response_model=ReviewLikesResponse)
async def read_review_likes(
    payload: ReviewPairsRequest,
    db: SessionDep,
    viewer: OptionalUserDep,
) -> ReviewLikesResponse:
    """Bulk like state for reviews, keyed by ``<user_id>:<game_id>``."""
    liked, counts = get_like_state_for_pairs(
        db,
        viewer.id if viewer else None,
        [(pair.user_id, pair.game_id) for pair in payload.pairs],
    )
    return ReviewLikesResponse(liked=sorted(liked), counts=counts)


@router.post("/comment-counts")
async def read_review_comment_counts(
    payload: ReviewPairsRequest,
    db: SessionDep,
) -> dict[str, dict[str, int]]:
    pairs = [(pair.user_id, pair.game_id) for pair in payload.pairs]
    return {"counts": fetch_review_comment_counts_bulk(db, pairs)}


@router.post("/{user_id}/{game_id}/like", response_model=LikeToggleResponse)
async def toggle_review_like(
    user_id: str,
    game_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
    limiter: RateLimiterDep,
) -> LikeToggleResponse:
    enforce_rate_limit(limiter, current_user, "reaction")
    result = toggle_like(db, current_user.id, user_id, game_id)
    if result.error == "Review not found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    if result.error:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error)

    bus.publish_to_user(
        current_user.id,
        tab_id,
        KIND_REVIEW_LIKE,
        review_user_id=user_id,
        game_id=game_id,
        liked=result.liked,
        count=result.count,
    )
    return LikeToggleResponse(liked=result.liked, count=result.count)


@router.get("/{user_id}/{game_id}/comments", response_model=list[CommentResponse])
async def read_review_comments(
    user_id: str,
    game_id: int,
    db: SessionDep,
    before: datetime | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
) -> list[CommentResponse]:
    _get_review_or_404(db, user_id, game_id)
    comments = list_review_comments(db, user_id, game_id, before=before, limit=limit)
    return comment_payloads(db, comments)


@router.post(
    "/{user_id}/{game_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_review_comment(
    user_id: str,
    game_id: int,
    payload: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
    limiter: RateLimiterDep,
) -> CommentResponse:
    enforce_rate_limit(limiter, current_user, "create_comment")
    _get_review_or_404(db, user_id, game_id)
    outcome = add_review_comment(db, current_user.id, user_id, game_id, payload.body)
    if not outcome.ok or outcome.comment is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.error)
    bus.publish_to_user(
        current_user.id,
        tab_id,
        KIND_COMMENT,
        review_user_id=user_id,
        game_id=game_id,
        comment_id=outcome.comment.id,
    )
    return comment_payloads(db, [outcome.comment])[0]
