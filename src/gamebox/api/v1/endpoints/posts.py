# src/gamebox/api/v1/endpoints/posts.py
"""Post, post-like and post-comment endpoints for the Gamebox API."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

import sqlalchemy as sa
from fastapi import APIRouter, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from gamebox.db.time import as_utc
from gamebox.models import Game, Post, PostComment, PostLike, Profile, ReviewComment
from gamebox.schemas.post import (
    CommentCreate,
    CommentResponse,
    LikeEntryResponse,
    LikeToggleResponse,
    PostCreate,
    PostIdsRequest,
    PostResponse,
)
from gamebox.services.comments import (
    add_post_comment,
    fetch_post_comment_counts_bulk,
    list_post_comments,
)
from gamebox.services.likes import fetch_post_likes_bulk, toggle_post_like
from gamebox.services.profiles import profiles_by_id
from gamebox.services.sync import KIND_COMMENT, KIND_POST_LIKE

from ..dependencies import (
    CurrentUserDep,
    OptionalUserDep,
    RateLimiterDep,
    SessionDep,
    SyncBusDep,
    TabIdDep,
    enforce_rate_limit,
)

router = APIRouter(prefix="/posts", tags=["posts"])


def _get_post_or_404(db: Session, post_id: str) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


def comment_payloads(
    db: Session,
    comments: Sequence[PostComment | ReviewComment],
) -> list[CommentResponse]:
    """Attach author previews to comments using one profile lookup."""
    def author_of(c: PostComment | ReviewComment) -> str:
        return c.user_id if isinstance(c, PostComment) else c.commenter_id

    authors = profiles_by_id(db, (author_of(c) for c in comments))
    out: list[CommentResponse] = []
    for comment in comments:
        author_id = author_of(comment)
        profile: Profile | None = authors.get(author_id)
        out.append(
            CommentResponse(
                id=comment.id,
                body=comment.body,
                created_at=as_utc(comment.created_at),
                author_id=author_id,
                author=(
                    {
                        "id": profile.id,
                        "username": profile.username,
                        "display_name": profile.display_name,
                        "avatar_url": profile.avatar_url,
                    }
                    if profile
                    else None
                ),
            )
        )
    return out


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    limiter: RateLimiterDep,
) -> Post:
    """Publish a post. Limited to a handful per minute per user."""
    enforce_rate_limit(limiter, current_user, "create_post")
    if post_data.game_id is not None and db.get(Game, post_data.game_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")

    post = Post(
        user_id=current_user.id,
        body=post_data.body,
        tags=post_data.tags,
        media_urls=post_data.media_urls,
        game_id=post_data.game_id,
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


@router.post("/likes")
async def read_post_likes(
    payload: PostIdsRequest,
    db: SessionDep,
    viewer: OptionalUserDep,
) -> dict[str, dict[str, LikeEntryResponse]]:
    """Bulk like state keyed by ``post:<id>``."""
    entries = fetch_post_likes_bulk(db, viewer.id if viewer else None, payload.post_ids)
    return {
        "likes": {
            key: LikeEntryResponse(liked=entry.liked, count=entry.count)
            for key, entry in entries.items()
        }
    }


@router.post("/comment-counts")
async def read_post_comment_counts(
    payload: PostIdsRequest,
    db: SessionDep,
) -> dict[str, dict[str, int]]:
    return {"counts": fetch_post_comment_counts_bulk(db, payload.post_ids)}


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, db: SessionDep) -> Post:
    """Get a specific post by ID."""
    return _get_post_or_404(db, post_id)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: str, current_user: CurrentUserDep, db: SessionDep) -> Response:
    """Delete one of the caller's own posts."""
    post = _get_post_or_404(db, post_id)
    if post.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only delete your own posts",
        )
    # Not every backend enforces ON DELETE CASCADE (SQLite without the pragma).
    db.execute(sa.delete(PostLike).where(PostLike.post_id == post_id))
    db.execute(sa.delete(PostComment).where(PostComment.post_id == post_id))
    db.delete(post)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{post_id}/like", response_model=LikeToggleResponse)
async def toggle_like_on_post(
    post_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
    limiter: RateLimiterDep,
) -> LikeToggleResponse:
    """Flip the caller's like and return the authoritative state."""
    enforce_rate_limit(limiter, current_user, "reaction")
    result = toggle_post_like(db, current_user.id, post_id)
    if result.error == "Post not found":
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result.error)
    if result.error:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.error)

    bus.publish_to_user(
        current_user.id,
        tab_id,
        KIND_POST_LIKE,
        post_id=post_id,
        liked=result.liked,
        count=result.count,
    )
    return LikeToggleResponse(liked=result.liked, count=result.count)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def read_post_comments(
    post_id: str,
    db: SessionDep,
    before: datetime | None = Query(None, description="Return comments older than this"),
    limit: int = Query(50, ge=1, le=100),
) -> list[CommentResponse]:
    _get_post_or_404(db, post_id)
    return comment_payloads(db, list_post_comments(db, post_id, before=before, limit=limit))


@router.post(
    "/{post_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_post_comment(
    post_id: str,
    payload: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
    limiter: RateLimiterDep,
) -> CommentResponse:
    enforce_rate_limit(limiter, current_user, "create_comment")
    _get_post_or_404(db, post_id)
    outcome = add_post_comment(db, current_user.id, post_id, payload.body)
    if not outcome.ok or outcome.comment is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.error)

    comment_count = db.get(Post, post_id).comment_count  # type: ignore[union-attr]
    bus.publish_to_user(
        current_user.id,
        tab_id,
        KIND_COMMENT,
        post_id=post_id,
        comment_id=outcome.comment.id,
        comment_count=comment_count,
    )
    return comment_payloads(db, [outcome.comment])[0]
