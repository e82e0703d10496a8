# src/gamebox/api/v1/endpoints/users.py
"""User profile and relationship endpoints for the Gamebox API."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from gamebox.models import Profile
from gamebox.schemas.library import LibraryItemResponse
from gamebox.schemas.user import (
    FollowStateResponse,
    MeResponse,
    ProfileUpdate,
    RelationshipResponse,
    UserPreview,
    UserProfileResponse,
    UsernameUpdate,
)
from gamebox.services.blocks import block_user, unblock_user
from gamebox.services.follows import (
    REASON_BLOCKED_BY,
    REASON_ERROR,
    REASON_I_BLOCKED,
    REASON_SELF,
    FollowOutcome,
    follow,
    get_follow_counts,
    list_followers,
    list_following,
    unfollow,
)
from gamebox.services.library import list_library
from gamebox.services.mutes import mute_user, unmute_user
from gamebox.services.profiles import get_profile, get_profile_by_username, set_username, update_profile
from gamebox.services.relationships import get_relationship
from gamebox.services.sync import KIND_BLOCK, KIND_FOLLOW, KIND_MUTE

from ..dependencies import (
    CurrentUserDep,
    OptionalUserDep,
    RateLimiterDep,
    SessionDep,
    SyncBusDep,
    TabIdDep,
    enforce_rate_limit,
)

router = APIRouter(prefix="/users", tags=["users"])

_REJECTION_STATUS = {
    REASON_SELF: status.HTTP_400_BAD_REQUEST,
    REASON_I_BLOCKED: status.HTTP_409_CONFLICT,
    REASON_BLOCKED_BY: status.HTTP_409_CONFLICT,
    REASON_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def _user_or_404(db: Session, user_id: str) -> Profile:
    profile = get_profile(db, user_id)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return profile


def _username_or_404(db: Session, username: str) -> Profile:
    profile = get_profile_by_username(db, username)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return profile


def _follow_response(outcome: FollowOutcome, response: Response) -> FollowStateResponse:
    if not outcome.ok:
        response.status_code = _REJECTION_STATUS.get(outcome.reason or "", status.HTTP_400_BAD_REQUEST)
    return FollowStateResponse(ok=outcome.ok, following=outcome.following, reason=outcome.reason)


@router.put("/me/username", response_model=MeResponse)
async def update_username(
    payload: UsernameUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Profile:
    """Claim or change the caller's username."""
    outcome = set_username(db, current_user, payload.username)
    if outcome.error == "taken":
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Username is taken")
    if not outcome.ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.error)
    return current_user


@router.patch("/me/profile", response_model=MeResponse)
async def update_my_profile(
    payload: ProfileUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Profile:
    return update_profile(
        db,
        current_user,
        display_name=payload.display_name,
        avatar_url=payload.avatar_url,
        bio=payload.bio,
    )


@router.post("/{user_id}/follow", response_model=FollowStateResponse)
async def follow_user(
    user_id: str,
    response: Response,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
    limiter: RateLimiterDep,
) -> FollowStateResponse:
    """Follow a user. Refused across a block in either direction."""
    enforce_rate_limit(limiter, current_user, "follow")
    _user_or_404(db, user_id)
    outcome = follow(db, current_user.id, user_id)
    if outcome.ok:
        bus.publish_to_user(current_user.id, tab_id, KIND_FOLLOW, user_id=user_id, following=True)
    return _follow_response(outcome, response)


@router.delete("/{user_id}/follow", response_model=FollowStateResponse)
async def unfollow_user(
    user_id: str,
    response: Response,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
) -> FollowStateResponse:
    outcome = unfollow(db, current_user.id, user_id)
    if outcome.ok:
        bus.publish_to_user(current_user.id, tab_id, KIND_FOLLOW, user_id=user_id, following=False)
    return _follow_response(outcome, response)


@router.post("/{user_id}/block", response_model=RelationshipResponse)
async def block(
    user_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
) -> RelationshipResponse:
    """Block a user and drop every notification exchanged with them."""
    _user_or_404(db, user_id)
    outcome = block_user(db, current_user.id, user_id)
    if not outcome.ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.error)
    bus.publish_to_user(current_user.id, tab_id, KIND_BLOCK, user_id=user_id, blocked=True)
    return RelationshipResponse.model_validate(get_relationship(db, current_user.id, user_id))


@router.delete("/{user_id}/block", response_model=RelationshipResponse)
async def unblock(
    user_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
) -> RelationshipResponse:
    unblock_user(db, current_user.id, user_id)
    bus.publish_to_user(current_user.id, tab_id, KIND_BLOCK, user_id=user_id, blocked=False)
    return RelationshipResponse.model_validate(get_relationship(db, current_user.id, user_id))


@router.post("/{user_id}/mute", response_model=RelationshipResponse)
async def mute(
    user_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
) -> RelationshipResponse:
    """Hide a user's posts from the caller's feed without telling them."""
    _user_or_404(db, user_id)
    outcome = mute_user(db, current_user.id, user_id)
    if not outcome.ok:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.error)
    bus.publish_to_user(current_user.id, tab_id, KIND_MUTE, user_id=user_id, muted=True)
    return RelationshipResponse.model_validate(get_relationship(db, current_user.id, user_id))


@router.delete("/{user_id}/mute", response_model=RelationshipResponse)
async def unmute(
    user_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    bus: SyncBusDep,
    tab_id: TabIdDep,
) -> RelationshipResponse:
    unmute_user(db, current_user.id, user_id)
    bus.publish_to_user(current_user.id, tab_id, KIND_MUTE, user_id=user_id, muted=False)
    return RelationshipResponse.model_validate(get_relationship(db, current_user.id, user_id))


@router.get("/{username}", response_model=UserProfileResponse)
async def read_user_profile(
    username: str,
    db: SessionDep,
    viewer: OptionalUserDep,
) -> UserProfileResponse:
    """Public profile with follow counts and the viewer's relationship."""
    profile = _username_or_404(db, username)
    counts = get_follow_counts(db, profile.id)
    relationship = get_relationship(db, viewer.id if viewer else None, profile.id)
    return UserProfileResponse(
        id=profile.id,
        username=profile.username,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        bio=profile.bio,
        created_at=profile.created_at,
        followers=counts.followers,
        following=counts.following,
        relationship=RelationshipResponse.model_validate(relationship),
    )


@router.get("/{username}/followers", response_model=list[UserPreview])
async def read_followers(
    username: str,
    db: SessionDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[Profile]:
    profile = _username_or_404(db, username)
    return list_followers(db, profile.id, limit=limit)


@router.get("/{username}/following", response_model=list[UserPreview])
async def read_following(
    username: str,
    db: SessionDep,
    limit: int = Query(50, ge=1, le=200),
) -> list[Profile]:
    profile = _username_or_404(db, username)
    return list_following(db, profile.id, limit=limit)


@router.get("/{username}/library", response_model=list[LibraryItemResponse])
async def read_user_library(
    username: str,
    db: SessionDep,
    sort: str = Query("recent"),
    status_filter: str | None = Query(None, alias="status"),
) -> list[LibraryItemResponse]:
    """Another user's library, with their own ratings attached."""
    profile = _username_or_404(db, username)
    items = list_library(db, profile.id, sort=sort, status=status_filter)
    return [LibraryItemResponse.model_validate(item) for item in items]
