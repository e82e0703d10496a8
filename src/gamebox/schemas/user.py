"""User, profile and authentication schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class MagicLinkRequest(BaseModel):
    """Request a sign-in link for an email address."""

    email: str = Field(..., max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    next: str | None = Field(None, description="Path to return to after sign-in")


class MagicLinkResponse(BaseModel):
    sent: bool = True
    link: str | None = Field(None, description="Only populated in debug mode")


class CallbackRequest(BaseModel):
    token: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    """Access token issued after a successful magic-link callback."""

    access_token: str
    token_type: str = "bearer"
    user_id: str
    needs_username: bool


class UsernameUpdate(BaseModel):
    username: str = Field(..., min_length=1, max_length=32)


class ProfileUpdate(BaseModel):
    display_name: str | None = Field(None, max_length=64)
    avatar_url: str | None = Field(None, max_length=2048)
    bio: str | None = Field(None, max_length=280)


class UserPreview(BaseModel):
    id: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None

    model_config = ConfigDict(from_attributes=True)


class MeResponse(UserPreview):
    email: str
    bio: str | None = None
    created_at: datetime


class RelationshipResponse(BaseModel):
    following: bool = False
    followed_by: bool = False
    block: str = "none"
    muted: bool = False

    model_config = ConfigDict(from_attributes=True)


class UserProfileResponse(UserPreview):
    """Public profile with counts and the viewer's relationship to it."""

    bio: str | None = None
    created_at: datetime
    followers: int = 0
    following: int = 0
    relationship: RelationshipResponse = Field(default_factory=RelationshipResponse)


class FollowStateResponse(BaseModel):
    ok: bool
    following: bool
    reason: str | None = None


class FollowingIdsResponse(BaseModel):
    ids: list[str] = Field(default_factory=list)
