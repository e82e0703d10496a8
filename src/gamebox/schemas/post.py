"""Post, like and comment schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

MAX_POST_LENGTH = 280
MAX_TAGS = 10
MAX_MEDIA = 4


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    body: str = Field(..., description="Post text, 1-280 characters after trimming")
    tags: list[str] = Field(default_factory=list, max_length=MAX_TAGS)
    media_urls: list[str] = Field(default_factory=list, max_length=MAX_MEDIA)
    game_id: int | None = None

    @field_validator("body")
    @classmethod
    def _trim_body(cls, value: str) -> str:
        value = value.strip()
        if not value or len(value) > MAX_POST_LENGTH:
            raise ValueError(f"Post body must be 1-{MAX_POST_LENGTH} characters")
        return value

    @field_validator("tags")
    @classmethod
    def _normalize_tags(cls, value: list[str]) -> list[str]:
        tags = [t.strip().lstrip("#").lower() for t in value]
        return list(dict.fromkeys(t for t in tags if t))

    @field_validator("media_urls")
    @classmethod
    def _strip_media(cls, value: list[str]) -> list[str]:
        return [u.strip() for u in value if u.strip()]


class PostResponse(BaseModel):
    """Schema for post information returned by the API."""

    id: str
    user_id: str
    body: str
    tags: list[str]
    media_urls: list[str]
    game_id: int | None
    like_count: int
    comment_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostIdsRequest(BaseModel):
    post_ids: list[str] = Field(default_factory=list, max_length=200)


class LikeEntryResponse(BaseModel):
    liked: bool
    count: int


class LikeToggleResponse(BaseModel):
    liked: bool
    count: int
    error: str | None = None


class CommentCreate(BaseModel):
    body: str = Field(..., max_length=2000)


class CommentResponse(BaseModel):
    id: str
    body: str
    created_at: datetime
    author_id: str
    author: dict[str, str | None] | None = None
