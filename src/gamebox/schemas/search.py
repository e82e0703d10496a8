"""Search result schemas."""

from pydantic import BaseModel, ConfigDict, Field


class UserHitResponse(BaseModel):
    id: str
    username: str | None
    display_name: str | None
    avatar_url: str | None
    score: int

    model_config = ConfigDict(from_attributes=True)


class GameHitResponse(BaseModel):
    id: int
    name: str
    cover_url: str | None
    release_year: int | None
    score: int

    model_config = ConfigDict(from_attributes=True)


class SearchResponse(BaseModel):
    q: str
    scope: str
    users: list[UserHitResponse] = Field(default_factory=list)
    games: list[GameHitResponse] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)
