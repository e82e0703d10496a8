"""Review schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ReviewUpsert(BaseModel):
    rating: int = Field(..., ge=0, le=100, description="Rating on a 0-100 scale")
    body: str | None = Field(None, max_length=5000)


class ReviewResponse(BaseModel):
    user_id: str
    game_id: int
    rating: int
    stars: float
    body: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewPair(BaseModel):
    user_id: str
    game_id: int


class ReviewPairsRequest(BaseModel):
    pairs: list[ReviewPair] = Field(default_factory=list, max_length=200)


class ReviewLikesResponse(BaseModel):
    liked: list[str]
    counts: dict[str, int]
