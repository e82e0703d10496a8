"""Library schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

LibraryStatus = Literal["Backlog", "Playing", "Completed", "Dropped"]


class LibraryStatusUpdate(BaseModel):
    status: LibraryStatus


class LibraryStatusResponse(BaseModel):
    game_id: int
    status: LibraryStatus | None


class LibraryItemResponse(BaseModel):
    game_id: int
    name: str
    cover_url: str | None
    release_year: int | None
    status: LibraryStatus
    updated_at: datetime
    rating: int | None = None

    model_config = ConfigDict(from_attributes=True)
