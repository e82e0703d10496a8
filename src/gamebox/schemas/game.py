"""Game catalogue and maintenance-job schemas."""

from pydantic import BaseModel, ConfigDict, Field


class GameCard(BaseModel):
    id: int
    igdb_id: int | None = None
    name: str
    cover_url: str | None = None
    release_year: int | None = None
    parent_igdb_id: int | None = None
    preview: str | None = None

    model_config = ConfigDict(from_attributes=True)


class GameDetail(GameCard):
    summary: str | None = None
    aliases: list[str] = Field(default_factory=list)
    average_rating: float | None = None
    review_count: int = 0
    my_status: str | None = None
    my_rating: int | None = None


class BrowseResponse(BaseModel):
    sections: dict[str, list[GameCard]]


class BackfillRequest(BaseModel):
    op: str = "parents"
    limit: int = 200
    dry_run: bool = Field(False, alias="dryRun")

    model_config = ConfigDict(populate_by_name=True)


class SummaryBackfillRequest(BaseModel):
    limit: int = 200
    dry_run: bool = Field(False, alias="dryRun")

    model_config = ConfigDict(populate_by_name=True)


class SeedRequest(BaseModel):
    names: list[str] = Field(default_factory=list, max_length=200)
