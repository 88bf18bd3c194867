from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserValidationResponse(CamelModel):
    exists: bool
    username: str
    display_name: str | None = None


class AnalyzeRequest(CamelModel):
    users: list[str] = Field(default_factory=list)
    force_refresh: bool = False
    include_posters: bool | None = None
    poster_limit: int | None = Field(default=None, ge=1)


class MovieItem(CamelModel):
    id: str
    slug: str
    title: str
    in_watchlist_count: int
    watched_count: int
    watchlist_users: list[str]
    watched_by_users: list[str]
    priority: int
    poster_url: str | None = None


class UserWarning(CamelModel):
    username: str
    error: str


class AnalysisResponse(CamelModel):
    total_movies: int
    total_users: int
    movies: list[MovieItem]
    warnings: list[UserWarning] = Field(default_factory=list)


class FilmDetailsResponse(CamelModel):
    slug: str
    poster_url: str
    rating: str | None = None
    year: str | None = None
    director: str | None = None
