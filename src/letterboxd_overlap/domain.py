"""Plain data containers shared by the scrapers, the cache and the aggregation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, Iterable, List, Optional, TypeVar

T = TypeVar("T")


def normalize_film_id(value: Any) -> str:
    """Canonical string form of a Letterboxd film id ("42", " 42 " and 42 are the same film)."""
    if value is None:
        return ""
    return str(value).strip()


class ListKind(str, Enum):
    WATCHLIST = "watchlist"
    WATCHED = "watched"


@dataclass(frozen=True)
class FilmRecord:
    id: str
    slug: str
    title: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", normalize_film_id(self.id))
        object.__setattr__(self, "slug", (self.slug or "").strip().strip("/"))
        object.__setattr__(self, "title", (self.title or self.slug).strip())

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "slug": self.slug, "title": self.title}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FilmRecord":
        return cls(id=payload.get("id"), slug=payload.get("slug", ""), title=payload.get("title", ""))


@dataclass
class UserFilmData:
    username: str
    watchlist: List[FilmRecord] = field(default_factory=list)
    watched: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.watchlist = [
            film if isinstance(film, FilmRecord) else FilmRecord.from_dict(film) for film in self.watchlist
        ]
        self.watched = [film_id for film_id in (normalize_film_id(v) for v in self.watched) if film_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "watchlist": [film.to_dict() for film in self.watchlist],
            "watched": list(self.watched),
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "UserFilmData":
        return cls(
            username=payload["username"],
            watchlist=list(payload.get("watchlist") or []),
            watched=list(payload.get("watched") or []),
        )


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    key: str
    value: T
    updated_at: datetime


@dataclass
class AggregatedFilm:
    id: str
    slug: str
    title: str
    in_watchlist_count: int = 0
    watched_count: int = 0
    watchlist_users: List[str] = field(default_factory=list)
    watched_by_users: List[str] = field(default_factory=list)
    priority: int = 6
    poster_url: Optional[str] = None

    @classmethod
    def seed(cls, film: FilmRecord) -> "AggregatedFilm":
        return cls(id=film.id, slug=film.slug, title=film.title)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "title": self.title,
            "inWatchlistCount": self.in_watchlist_count,
            "watchedCount": self.watched_count,
            "watchlistUsers": list(self.watchlist_users),
            "watchedByUsers": list(self.watched_by_users),
            "priority": self.priority,
            "posterUrl": self.poster_url,
        }


@dataclass(frozen=True)
class AnalysisResult:
    total_movies: int
    total_users: int
    movies: tuple[AggregatedFilm, ...]

    @classmethod
    def build(cls, total_users: int, movies: Iterable[AggregatedFilm]) -> "AnalysisResult":
        movies = tuple(movies)
        return cls(total_movies=len(movies), total_users=total_users, movies=movies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalMovies": self.total_movies,
            "totalUsers": self.total_users,
            "movies": [movie.to_dict() for movie in self.movies],
        }


@dataclass(frozen=True)
class UserFailure:
    username: str
    error: str


@dataclass(frozen=True)
class AnalysisReport:
    result: AnalysisResult
    warnings: tuple[UserFailure, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        payload = self.result.to_dict()
        if self.warnings:
            payload["warnings"] = [{"username": w.username, "error": w.error} for w in self.warnings]
        return payload


@dataclass(frozen=True)
class UserValidation:
    username: str
    exists: bool
    display_name: Optional[str] = None


@dataclass(frozen=True)
class FilmDetails:
    slug: str
    poster_url: Optional[str] = None
    rating: Optional[str] = None
    year: Optional[str] = None
    director: Optional[str] = None
