from __future__ import annotations

import dataclasses
import logging
from datetime import timedelta
from typing import Iterable, List, Optional

from ..cache import PosterCache, SessionFactory, UserDataCache
from ..config import Settings
from ..db.session import get_session
from ..domain import AnalysisReport, AnalysisResult, FilmDetails, UserFailure, UserFilmData, UserValidation
from ..errors import AnalysisFailed, LetterboxdError
from ..http import RateLimiter
from ..scrapers.film_lists import FilmListScraper
from ..scrapers.film_pages import FilmPageScraper
from ..scrapers.profiles import ProfileScraper
from .aggregation import aggregate
from .telemetry import timed_operation

logger = logging.getLogger(__name__)


def normalize_usernames(usernames: Iterable[str]) -> List[str]:
    cleaned: List[str] = []
    for name in usernames:
        name = (name or "").strip().strip("/")
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


class AnalysisService:
    """
    Entry point used by the API and the CLI.

    Owns one rate limiter shared by every scraper it creates, so all outbound
    requests from concurrent analyses go through the same gate.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        user_cache: UserDataCache,
        poster_cache: PosterCache,
        rate_limiter: Optional[RateLimiter] = None,
        list_scraper: Optional[FilmListScraper] = None,
        profile_scraper: Optional[ProfileScraper] = None,
        film_page_scraper: Optional[FilmPageScraper] = None,
    ):
        self.settings = settings
        self.user_cache = user_cache
        self.poster_cache = poster_cache
        self.rate_limiter = rate_limiter or RateLimiter(settings.scraper.throttle_seconds)
        self.list_scraper = list_scraper or FilmListScraper(settings, self.rate_limiter)
        self.profile_scraper = profile_scraper or ProfileScraper(settings, self.rate_limiter)
        self.film_page_scraper = film_page_scraper or FilmPageScraper(
            settings,
            self.rate_limiter,
            placeholder_url=settings.analysis.placeholder_poster_url,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: Optional[SessionFactory] = None,
    ) -> "AnalysisService":
        if session_factory is None:

            def session_factory():
                return get_session(settings)

        return cls(
            settings,
            user_cache=UserDataCache(session_factory, timedelta(hours=settings.cache.user_ttl_hours)),
            poster_cache=PosterCache(session_factory, timedelta(days=settings.cache.poster_ttl_days)),
        )

    def validate_username(self, username: str) -> UserValidation:
        return self.profile_scraper.validate(username)

    def get_user_film_data(self, username: str, force_refresh: bool = False) -> UserFilmData:
        """
        Return a user's watchlist and watched ids, reusing a fresh cache entry.

        A forced refresh deletes the existing entry before fetching, so a failed
        fetch leaves the cache empty rather than holding stale data.
        """
        entry = self.user_cache.get(username)
        if entry is not None and not force_refresh and self.user_cache.is_fresh(entry):
            logger.info("Using cached data for %s", username)
            return entry.value
        if entry is not None and force_refresh:
            self.user_cache.invalidate(username)
        logger.info("Fetching fresh data for %s", username)
        with timed_operation(f"fetch[{username}]"):
            watchlist = self.list_scraper.fetch_watchlist(username)
            watched = self.list_scraper.fetch_watched(username)
        data = UserFilmData(username=username, watchlist=watchlist, watched=watched)
        logger.info(
            "Found %s films in watchlist and %s watched for %s",
            len(data.watchlist),
            len(data.watched),
            username,
        )
        self.user_cache.put(username, data)
        return data

    def resolve_poster(self, slug: str) -> str:
        entry = self.poster_cache.get(slug)
        if entry is not None and self.poster_cache.is_fresh(entry):
            return entry.value
        poster_url = self.film_page_scraper.resolve_poster(slug)
        if poster_url != self.film_page_scraper.placeholder_url:
            self.poster_cache.put(slug, poster_url)
        return poster_url

    def fetch_film_details(self, slug: str) -> FilmDetails:
        """Details and poster read from a single film page fetch."""
        details = self.film_page_scraper.fetch_details(slug)
        if details.poster_url and details.poster_url != self.film_page_scraper.placeholder_url:
            self.poster_cache.put(details.slug, details.poster_url)
        return details

    def poster_budget(self, requested: Optional[int] = None) -> Optional[int]:
        """Number of films to resolve posters for; ``None`` means no cap."""
        cap = self.settings.analysis.max_posters or None
        if requested is None or requested <= 0:
            return cap
        return requested if cap is None else min(requested, cap)

    def attach_posters(self, result: AnalysisResult, limit: Optional[int] = None) -> AnalysisResult:
        """Return a copy of ``result`` with poster URLs for (the first ``limit``) films."""
        movies = []
        for index, movie in enumerate(result.movies):
            if limit is None or index < limit:
                movie = dataclasses.replace(movie, poster_url=self.resolve_poster(movie.slug))
            movies.append(movie)
        return AnalysisResult.build(result.total_users, movies)

    def analyze(
        self,
        usernames: Iterable[str],
        *,
        force_refresh: bool = False,
        include_posters: Optional[bool] = None,
        poster_limit: Optional[int] = None,
    ) -> AnalysisReport:
        names = normalize_usernames(usernames)
        if not names:
            raise ValueError("Users array is required and must not be empty")
        if include_posters is None:
            include_posters = self.settings.analysis.resolve_posters
        logger.info("Starting watchlist analysis for: %s", ", ".join(names))
        users_data: List[UserFilmData] = []
        failures: List[UserFailure] = []
        with timed_operation(f"analyze[{','.join(names)}]"):
            for username in names:
                try:
                    users_data.append(self.get_user_film_data(username, force_refresh=force_refresh))
                except LetterboxdError as exc:
                    logger.error("Error fetching data for %s: %s", username, exc)
                    failures.append(UserFailure(username=username, error=str(exc)))
            if not users_data:
                raise AnalysisFailed(failures)
            result = aggregate(users_data, watched_scope=self.settings.analysis.watched_scope)
            if include_posters:
                result = self.attach_posters(result, limit=self.poster_budget(poster_limit))
        logger.info("Analysis complete: %s common movies found", result.total_movies)
        return AnalysisReport(result=result, warnings=tuple(failures))

    def close(self) -> None:
        self.list_scraper.close()
        self.profile_scraper.close()
        self.film_page_scraper.close()
