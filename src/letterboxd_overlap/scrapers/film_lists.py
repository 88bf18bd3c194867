from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Union

import httpx
from bs4.element import Tag

from ..config import Settings
from ..domain import FilmRecord, ListKind
from ..errors import TransportFailure, UserNotFound
from ..http import RateLimiter, ThrottledClient
from .poster_utils import (
    extract_film_id,
    extract_film_record,
    find_film_entries,
    is_not_found_page,
    parse_html_document,
)

logger = logging.getLogger(__name__)

LIST_PATHS = {
    ListKind.WATCHLIST: "{username}/watchlist/page/{page}/",
    ListKind.WATCHED: "{username}/films/page/{page}/",
}


class FilmListScraper:
    """
    Walks a user's paginated watchlist or watched-films grid.

    Pages are requested one after another until a page yields no accepted
    entries; nothing past that page is probed.
    """

    def __init__(self, settings: Settings, rate_limiter: Optional[RateLimiter] = None):
        self.settings = settings
        self.client = ThrottledClient(settings, rate_limiter)

    def fetch_watchlist(self, username: str) -> List[FilmRecord]:
        return self.fetch_list(username, ListKind.WATCHLIST)  # type: ignore[return-value]

    def fetch_watched(self, username: str) -> List[str]:
        return self.fetch_list(username, ListKind.WATCHED)  # type: ignore[return-value]

    def fetch_list(self, username: str, kind: Union[ListKind, str]) -> Union[List[FilmRecord], List[str]]:
        kind = ListKind(kind)
        logger.info("Fetching %s for %s", kind.value, username)
        entries = list(self.iter_list(username, kind))
        logger.info("Total %s for %s: %s films", kind.value, username, len(entries))
        return entries

    def iter_list(self, username: str, kind: ListKind) -> Iterator[Union[FilmRecord, str]]:
        username = username.strip().strip("/")
        max_pages = self.settings.scraper.max_pages
        page = 1
        while True:
            url = self.client.build_url(LIST_PATHS[kind].format(username=username, page=page))
            try:
                response = self.client.get(url)
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status == 404 and page == 1:
                    raise UserNotFound(username) from exc
                if status == 404:
                    break
                raise TransportFailure(url, f"HTTP {status}", status_code=status) from exc
            soup = parse_html_document(response.text or "")
            entries = self._extract(find_film_entries(soup), kind)
            if not entries and page == 1 and is_not_found_page(soup):
                raise UserNotFound(username)
            logger.debug("Found %s %s films on page %s for %s", len(entries), kind.value, page, username)
            if not entries:
                break
            yield from entries
            if max_pages and page >= max_pages:
                logger.warning("Stopping %s for %s at page cap %s", kind.value, username, max_pages)
                break
            page += 1

    @classmethod
    def parse_html(cls, html: str, kind: Union[ListKind, str]) -> Union[List[FilmRecord], List[str]]:
        soup = parse_html_document(html)
        return cls._extract(find_film_entries(soup), ListKind(kind))

    @staticmethod
    def _extract(films: Iterable[Tag], kind: ListKind) -> list:
        entries: list = []
        for film in films:
            if kind is ListKind.WATCHED:
                film_id = extract_film_id(film)
                if film_id:
                    entries.append(film_id)
                continue
            record = extract_film_record(film)
            if record is None:
                logger.debug("Skipping malformed watchlist entry: %s", str(film)[:120])
                continue
            entries.append(record)
        return entries

    def close(self) -> None:
        self.client.close()
