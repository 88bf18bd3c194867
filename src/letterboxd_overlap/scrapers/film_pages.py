from __future__ import annotations

import logging
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from ..config import PLACEHOLDER_POSTER_URL, Settings
from ..domain import FilmDetails
from ..errors import LetterboxdError
from ..http import RateLimiter, ThrottledClient
from .poster_utils import parse_html_document

logger = logging.getLogger(__name__)


class FilmPageScraper:
    """Best-effort lookups against individual Letterboxd film pages."""

    def __init__(
        self,
        settings: Settings,
        rate_limiter: Optional[RateLimiter] = None,
        *,
        placeholder_url: str = PLACEHOLDER_POSTER_URL,
    ):
        self.settings = settings
        self.client = ThrottledClient(settings, rate_limiter)
        self.placeholder_url = placeholder_url

    def resolve_poster(self, slug: str) -> str:
        """Return the film's preview image, or the placeholder on any failure."""
        soup = self._fetch(slug)
        if soup is None:
            return self.placeholder_url
        return self._extract_poster_url(soup) or self.placeholder_url

    def fetch_details(self, slug: str) -> FilmDetails:
        normalized_slug = slug.strip().strip("/")
        soup = self._fetch(normalized_slug)
        if soup is None:
            return FilmDetails(slug=normalized_slug, poster_url=self.placeholder_url)
        return FilmDetails(
            slug=normalized_slug,
            poster_url=self._extract_poster_url(soup) or self.placeholder_url,
            rating=self._extract_rating(soup),
            year=self._extract_year(soup),
            director=self._extract_director(soup),
        )

    def close(self) -> None:
        self.client.close()

    def _fetch(self, slug: str) -> Optional[BeautifulSoup]:
        normalized_slug = slug.strip().strip("/")
        url = self.client.build_url(f"film/{normalized_slug}/")
        try:
            response = self.client.get(url)
            return parse_html_document(response.text or "")
        except (httpx.HTTPError, LetterboxdError) as exc:
            logger.warning("Failed to fetch film page for %s: %s", normalized_slug, exc)
            return None

    @staticmethod
    def _extract_poster_url(soup: BeautifulSoup) -> Optional[str]:
        meta = soup.find("meta", attrs={"property": "og:image"})
        if meta and meta.get("content"):
            return meta["content"].strip()
        img = soup.select_one(".film-poster img")
        if img and img.get("src"):
            return img["src"]
        return None

    @staticmethod
    def _extract_rating(soup: BeautifulSoup) -> Optional[str]:
        node = soup.select_one(".average-rating .average") or soup.select_one(".average-rating")
        if node:
            text = node.get_text(strip=True)
            if text:
                return text
        meta = soup.find("meta", attrs={"name": "twitter:data2"})
        if meta and meta.get("content"):
            match = re.match(r"\s*([\d.]+)", meta["content"])
            if match:
                return match.group(1)
        return None

    @staticmethod
    def _extract_year(soup: BeautifulSoup) -> Optional[str]:
        node = soup.select_one(".film-header .number") or soup.select_one(".releaseyear a")
        if node:
            text = node.get_text(strip=True)
            if text:
                return text
        link = soup.select_one('a[href*="/films/year/"]')
        if link:
            match = re.search(r"(18|19|20)\d{2}", link.get_text(strip=True))
            if match:
                return match.group(0)
        return None

    @staticmethod
    def _extract_director(soup: BeautifulSoup) -> Optional[str]:
        node = soup.select_one(".directedby a") or soup.select_one('a[href*="/director/"]')
        if node:
            text = node.get_text(strip=True)
            return text or None
        return None
