from __future__ import annotations

import logging
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from ..config import Settings
from ..domain import UserValidation
from ..errors import ParseFailure, TransportFailure
from ..http import RateLimiter, ThrottledClient
from .poster_utils import is_not_found_page, parse_html_document

logger = logging.getLogger(__name__)


class ProfileScraper:
    """Checks that a Letterboxd profile exists and reads its display name."""

    def __init__(self, settings: Settings, rate_limiter: Optional[RateLimiter] = None):
        self.settings = settings
        self.client = ThrottledClient(settings, rate_limiter)

    def validate(self, username: str) -> UserValidation:
        username = username.strip().strip("/")
        url = self.client.build_url(f"{username}/")
        try:
            response = self.client.get(url)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                logger.info("User %s: profile returned 404", username)
                return UserValidation(username=username, exists=False)
            raise TransportFailure(
                url, f"HTTP {exc.response.status_code}", status_code=exc.response.status_code
            ) from exc
        soup = parse_html_document(response.text or "")
        if soup.find("body") is None and not soup.get_text(strip=True):
            raise ParseFailure(url, "empty profile page")
        if is_not_found_page(soup):
            logger.info("User %s: error page found, user doesn't exist", username)
            return UserValidation(username=username, exists=False)
        display_name = self._extract_display_name(soup) or username
        logger.info("User %s: valid user found", username)
        return UserValidation(username=username, exists=True, display_name=display_name)

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def _extract_display_name(soup: BeautifulSoup) -> Optional[str]:
        for selector in (".profile-person .name", ".profile-name .displayname", "h1.title-1"):
            node = soup.select_one(selector)
            if node:
                text = node.get_text(" ", strip=True)
                if text:
                    return text
        meta = soup.find("meta", attrs={"property": "og:title"})
        if meta and meta.get("content"):
            content = meta["content"].strip()
            if content.endswith("’s profile"):
                content = content[: -len("’s profile")]
            return content.strip() or None
        return None
