from __future__ import annotations

from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, FeatureNotFound
from bs4.element import Tag

from ..domain import FilmRecord, normalize_film_id

NOT_FOUND_MARKERS = (
    "Sorry, we can’t find the page you’ve requested",
    "Sorry, we can't find the page you've requested",
)


def parse_html_document(html: str) -> BeautifulSoup:
    """Parse raw HTML with lxml, falling back to the stdlib parser."""
    for parser in ("lxml", "html.parser"):
        try:
            return BeautifulSoup(html, parser)
        except FeatureNotFound:
            continue
    raise FeatureNotFound("Install lxml for HTML parsing support.")


def is_not_found_page(soup: BeautifulSoup) -> bool:
    body = soup.find("body") or soup
    text = body.get_text(" ", strip=True)
    return any(marker in text for marker in NOT_FOUND_MARKERS)


def find_film_entries(soup: BeautifulSoup) -> List[Tag]:
    """
    Return the elements carrying film metadata on a poster grid page.

    The current grid renders ``li.griditem`` wrappers around a react component
    holding ``data-film-id``/``data-item-slug``; older pages use
    ``li.poster-container`` with a ``div.film-poster`` child. One node is
    returned per grid item.
    """
    selectors = [
        "li.griditem",
        "li.poster-container",
        "ul.poster-list > li",
    ]
    seen: set[int] = set()
    results: List[Tag] = []
    for selector in selectors:
        for node in soup.select(selector):
            if id(node) in seen:
                continue
            seen.add(id(node))
            results.append(node)
    if results:
        return results
    return soup.select("[data-film-id][data-item-slug], [data-film-id][data-film-slug]")


def _attribute(film: Tag, *names: str) -> Optional[str]:
    for name in names:
        value = film.get(name)
        if value:
            return value
        nested = film.find(attrs={name: True})
        if nested and nested.get(name):
            return nested.get(name)
    return None


def extract_film_id(film: Tag) -> Optional[str]:
    film_id = normalize_film_id(_attribute(film, "data-film-id"))
    if ":" in film_id:
        film_id = film_id.split(":")[-1].strip()
    return film_id or None


def extract_film_record(film: Tag) -> Optional[FilmRecord]:
    """Build a FilmRecord from a grid item, or ``None`` when slug or id is missing."""
    film_id = extract_film_id(film)
    slug = _attribute(film, "data-item-slug", "data-film-slug")
    if not slug:
        link = _attribute(film, "data-item-link", "data-target-link")
        slug = slug_from_link(link)
    if not slug:
        anchor = film.find("a", href=True)
        if anchor:
            slug = slug_from_link(anchor["href"])
    if not slug or not film_id:
        return None
    title = _attribute(film, "data-item-name", "data-film-name", "data-film-title")
    if not title:
        img = film.find("img", alt=True)
        if img:
            title = img.get("alt")
    return FilmRecord(id=film_id, slug=slug, title=title or slug)


def slug_from_link(link: Optional[str]) -> Optional[str]:
    if not link:
        return None
    link = link.strip()
    if not link:
        return None
    parsed = urlparse(link)
    path = parsed.path if parsed.scheme else link
    path = path.split("?")[0].strip("/")
    parts = path.split("/")
    if parts[0] == "film" and len(parts) >= 2:
        return parts[1]
    return None
