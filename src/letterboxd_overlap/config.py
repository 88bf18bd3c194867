from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
import os
import tomllib

from dotenv import load_dotenv

PLACEHOLDER_POSTER_URL = "https://s.ltrbxd.com/static/img/empty-poster-230.png"
DEFAULT_USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"


@dataclass
class DatabaseSettings:
    url: str
    echo: bool = False


@dataclass
class ScraperSettings:
    user_agent: str = DEFAULT_USER_AGENT
    base_url: str = "https://letterboxd.com"
    request_timeout_seconds: int = 15
    retry_limit: int = 2
    retry_backoff_seconds: int = 2
    throttle_seconds: float = 1.0
    max_pages: Optional[int] = None


@dataclass
class CacheSettings:
    user_ttl_hours: float = 24
    poster_ttl_days: float = 30


@dataclass
class AnalysisSettings:
    watched_scope: str = "global"
    resolve_posters: bool = True
    placeholder_poster_url: str = PLACEHOLDER_POSTER_URL
    max_posters: Optional[int] = 50


@dataclass
class Settings:
    database: DatabaseSettings
    scraper: ScraperSettings = field(default_factory=ScraperSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    analysis: AnalysisSettings = field(default_factory=AnalysisSettings)
    raw: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "database": self.database.__dict__,
            "scraper": self.scraper.__dict__,
            "cache": self.cache.__dict__,
            "analysis": self.analysis.__dict__,
        }


def _load_toml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as fh:
        return tomllib.load(fh)


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load configuration from TOML + environment variables."""
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parents[2] / "config" / "default.toml"

    data = _load_toml(config_path)
    database_cfg = data.get("database", {})
    scraper_cfg = data.get("scraper", {})
    cache_cfg = data.get("cache", {})
    analysis_cfg = data.get("analysis", {})

    db_settings = DatabaseSettings(
        url=os.getenv("DATABASE_URL", database_cfg.get("url", "sqlite:///data/letterboxd_overlap.db")),
        echo=bool_from_env("DATABASE_ECHO", database_cfg.get("echo", False)),
    )

    max_pages = os.getenv("SCRAPER_MAX_PAGES", scraper_cfg.get("max_pages"))
    scraper_settings = ScraperSettings(
        user_agent=os.getenv("SCRAPER_USER_AGENT", scraper_cfg.get("user_agent", DEFAULT_USER_AGENT)),
        base_url=os.getenv("SCRAPER_BASE_URL", scraper_cfg.get("base_url", "https://letterboxd.com")),
        request_timeout_seconds=int(
            os.getenv("SCRAPER_TIMEOUT", scraper_cfg.get("request_timeout_seconds", 15))
        ),
        retry_limit=int(os.getenv("SCRAPER_RETRY_LIMIT", scraper_cfg.get("retry_limit", 2))),
        retry_backoff_seconds=int(
            os.getenv("SCRAPER_RETRY_BACKOFF", scraper_cfg.get("retry_backoff_seconds", 2))
        ),
        throttle_seconds=float(os.getenv("SCRAPER_THROTTLE_SECONDS", scraper_cfg.get("throttle_seconds", 1.0))),
        max_pages=int(max_pages) if max_pages else None,
    )

    cache_settings = CacheSettings(
        user_ttl_hours=float(os.getenv("CACHE_USER_TTL_HOURS", cache_cfg.get("user_ttl_hours", 24))),
        poster_ttl_days=float(os.getenv("CACHE_POSTER_TTL_DAYS", cache_cfg.get("poster_ttl_days", 30))),
    )

    max_posters = os.getenv("ANALYSIS_MAX_POSTERS", analysis_cfg.get("max_posters", 50))
    analysis_settings = AnalysisSettings(
        watched_scope=os.getenv("ANALYSIS_WATCHED_SCOPE", analysis_cfg.get("watched_scope", "global")),
        resolve_posters=bool_from_env("ANALYSIS_RESOLVE_POSTERS", analysis_cfg.get("resolve_posters", True)),
        placeholder_poster_url=os.getenv(
            "ANALYSIS_PLACEHOLDER_POSTER", analysis_cfg.get("placeholder_poster_url", PLACEHOLDER_POSTER_URL)
        ),
        max_posters=int(max_posters) if max_posters else None,
    )

    return Settings(
        database=db_settings,
        scraper=scraper_settings,
        cache=cache_settings,
        analysis=analysis_settings,
        raw=data,
    )


def bool_from_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return bool(default)
    return value.lower() in {"1", "true", "yes", "on"}
