from letterboxd_overlap.config import PLACEHOLDER_POSTER_URL, load_settings

ENV_VARS = (
    "DATABASE_URL",
    "SCRAPER_THROTTLE_SECONDS",
    "SCRAPER_MAX_PAGES",
    "CACHE_USER_TTL_HOURS",
    "ANALYSIS_WATCHED_SCOPE",
    "ANALYSIS_RESOLVE_POSTERS",
    "ANALYSIS_MAX_POSTERS",
)


def test_load_settings_reads_toml(tmp_path, monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    config_path = tmp_path / "settings.toml"
    config_path.write_text(
        """
[database]
url = "sqlite:///cache.db"

[scraper]
throttle_seconds = 0.5
max_pages = 3

[cache]
user_ttl_hours = 6

[analysis]
watched_scope = "watchlist"
resolve_posters = false
""",
        encoding="utf-8",
    )

    settings = load_settings(config_path)

    assert settings.database.url == "sqlite:///cache.db"
    assert settings.scraper.throttle_seconds == 0.5
    assert settings.scraper.max_pages == 3
    assert settings.cache.user_ttl_hours == 6
    assert settings.cache.poster_ttl_days == 30
    assert settings.analysis.watched_scope == "watchlist"
    assert settings.analysis.resolve_posters is False
    assert settings.analysis.placeholder_poster_url == PLACEHOLDER_POSTER_URL
    assert settings.analysis.max_posters == 50


def test_environment_overrides_toml(tmp_path, monkeypatch):
    config_path = tmp_path / "settings.toml"
    config_path.write_text('[database]\nurl = "sqlite:///file.db"\n', encoding="utf-8")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///env.db")
    monkeypatch.setenv("SCRAPER_THROTTLE_SECONDS", "2.5")
    monkeypatch.setenv("ANALYSIS_RESOLVE_POSTERS", "no")
    monkeypatch.setenv("ANALYSIS_MAX_POSTERS", "10")

    settings = load_settings(config_path)

    assert settings.database.url == "sqlite:///env.db"
    assert settings.scraper.throttle_seconds == 2.5
    assert settings.scraper.max_pages is None
    assert settings.analysis.resolve_posters is False
    assert settings.analysis.max_posters == 10


def test_missing_config_file_uses_defaults(tmp_path, monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    settings = load_settings(tmp_path / "missing.toml")
    assert settings.database.url == "sqlite:///data/letterboxd_overlap.db"
    assert settings.scraper.retry_limit == 2
    assert settings.analysis.watched_scope == "global"
