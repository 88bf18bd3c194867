from datetime import datetime, timedelta, timezone

import httpx
import pytest

from letterboxd_overlap.cache import PosterCache, UserDataCache
from letterboxd_overlap.config import AnalysisSettings, DatabaseSettings, ScraperSettings, Settings
from letterboxd_overlap.domain import FilmDetails, FilmRecord, UserFilmData, UserValidation
from letterboxd_overlap.errors import AnalysisFailed, TransportFailure, UserNotFound
from letterboxd_overlap.http import RateLimiter
from letterboxd_overlap.scrapers.film_lists import FilmListScraper
from letterboxd_overlap.services.analysis import AnalysisService, normalize_usernames

PLACEHOLDER = "https://example.test/empty-poster.png"


class FakeListScraper:
    def __init__(self, watchlists=None, watched=None, errors=None):
        self.watchlists = watchlists or {}
        self.watched = watched or {}
        self.errors = errors or {}
        self.calls: list[tuple[str, str]] = []
        self.closed = False

    def fetch_watchlist(self, username):
        self.calls.append(("watchlist", username))
        if username in self.errors:
            raise self.errors[username]
        return [FilmRecord(i, f"film-{i}", f"Film {i}") for i in self.watchlists.get(username, [])]

    def fetch_watched(self, username):
        self.calls.append(("watched", username))
        return list(self.watched.get(username, []))

    def close(self):
        self.closed = True


class FakeProfileScraper:
    def validate(self, username):
        return UserValidation(username=username, exists=username != "ghost", display_name=username.title())

    def close(self):
        pass


class FakeFilmPageScraper:
    placeholder_url = PLACEHOLDER

    def __init__(self, posters=None):
        self.posters = posters or {}
        self.calls: list[str] = []

    def resolve_poster(self, slug):
        self.calls.append(slug)
        return self.posters.get(slug, PLACEHOLDER)

    def fetch_details(self, slug):
        self.calls.append(slug)
        return FilmDetails(slug=slug, poster_url=self.posters.get(slug, PLACEHOLDER), year="2019")

    def close(self):
        pass


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 5, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def make_settings(**analysis_overrides) -> Settings:
    return Settings(
        database=DatabaseSettings(url="sqlite:///:memory:"),
        scraper=ScraperSettings(user_agent="test-agent", throttle_seconds=0.0),
        analysis=AnalysisSettings(resolve_posters=False, placeholder_poster_url=PLACEHOLDER, **analysis_overrides),
    )


def make_service(session_factory, list_scraper, *, film_pages=None, clock=None, **analysis_overrides):
    clock = clock or FakeClock()
    return AnalysisService(
        make_settings(**analysis_overrides),
        user_cache=UserDataCache(session_factory, clock=clock),
        poster_cache=PosterCache(session_factory, clock=clock),
        rate_limiter=RateLimiter(0),
        list_scraper=list_scraper,
        profile_scraper=FakeProfileScraper(),
        film_page_scraper=film_pages or FakeFilmPageScraper(),
    )


def test_normalize_usernames_trims_and_dedupes():
    assert normalize_usernames([" alice ", "bob/", "", "alice", None]) == ["alice", "bob"]


def test_second_fetch_within_ttl_uses_cache(session_factory):
    scraper = FakeListScraper(watchlists={"alice": ["1", "2"]}, watched={"alice": ["3"]})
    service = make_service(session_factory, scraper)

    first = service.get_user_film_data("alice")
    second = service.get_user_film_data("alice")

    assert first == second
    assert scraper.calls == [("watchlist", "alice"), ("watched", "alice")]


def test_stale_entry_is_refetched(session_factory):
    clock = FakeClock()
    scraper = FakeListScraper(watchlists={"alice": ["1"]})
    service = make_service(session_factory, scraper, clock=clock)
    service.get_user_film_data("alice")
    clock.now += timedelta(hours=25)
    service.get_user_film_data("alice")
    assert scraper.calls.count(("watchlist", "alice")) == 2


def test_forced_refresh_performs_exactly_one_extraction(session_factory):
    scraper = FakeListScraper(watchlists={"alice": ["1"]})
    service = make_service(session_factory, scraper)
    service.get_user_film_data("alice")
    scraper.calls.clear()
    scraper.watchlists["alice"] = ["1", "2"]

    data = service.get_user_film_data("alice", force_refresh=True)

    assert scraper.calls == [("watchlist", "alice"), ("watched", "alice")]
    assert [film.id for film in data.watchlist] == ["1", "2"]
    assert service.user_cache.get("alice").value == data


def test_failed_forced_refresh_leaves_no_entry(session_factory):
    scraper = FakeListScraper(watchlists={"alice": ["1"]})
    service = make_service(session_factory, scraper)
    service.get_user_film_data("alice")
    scraper.errors["alice"] = TransportFailure("https://letterboxd.com/alice/watchlist/page/1/", "timed out")

    with pytest.raises(TransportFailure):
        service.get_user_film_data("alice", force_refresh=True)

    assert service.user_cache.get("alice") is None


def test_analyze_reports_common_films(session_factory):
    scraper = FakeListScraper(
        watchlists={"alice": ["1", "2"], "bob": ["1"]},
        watched={"bob": ["1"]},
    )
    service = make_service(session_factory, scraper)

    report = service.analyze(["alice", "bob"])

    payload = report.to_dict()
    assert payload["totalMovies"] == 1
    assert payload["totalUsers"] == 2
    assert payload["movies"][0]["inWatchlistCount"] == 2
    assert payload["movies"][0]["watchedCount"] == 1
    assert payload["movies"][0]["priority"] == 4
    assert "warnings" not in payload


def test_analyze_skips_failed_users_and_reports_them(session_factory):
    scraper = FakeListScraper(
        watchlists={"alice": ["1", "2"], "bob": ["1", "2"]},
        errors={"ghost": UserNotFound("ghost")},
    )
    service = make_service(session_factory, scraper)

    report = service.analyze(["alice", "ghost", "bob"])

    assert report.result.total_users == 2
    assert report.result.total_movies == 2
    assert [w.username for w in report.warnings] == ["ghost"]
    assert "ghost" in report.to_dict()["warnings"][0]["error"]


def test_analyze_raises_when_every_user_fails(session_factory):
    scraper = FakeListScraper(
        errors={
            "a": UserNotFound("a"),
            "b": TransportFailure("https://letterboxd.com/b/watchlist/page/1/", "HTTP 503", status_code=503),
        }
    )
    service = make_service(session_factory, scraper)
    with pytest.raises(AnalysisFailed) as excinfo:
        service.analyze(["a", "b"])
    assert [f.username for f in excinfo.value.failures] == ["a", "b"]


def test_analyze_rejects_empty_user_list(session_factory):
    service = make_service(session_factory, FakeListScraper())
    with pytest.raises(ValueError):
        service.analyze([" ", ""])


def test_analyze_uses_configured_watched_scope(session_factory):
    scraper = FakeListScraper(
        watchlists={"a": ["1"], "b": ["1"], "c": []},
        watched={"c": ["1"]},
    )
    service = make_service(session_factory, scraper, watched_scope="watchlist")
    report = service.analyze(["a", "b", "c"])
    assert report.result.movies[0].watched_count == 0


def test_posters_are_attached_and_cached(session_factory):
    scraper = FakeListScraper(watchlists={"a": ["1", "2"], "b": ["1", "2"]})
    film_pages = FakeFilmPageScraper(posters={"film-1": "https://img.test/1.jpg"})
    service = make_service(session_factory, scraper, film_pages=film_pages)

    report = service.analyze(["a", "b"], include_posters=True)
    posters = [movie.poster_url for movie in report.result.movies]
    assert posters == ["https://img.test/1.jpg", PLACEHOLDER]

    service.analyze(["a", "b"], include_posters=True)
    # Only the real poster is cached; the placeholder lookup is retried.
    assert film_pages.calls == ["film-1", "film-2", "film-2"]
    assert service.poster_cache.get("film-2") is None


def test_poster_limit_only_resolves_leading_films(session_factory):
    scraper = FakeListScraper(watchlists={"a": ["1", "2", "3"], "b": ["1", "2", "3"]})
    film_pages = FakeFilmPageScraper()
    service = make_service(session_factory, scraper, film_pages=film_pages)
    report = service.analyze(["a", "b"], include_posters=True, poster_limit=1)
    assert film_pages.calls == ["film-1"]
    assert report.result.movies[1].poster_url is None


def test_validate_and_details_delegate_to_scrapers(session_factory):
    service = make_service(session_factory, FakeListScraper())
    assert service.validate_username("alice").exists is True
    assert service.validate_username("ghost").exists is False
    assert service.fetch_film_details("parasite-2019").year == "2019"


def test_close_closes_scrapers(session_factory):
    scraper = FakeListScraper()
    service = make_service(session_factory, scraper)
    service.close()
    assert scraper.closed is True


def test_cached_payload_survives_round_trip(session_factory):
    scraper = FakeListScraper(watchlists={"alice": ["7"]}, watched={"alice": [" 8 "]})
    service = make_service(session_factory, scraper)
    service.get_user_film_data("alice")
    cached = service.user_cache.get("alice").value
    assert cached == UserFilmData(username="alice", watchlist=[FilmRecord("7", "film-7", "Film 7")], watched=["8"])


def test_redirect_loop_for_one_user_does_not_abort_the_batch(session_factory):
    grid = (
        '<ul class="grid"><li class="griditem"><div class="react-component" '
        'data-film-id="1" data-item-slug="film-1" data-item-name="Film 1"></div></li></ul>'
    )

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.startswith("/loop/"):
            return httpx.Response(302, headers={"Location": str(request.url)})
        if path.endswith("/watchlist/page/1/"):
            return httpx.Response(200, text=grid)
        return httpx.Response(200, text="<html><body></body></html>")

    list_scraper = FilmListScraper(make_settings(), RateLimiter(0))
    list_scraper.client.client.close()
    list_scraper.client.client = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)
    service = make_service(session_factory, list_scraper)

    report = service.analyze(["alice", "loop", "bob"])
    service.close()

    assert report.result.total_users == 2
    assert report.result.movies[0].watchlist_users == ["alice", "bob"]
    assert [w.username for w in report.warnings] == ["loop"]
    assert service.user_cache.get("loop") is None


def test_poster_lookups_are_capped_by_settings(session_factory):
    scraper = FakeListScraper(watchlists={"solo": [str(i) for i in range(10)]})
    film_pages = FakeFilmPageScraper()
    service = make_service(session_factory, scraper, film_pages=film_pages, max_posters=3)

    report = service.analyze(["solo"], include_posters=True)

    assert report.result.total_movies == 10
    assert film_pages.calls == ["film-0", "film-1", "film-2"]
    assert [movie.poster_url for movie in report.result.movies[3:]] == [None] * 7


def test_poster_budget_never_exceeds_the_cap(session_factory):
    service = make_service(session_factory, FakeListScraper(), max_posters=5)
    assert service.poster_budget() == 5
    assert service.poster_budget(2) == 2
    assert service.poster_budget(100) == 5
    uncapped = make_service(session_factory, FakeListScraper(), max_posters=None)
    assert uncapped.poster_budget() is None
    assert uncapped.poster_budget(4) == 4


def test_film_details_fetch_once_and_cache_the_poster(session_factory):
    film_pages = FakeFilmPageScraper(posters={"parasite-2019": "https://img.test/p.jpg"})
    service = make_service(session_factory, FakeListScraper(), film_pages=film_pages)

    details = service.fetch_film_details("parasite-2019")

    assert details.poster_url == "https://img.test/p.jpg"
    assert film_pages.calls == ["parasite-2019"]
    assert service.resolve_poster("parasite-2019") == "https://img.test/p.jpg"
    assert film_pages.calls == ["parasite-2019"]
