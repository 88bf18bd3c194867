from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

import httpx

from .config import Settings
from .errors import TransportFailure

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Process-wide gate enforcing a minimum spacing between outbound requests.

    The wait and the grant stamp happen under one lock, so concurrent callers
    queue up behind each other instead of racing on the last-grant time.
    """

    def __init__(
        self,
        min_interval: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval = max(0.0, float(min_interval))
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_grant: Optional[float] = None

    def acquire(self) -> float:
        """Block until the caller may issue a request; returns the grant time."""
        with self._lock:
            now = self._clock()
            if self._last_grant is not None:
                delay = self.min_interval - (now - self._last_grant)
                if delay > 0:
                    self._sleep(delay)
                    now = self._clock()
            self._last_grant = now
            return now


class ThrottledClient:
    def __init__(self, settings: Settings, rate_limiter: Optional[RateLimiter] = None):
        self.settings = settings
        self.rate_limiter = rate_limiter or RateLimiter(settings.scraper.throttle_seconds)
        self.client = httpx.Client(
            headers={"User-Agent": settings.scraper.user_agent},
            timeout=settings.scraper.request_timeout_seconds,
            follow_redirects=True,
        )

    def build_url(self, path: str) -> str:
        return f"{self.settings.scraper.base_url.rstrip('/')}/{path.lstrip('/')}"

    def get(self, url: str, *, retry_on: Optional[set[int]] = None) -> httpx.Response:
        """
        Rate-limited GET.

        Retries 429/5xx with linear backoff, then raises ``httpx.HTTPStatusError``
        for any remaining error status so callers can tell a 404 apart from other
        failures. Any request-level httpx error, redirect loops included,
        surfaces as ``TransportFailure``.
        """
        retry_on = retry_on or {429, 500, 502, 503, 504}
        attempt = 0
        while True:
            self.rate_limiter.acquire()
            try:
                response = self.client.get(url)
            except (httpx.RequestError, httpx.InvalidURL) as exc:
                logger.warning("Request to %s failed: %s", url, exc)
                raise TransportFailure(url, str(exc) or exc.__class__.__name__) from exc
            if response.status_code in retry_on and attempt < self.settings.scraper.retry_limit:
                attempt += 1
                sleep_time = self.settings.scraper.retry_backoff_seconds * attempt
                logger.warning(
                    "HTTP %s from %s, retrying in %ss (attempt %s/%s)",
                    response.status_code,
                    url,
                    sleep_time,
                    attempt,
                    self.settings.scraper.retry_limit,
                )
                time.sleep(sleep_time)
                continue
            response.raise_for_status()
            return response

    def close(self) -> None:
        self.client.close()
