from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .domain import UserFailure


class LetterboxdError(Exception):
    """Base class for failures talking to or interpreting Letterboxd."""


class UserNotFound(LetterboxdError):
    def __init__(self, username: str):
        self.username = username
        super().__init__(f"User {username} not found on Letterboxd")


class TransportFailure(LetterboxdError):
    """Timeout, network error or unexpected HTTP status."""

    def __init__(self, url: str, reason: str, *, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Failed to fetch {url}: {reason}")


class ParseFailure(LetterboxdError):
    """The page was fetched but the expected structure is missing."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Could not parse {url}: {reason}")


class AnalysisFailed(LetterboxdError):
    """Raised when every user in a batch failed to load."""

    def __init__(self, failures: Sequence[UserFailure]):
        self.failures = list(failures)
        names = ", ".join(f"{item.username} ({item.error})" for item in self.failures)
        super().__init__(f"Failed to fetch data for all users: {names}")
