"""
Time-to-live caches for scraped data.

Both namespaces (user film data and poster URLs) live in their own table and
share one implementation; freshness is decided here, never by the store.
Entries are replaced wholesale on every write and removed only through
``invalidate``/``clear``/``purge_expired``.
"""

from __future__ import annotations

import logging
from contextlib import AbstractContextManager
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Generic, Optional, Type, TypeVar

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .db import models
from .domain import CacheEntry, UserFilmData

logger = logging.getLogger(__name__)

T = TypeVar("T")

SessionFactory = Callable[[], AbstractContextManager[Session]]

USER_DATA_TTL = timedelta(hours=24)
POSTER_TTL = timedelta(days=30)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TTLCache(Generic[T]):
    model: Type[Any]

    def __init__(
        self,
        session_factory: SessionFactory,
        ttl: timedelta,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.session_factory = session_factory
        self.ttl = ttl
        self._clock = clock

    def get(self, key: str) -> Optional[CacheEntry[T]]:
        with self.session_factory() as session:
            row = session.get(self.model, key)
            if row is None:
                return None
            return CacheEntry(key=key, value=self._decode(row), updated_at=_as_aware(row.updated_at))

    def is_fresh(self, entry: Optional[CacheEntry[T]]) -> bool:
        if entry is None:
            return False
        return self._clock() - _as_aware(entry.updated_at) < self.ttl

    def get_fresh(self, key: str) -> Optional[CacheEntry[T]]:
        entry = self.get(key)
        return entry if self.is_fresh(entry) else None

    def put(self, key: str, value: T) -> CacheEntry[T]:
        updated_at = self._clock()
        with self.session_factory() as session:
            session.merge(self._encode(key, value, updated_at))
        return CacheEntry(key=key, value=value, updated_at=updated_at)

    def invalidate(self, key: str) -> bool:
        with self.session_factory() as session:
            row = session.get(self.model, key)
            if row is None:
                return False
            session.delete(row)
        logger.debug("Invalidated %s entry %s", self.model.__tablename__, key)
        return True

    def purge_expired(self) -> int:
        cutoff = self._clock() - self.ttl
        removed = 0
        with self.session_factory() as session:
            for row in session.query(self.model).all():
                if _as_aware(row.updated_at) <= cutoff:
                    session.delete(row)
                    removed += 1
        return removed

    def clear(self) -> int:
        with self.session_factory() as session:
            result = session.execute(delete(self.model))
            return int(result.rowcount or 0)

    def _encode(self, key: str, value: T, updated_at: datetime) -> Any:
        raise NotImplementedError

    def _decode(self, row: Any) -> T:
        raise NotImplementedError


class UserDataCache(TTLCache[UserFilmData]):
    model = models.CachedUserFilms

    def __init__(self, session_factory: SessionFactory, ttl: timedelta = USER_DATA_TTL, **kwargs: Any):
        super().__init__(session_factory, ttl, **kwargs)

    def _encode(self, key: str, value: UserFilmData, updated_at: datetime) -> models.CachedUserFilms:
        return models.CachedUserFilms(username=key, payload=value.to_dict(), updated_at=updated_at)

    def _decode(self, row: models.CachedUserFilms) -> UserFilmData:
        payload = dict(row.payload or {})
        payload.setdefault("username", row.username)
        return UserFilmData.from_dict(payload)


class PosterCache(TTLCache[str]):
    model = models.CachedPoster

    def __init__(self, session_factory: SessionFactory, ttl: timedelta = POSTER_TTL, **kwargs: Any):
        super().__init__(session_factory, ttl, **kwargs)

    def _encode(self, key: str, value: str, updated_at: datetime) -> models.CachedPoster:
        return models.CachedPoster(slug=key, poster_url=value, updated_at=updated_at)

    def _decode(self, row: models.CachedPoster) -> str:
        return row.poster_url
