from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from ..config import Settings
from . import models

engine = None
SessionLocal = None


def _ensure_sqlite_directory(url: str) -> None:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return
    database = parsed.database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)


def init_engine(settings: Settings) -> None:
    global engine, SessionLocal
    if engine is None:
        _ensure_sqlite_directory(settings.database.url)
        engine = create_engine(
            settings.database.url,
            echo=settings.database.echo,
        )
        models.Base.metadata.create_all(engine)
        SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@contextmanager
def get_session(settings: Settings) -> Iterator[Session]:
    if SessionLocal is None:
        init_engine(settings)
    session = SessionLocal()  # type: ignore[call-arg]
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
