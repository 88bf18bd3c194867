"""Shared FastAPI dependencies used across routers."""

from functools import lru_cache
from typing import Iterator

from fastapi import Depends
from sqlalchemy.orm import Session

from letterboxd_overlap.config import Settings, load_settings
from letterboxd_overlap.db.session import get_session
from letterboxd_overlap.services.analysis import AnalysisService


@lru_cache(maxsize=1)
def _load_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def _load_analysis_service() -> AnalysisService:
    # One service per process: every request shares its rate limiter.
    return AnalysisService.from_settings(_load_settings())


def get_settings() -> Settings:
    return _load_settings()


def get_db_session(settings: Settings = Depends(get_settings)) -> Iterator[Session]:
    with get_session(settings) as session:
        yield session


def get_analysis_service() -> AnalysisService:
    return _load_analysis_service()
