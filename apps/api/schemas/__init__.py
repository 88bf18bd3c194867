"""Pydantic schemas for API requests and responses."""

from .analysis import (
    AnalysisResponse,
    AnalyzeRequest,
    FilmDetailsResponse,
    MovieItem,
    UserValidationResponse,
    UserWarning,
)
from .groups import GroupCreateRequest, GroupRenameRequest, GroupSummary

__all__ = [
    "AnalysisResponse",
    "AnalyzeRequest",
    "FilmDetailsResponse",
    "MovieItem",
    "UserValidationResponse",
    "UserWarning",
    "GroupCreateRequest",
    "GroupRenameRequest",
    "GroupSummary",
]
