from __future__ import annotations

from typing import Sequence

from fastapi import APIRouter, Depends, HTTPException

from letterboxd_overlap.errors import AnalysisFailed
from letterboxd_overlap.services.analysis import AnalysisService

from ..dependencies import get_analysis_service
from ..schemas import AnalysisResponse, AnalyzeRequest


router = APIRouter(tags=["analysis"])


def run_analysis(
    service: AnalysisService,
    users: Sequence[str],
    *,
    force_refresh: bool = False,
    include_posters: bool | None = None,
    poster_limit: int | None = None,
) -> AnalysisResponse:
    if not users:
        raise HTTPException(status_code=400, detail="Users array is required and must not be empty")
    try:
        report = service.analyze(
            users,
            force_refresh=force_refresh,
            include_posters=include_posters,
            poster_limit=poster_limit,
        )
    except AnalysisFailed as exc:
        raise HTTPException(
            status_code=400,
            detail={
                "error": "Failed to fetch data for all users",
                "details": [{"username": f.username, "error": f.error} for f in exc.failures],
            },
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return AnalysisResponse.model_validate(report.to_dict())


@router.post("/analyze", response_model=AnalysisResponse, summary="Find common watchlist films")
def analyze(
    payload: AnalyzeRequest,
    service: AnalysisService = Depends(get_analysis_service),
) -> AnalysisResponse:
    return run_analysis(
        service,
        payload.users,
        force_refresh=payload.force_refresh,
        include_posters=payload.include_posters,
        poster_limit=payload.poster_limit,
    )
