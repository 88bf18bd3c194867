from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from letterboxd_overlap.errors import LetterboxdError
from letterboxd_overlap.services.analysis import AnalysisService

from ..dependencies import get_analysis_service
from ..schemas import FilmDetailsResponse, UserValidationResponse


router = APIRouter(tags=["users"])


@router.get(
    "/users/{username}/validate",
    response_model=UserValidationResponse,
    summary="Check that a Letterboxd user exists",
)
def validate_user(
    username: str,
    service: AnalysisService = Depends(get_analysis_service),
) -> UserValidationResponse:
    try:
        validation = service.validate_username(username)
    except LetterboxdError as exc:
        raise HTTPException(status_code=502, detail=f"Failed to validate user: {exc}") from exc
    return UserValidationResponse(
        exists=validation.exists,
        username=username,
        display_name=validation.display_name,
    )


@router.get("/films/{slug}", response_model=FilmDetailsResponse, summary="Poster and details for a film")
def read_film(
    slug: str,
    service: AnalysisService = Depends(get_analysis_service),
) -> FilmDetailsResponse:
    details = service.fetch_film_details(slug)
    return FilmDetailsResponse(
        slug=details.slug,
        poster_url=details.poster_url or service.resolve_poster(slug),
        rating=details.rating,
        year=details.year,
        director=details.director,
    )
