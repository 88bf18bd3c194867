from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from letterboxd_overlap import services
from letterboxd_overlap.services.analysis import AnalysisService

from ..dependencies import get_analysis_service, get_db_session
from ..schemas import AnalysisResponse, GroupCreateRequest, GroupRenameRequest, GroupSummary
from .analysis import run_analysis


router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("/", response_model=List[GroupSummary], summary="List groups")
def list_groups(session: Session = Depends(get_db_session)) -> list[GroupSummary]:
    return [GroupSummary.model_validate(group) for group in services.groups.list_groups(session)]


@router.post(
    "/",
    response_model=GroupSummary,
    status_code=status.HTTP_201_CREATED,
    summary="Create group",
)
def create_group(payload: GroupCreateRequest, session: Session = Depends(get_db_session)) -> GroupSummary:
    try:
        group = services.groups.create_group(session, payload.name, payload.users)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return GroupSummary.model_validate(group)


@router.get("/{group_id}", response_model=GroupSummary, summary="Group details")
def get_group(group_id: int, session: Session = Depends(get_db_session)) -> GroupSummary:
    group = services.groups.get_group(session, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return GroupSummary.model_validate(group)


@router.patch("/{group_id}", response_model=GroupSummary, summary="Rename group")
def rename_group(
    group_id: int,
    payload: GroupRenameRequest,
    session: Session = Depends(get_db_session),
) -> GroupSummary:
    group = services.groups.rename_group(session, group_id, payload.name)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    return GroupSummary.model_validate(group)


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete group")
def delete_group(group_id: int, session: Session = Depends(get_db_session)) -> None:
    deleted = services.groups.delete_group(session, group_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Group not found")


@router.post("/{group_id}/analyze", response_model=AnalysisResponse, summary="Analyze a group")
def analyze_group(
    group_id: int,
    force_refresh: bool = False,
    session: Session = Depends(get_db_session),
    service: AnalysisService = Depends(get_analysis_service),
) -> AnalysisResponse:
    group = services.groups.get_group(session, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Group not found")
    usernames = list(group.users or [])
    return run_analysis(service, usernames, force_refresh=force_refresh)
