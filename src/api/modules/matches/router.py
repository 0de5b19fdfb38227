from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.common.errors import ConflictError
from api.common.pagination import OffsetPage, build_page
from api.deps.matches import get_matches_service_dep
from api.modules.jobs.schemas import JobReferenceResponse
from api.modules.matches.schemas import MatchResponse, MatchSubmitRequest
from api.modules.matches.service import MatchesService
from api.modules.matches.views import match_response

router = APIRouter(prefix="/matches", tags=["matches"])
MATCHES_SERVICE_DEP = Depends(get_matches_service_dep)
LIMIT_QUERY = Query(default=50, ge=1, le=200)
OFFSET_QUERY = Query(default=0, ge=0)
SEASON_FILTER_QUERY = Query(default=None)
PLAYER_FILTER_QUERY = Query(default=None)
CREATED_BY_QUERY = Query(default=None, max_length=120)


@router.post(
    "",
    response_model=MatchResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Match",
    description=(
        "Records a match of one or more games between two players in the active season. "
        "Every game is rated in order and all of them are stored together, or none are."
    ),
    responses={
        400: {
            "description": "Invalid match for the current season.",
            "content": {
                "application/json": {
                    "example": {"detail": "A match needs two distinct players."}
                }
            },
        },
        404: {
            "description": "Unknown player.",
            "content": {"application/json": {"example": {"detail": "Player not found: ..."}}},
        },
        409: {
            "description": "The season is being recalculated; retry shortly.",
            "content": {
                "application/json": {
                    "example": {"detail": "Season ... is busy; retry shortly."}
                }
            },
        },
    },
)
async def post_match(
    request: MatchSubmitRequest,
    matches_service: MatchesService = MATCHES_SERVICE_DEP,
) -> MatchResponse:
    try:
        record = await matches_service.submit_match(request)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return match_response(record)


@router.get(
    "",
    response_model=OffsetPage[MatchResponse],
    summary="List Matches",
    description="Lists matches, newest first, optionally filtered by season or player.",
)
async def list_matches(
    season_id: UUID | None = SEASON_FILTER_QUERY,
    player_id: UUID | None = PLAYER_FILTER_QUERY,
    limit: int = LIMIT_QUERY,
    offset: int = OFFSET_QUERY,
    matches_service: MatchesService = MATCHES_SERVICE_DEP,
) -> OffsetPage[MatchResponse]:
    total, records = await matches_service.list_matches(
        season_id=season_id,
        player_id=player_id,
        limit=limit,
        offset=offset,
    )
    return build_page(
        items=[match_response(record) for record in records],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{match_id}",
    response_model=MatchResponse,
    summary="Get Match",
)
async def get_match(
    match_id: UUID,
    matches_service: MatchesService = MATCHES_SERVICE_DEP,
) -> MatchResponse:
    try:
        record = await matches_service.get_match(match_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return match_response(record)


@router.delete(
    "/{match_id}",
    response_model=JobReferenceResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Delete Match",
    description=(
        "Schedules removal of the match with its games and rating history, "
        "followed by a replay of the season. Poll the returned job for the outcome."
    ),
    responses={
        202: {
            "description": "Deletion job accepted.",
            "content": {
                "application/json": {
                    "example": {
                        "job_id": "b1c2d3e4-f5a6-4b7c-8d9e-0f1a2b3c4d5e",
                        "job_type": "match_deletion",
                        "status": "pending",
                    }
                }
            },
        },
        404: {
            "description": "Match not found.",
            "content": {"application/json": {"example": {"detail": "Match not found: ..."}}},
        },
    },
)
async def delete_match(
    match_id: UUID,
    created_by: str | None = CREATED_BY_QUERY,
    matches_service: MatchesService = MATCHES_SERVICE_DEP,
) -> JobReferenceResponse:
    try:
        job = await matches_service.request_deletion(match_id, created_by=created_by)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobReferenceResponse.from_job(job)
