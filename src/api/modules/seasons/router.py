from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.common.errors import ConflictError
from api.common.pagination import OffsetPage, build_page
from api.db.models import Job, Player, PlayerSeason
from api.deps.seasons import get_seasons_service_dep
from api.modules.jobs.schemas import JobReferenceResponse
from api.modules.players.schemas import PlayerResponse
from api.modules.seasons.schemas import (
    ConfigurationCorrectionRequest,
    InclusionRequest,
    LeaderboardEntryResponse,
    MembershipMutationResponse,
    MembershipResponse,
    SeasonCreateRequest,
    SeasonMutationResponse,
    SeasonResponse,
    SeasonUpdateRequest,
)
from api.modules.seasons.service import SeasonsService

router = APIRouter(prefix="/seasons", tags=["seasons"])
SEASONS_SERVICE_DEP = Depends(get_seasons_service_dep)
LEADERBOARD_LIMIT_QUERY = Query(default=100, ge=1, le=500)
OFFSET_QUERY = Query(default=0, ge=0)
INCLUDED_ONLY_QUERY = Query(default=False)
CREATED_BY_QUERY = Query(default=None, max_length=120)

_SEASON_EXAMPLE = {
    "id": "4aaddf8e-ca81-4347-a278-f6f7be86c6d0",
    "name": "Spring 2026",
    "description": "Ratings reset for the spring ladder.",
    "start_date": "2026-03-01T00:00:00",
    "starting_elo": 1000.0,
    "k_policy": None,
    "k_factor": None,
    "base_k_factor": None,
    "new_player_k_bonus": None,
    "new_player_bonus_period": None,
    "is_active": True,
    "created_by": "admin",
    "created_at": "2026-03-01T00:00:00",
}


def _win_rate(membership: PlayerSeason) -> float:
    if membership.games_played == 0:
        return 0.0
    return round(membership.wins / membership.games_played, 4)


def _membership_response(membership: PlayerSeason, player: Player) -> MembershipResponse:
    return MembershipResponse(
        player_id=player.id,
        season_id=membership.season_id,
        player_name=player.display_name,
        current_elo=membership.current_elo,
        games_played=membership.games_played,
        wins=membership.wins,
        losses=membership.losses,
        win_rate=_win_rate(membership),
        is_included=membership.is_included,
        is_active=player.is_active,
    )


def _job_reference(job: Job | None) -> JobReferenceResponse | None:
    if job is None:
        return None
    return JobReferenceResponse.from_job(job)


@router.get(
    "",
    response_model=list[SeasonResponse],
    summary="List Seasons",
    description="Lists seasons in chronological order of their start date.",
)
async def list_seasons(
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> list[SeasonResponse]:
    seasons = await seasons_service.list_seasons()
    return [SeasonResponse.model_validate(season) for season in seasons]


@router.post(
    "",
    response_model=SeasonMutationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Season",
    description=(
        "Creates a season starting at `start_date` and enrolls every active player "
        "at its starting rating. When the new window already holds recorded games, "
        "a reassignment job moves them and the response references it."
    ),
    responses={
        201: {
            "description": "Season created.",
            "content": {
                "application/json": {"example": {"season": _SEASON_EXAMPLE, "job": None}}
            },
        },
        400: {
            "description": "Duplicate name or start date, or invalid K-factor override.",
            "content": {
                "application/json": {
                    "example": {"detail": "A season named 'Spring 2026' already exists."}
                }
            },
        },
    },
)
async def post_season(
    request: SeasonCreateRequest,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> SeasonMutationResponse:
    try:
        season, job = await seasons_service.create_season(request)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return SeasonMutationResponse(
        season=SeasonResponse.model_validate(season),
        job=_job_reference(job),
    )


@router.get(
    "/active",
    response_model=SeasonResponse,
    summary="Get Active Season",
    responses={
        200: {
            "description": "Active season returned.",
            "content": {"application/json": {"example": _SEASON_EXAMPLE}},
        },
        404: {
            "description": "No active season found.",
            "content": {"application/json": {"example": {"detail": "No active season found."}}},
        },
    },
)
async def get_active_season(
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> SeasonResponse:
    season = await seasons_service.get_active_season()
    if season is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active season found.",
        )
    return SeasonResponse.model_validate(season)


@router.get("/{season_id}", response_model=SeasonResponse, summary="Get Season")
async def get_season(
    season_id: UUID,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> SeasonResponse:
    try:
        season = await seasons_service.get_season(season_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return SeasonResponse.model_validate(season)


@router.patch(
    "/{season_id}",
    response_model=SeasonMutationResponse,
    summary="Update Season",
    description=(
        "Renames or describes a season. Changing the starting rating or the "
        "K-factor override schedules a recalculation of the season."
    ),
)
async def patch_season(
    season_id: UUID,
    request: SeasonUpdateRequest,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> SeasonMutationResponse:
    try:
        season, job = await seasons_service.update_season(season_id, request)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return SeasonMutationResponse(
        season=SeasonResponse.model_validate(season),
        job=_job_reference(job),
    )


@router.delete(
    "/{season_id}",
    response_model=JobReferenceResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Delete Season",
    description=(
        "Schedules deletion of a season. Its games and matches move to the "
        "preceding season, which is then recalculated."
    ),
    responses={
        400: {
            "description": "The season cannot be deleted.",
            "content": {
                "application/json": {
                    "example": {
                        "detail": "Cannot delete the active season; activate another season first."
                    }
                }
            },
        },
        404: {
            "description": "Season not found.",
            "content": {"application/json": {"example": {"detail": "Season not found: ..."}}},
        },
    },
)
async def delete_season(
    season_id: UUID,
    created_by: str | None = CREATED_BY_QUERY,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> JobReferenceResponse:
    try:
        job = await seasons_service.request_deletion(season_id, created_by=created_by)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return JobReferenceResponse.from_job(job)


@router.post(
    "/{season_id}/activate",
    response_model=SeasonResponse,
    summary="Activate Season",
    description=(
        "Makes this the only active season. Player ratings shown outside a season "
        "switch to this season's standings."
    ),
    responses={
        409: {
            "description": "Season already active or busy.",
            "content": {
                "application/json": {
                    "example": {"detail": "Season 'Spring 2026' is already active."}
                }
            },
        },
    },
)
async def activate_season(
    season_id: UUID,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> SeasonResponse:
    try:
        season = await seasons_service.activate_season(season_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return SeasonResponse.model_validate(season)


@router.get(
    "/{season_id}/leaderboard",
    response_model=OffsetPage[LeaderboardEntryResponse],
    summary="Get Season Leaderboard",
    description="Included players ranked by their rating in this season.",
)
async def get_leaderboard(
    season_id: UUID,
    limit: int = LEADERBOARD_LIMIT_QUERY,
    offset: int = OFFSET_QUERY,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> OffsetPage[LeaderboardEntryResponse]:
    try:
        total, rows = await seasons_service.get_leaderboard(season_id, limit=limit, offset=offset)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    items = [
        LeaderboardEntryResponse(
            rank=rank,
            player_id=player.id,
            player_name=player.display_name,
            current_elo=membership.current_elo,
            games_played=membership.games_played,
            wins=membership.wins,
            losses=membership.losses,
            win_rate=_win_rate(membership),
        )
        for rank, membership, player in rows
    ]
    return build_page(items=items, total=total, limit=limit, offset=offset)


@router.get(
    "/{season_id}/players",
    response_model=list[MembershipResponse],
    summary="List Season Members",
)
async def list_members(
    season_id: UUID,
    included_only: bool = INCLUDED_ONLY_QUERY,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> list[MembershipResponse]:
    try:
        rows = await seasons_service.list_members(season_id, included_only=included_only)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [_membership_response(membership, player) for membership, player in rows]


@router.get(
    "/{season_id}/players/available",
    response_model=list[PlayerResponse],
    summary="List Players Outside Season",
    description="Active players with no membership in this season yet.",
)
async def list_available_players(
    season_id: UUID,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> list[PlayerResponse]:
    try:
        players = await seasons_service.list_available_players(season_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return [PlayerResponse.model_validate(player) for player in players]


@router.put(
    "/{season_id}/players/{player_id}",
    response_model=MembershipMutationResponse,
    summary="Set Season Inclusion",
    description=(
        "Includes or excludes a player from a season, creating the membership when "
        "missing. A change schedules a recalculation of the season."
    ),
)
async def put_inclusion(
    season_id: UUID,
    player_id: UUID,
    request: InclusionRequest,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> MembershipMutationResponse:
    try:
        membership, player, job = await seasons_service.set_inclusion(
            season_id,
            player_id,
            request.is_included,
            created_by=request.created_by,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except ConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return MembershipMutationResponse(
        membership=_membership_response(membership, player),
        job=_job_reference(job),
    )


@router.put(
    "/{season_id}/configuration",
    response_model=JobReferenceResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Correct Season Configuration Version",
    description=(
        "Schedules a recalculation that retags every game of the season with the "
        "given configuration version and replays it."
    ),
)
async def put_configuration(
    season_id: UUID,
    request: ConfigurationCorrectionRequest,
    seasons_service: SeasonsService = SEASONS_SERVICE_DEP,
) -> JobReferenceResponse:
    try:
        job = await seasons_service.request_configuration_correction(
            season_id,
            request.version_name,
            created_by=request.created_by,
        )
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobReferenceResponse.from_job(job)
