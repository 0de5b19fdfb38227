from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.common.pagination import OffsetPage, build_page
from api.deps.matches import get_matches_service_dep
from api.deps.players import get_players_service_dep
from api.modules.matches.schemas import MatchResponse
from api.modules.matches.service import MatchesService
from api.modules.matches.views import match_response
from api.modules.players.schemas import (
    MatchRatingPointResponse,
    PlayerCreateRequest,
    PlayerHistoryEntryResponse,
    PlayerRatingHistoryResponse,
    PlayerResponse,
    PlayerUpdateRequest,
)
from api.modules.players.service import PlayersService

router = APIRouter(prefix="/players", tags=["players"])
PLAYERS_SERVICE_DEP = Depends(get_players_service_dep)
MATCHES_SERVICE_DEP = Depends(get_matches_service_dep)
LIMIT_QUERY = Query(default=50, ge=1, le=200)
OFFSET_QUERY = Query(default=0, ge=0)
SEASON_FILTER_QUERY = Query(default=None)
INCLUDE_INACTIVE_QUERY = Query(default=True)


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.post(
    "",
    response_model=PlayerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Player",
    description=(
        "Registers a player. The player joins the active season at its starting rating."
    ),
    responses={
        201: {
            "description": "Player created.",
            "content": {
                "application/json": {
                    "example": {
                        "id": "0f7c8c2e-4f55-4a43-a3f7-2bb0a4f0f8a1",
                        "first_name": "Wenxi",
                        "last_name": "Huang",
                        "display_name": "Wenxi Huang",
                        "current_elo": 1000.0,
                        "is_active": True,
                        "created_at": "2026-03-01T00:00:00",
                        "updated_at": "2026-03-01T00:00:00",
                    }
                }
            },
        },
    },
)
async def post_player(
    request: PlayerCreateRequest,
    players_service: PlayersService = PLAYERS_SERVICE_DEP,
) -> PlayerResponse:
    player = await players_service.create_player(request)
    return PlayerResponse.model_validate(player)


@router.get(
    "",
    response_model=list[PlayerResponse],
    summary="List Players",
    description="Lists players ordered by current rating.",
)
async def list_players(
    include_inactive: bool = INCLUDE_INACTIVE_QUERY,
    players_service: PlayersService = PLAYERS_SERVICE_DEP,
) -> list[PlayerResponse]:
    players = await players_service.list_players(include_inactive=include_inactive)
    return [PlayerResponse.model_validate(player) for player in players]


@router.get(
    "/history",
    response_model=list[PlayerRatingHistoryResponse],
    summary="Get All Players Rating History",
    description=(
        "Returns one rating point per match for every active player, best rated "
        "player first and matches oldest first. Filter by season with `season_id`."
    ),
)
async def get_all_players_history(
    season_id: UUID | None = SEASON_FILTER_QUERY,
    players_service: PlayersService = PLAYERS_SERVICE_DEP,
) -> list[PlayerRatingHistoryResponse]:
    rows = await players_service.get_all_history(season_id=season_id)
    return [
        PlayerRatingHistoryResponse(
            player_id=player.id,
            display_name=player.display_name,
            current_elo=player.current_elo,
            history=[
                MatchRatingPointResponse(
                    match_id=point.match_id,
                    season_id=point.season_id,
                    season_name=point.season_name,
                    submitted_at=point.submitted_at,
                    games=point.games,
                    elo_before=point.elo_before,
                    elo_after=point.elo_after,
                    elo_change=point.elo_after - point.elo_before,
                    elo_version=point.elo_version,
                )
                for point in points
            ],
        )
        for player, points in rows
    ]


@router.get(
    "/{player_id}",
    response_model=PlayerResponse,
    summary="Get Player",
    responses={
        404: {
            "description": "Player not found.",
            "content": {"application/json": {"example": {"detail": "Player not found: ..."}}},
        },
    },
)
async def get_player(
    player_id: UUID,
    players_service: PlayersService = PLAYERS_SERVICE_DEP,
) -> PlayerResponse:
    try:
        player = await players_service.get_player(player_id)
    except LookupError as exc:
        raise _not_found(exc) from exc
    return PlayerResponse.model_validate(player)


@router.patch(
    "/{player_id}",
    response_model=PlayerResponse,
    summary="Update Player",
    description="Renames a player or toggles whether they can submit new matches.",
)
async def patch_player(
    player_id: UUID,
    request: PlayerUpdateRequest,
    players_service: PlayersService = PLAYERS_SERVICE_DEP,
) -> PlayerResponse:
    try:
        player = await players_service.update_player(player_id, request)
    except LookupError as exc:
        raise _not_found(exc) from exc
    return PlayerResponse.model_validate(player)


@router.get(
    "/{player_id}/history",
    response_model=OffsetPage[PlayerHistoryEntryResponse],
    summary="Get Player Rating History",
    description="Returns the player's per-game rating changes, newest first.",
    responses={
        200: {
            "description": "Paged rating history.",
            "content": {
                "application/json": {
                    "example": {
                        "items": [
                            {
                                "game_id": "9a8b7c6d-5e4f-4a3b-2c1d-0e9f8a7b6c5d",
                                "match_id": "3c1e8f0a-9b2d-4e6f-8a7c-5d4b3a2c1e0f",
                                "season_id": "4aaddf8e-ca81-4347-a278-f6f7be86c6d0",
                                "opponent_id": "5e2d3c4b-1a2b-4c3d-8e9f-0a1b2c3d4e5f",
                                "won": True,
                                "played_at": "2026-03-02T18:30:00",
                                "elo_before": 1000.0,
                                "elo_after": 1016.0,
                                "elo_change": 16.0,
                                "k_factor": 32.0,
                                "elo_version": "v1",
                            }
                        ],
                        "total": 1,
                        "limit": 50,
                        "offset": 0,
                        "has_more": False,
                    }
                }
            },
        },
    },
)
async def get_player_history(
    player_id: UUID,
    season_id: UUID | None = SEASON_FILTER_QUERY,
    limit: int = LIMIT_QUERY,
    offset: int = OFFSET_QUERY,
    players_service: PlayersService = PLAYERS_SERVICE_DEP,
) -> OffsetPage[PlayerHistoryEntryResponse]:
    try:
        total, rows = await players_service.get_history(
            player_id,
            season_id=season_id,
            limit=limit,
            offset=offset,
        )
    except LookupError as exc:
        raise _not_found(exc) from exc
    items = [
        PlayerHistoryEntryResponse(
            game_id=game.id,
            match_id=game.match_id,
            season_id=game.season_id,
            opponent_id=game.loser_id if game.winner_id == player_id else game.winner_id,
            won=game.winner_id == player_id,
            played_at=game.played_at,
            elo_before=entry.elo_before,
            elo_after=entry.elo_after,
            elo_change=entry.elo_after - entry.elo_before,
            k_factor=entry.k_factor,
            elo_version=entry.elo_version,
        )
        for entry, game in rows
    ]
    return build_page(items=items, total=total, limit=limit, offset=offset)


@router.get(
    "/{player_id}/matches",
    response_model=OffsetPage[MatchResponse],
    summary="List Player Matches",
)
async def list_player_matches(
    player_id: UUID,
    season_id: UUID | None = SEASON_FILTER_QUERY,
    limit: int = LIMIT_QUERY,
    offset: int = OFFSET_QUERY,
    players_service: PlayersService = PLAYERS_SERVICE_DEP,
    matches_service: MatchesService = MATCHES_SERVICE_DEP,
) -> OffsetPage[MatchResponse]:
    try:
        await players_service.get_player(player_id)
    except LookupError as exc:
        raise _not_found(exc) from exc
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
