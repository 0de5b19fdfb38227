from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.deps.games import get_games_service_dep
from api.modules.games.schemas import GameResponse, GameUpdateRequest
from api.modules.games.service import GameRecord, GamesService
from api.modules.jobs.schemas import JobReferenceResponse

router = APIRouter(prefix="/games", tags=["games"])
GAMES_SERVICE_DEP = Depends(get_games_service_dep)
CREATED_BY_QUERY = Query(default=None, max_length=120)


def _game_response(record: GameRecord) -> GameResponse:
    game = record.game
    winner = record.history.get(game.winner_id)
    loser = record.history.get(game.loser_id)
    return GameResponse(
        id=game.id,
        match_id=game.match_id,
        season_id=game.season_id,
        game_number=game.game_number,
        played_at=game.played_at,
        winner_id=game.winner_id,
        loser_id=game.loser_id,
        elo_version=game.elo_version,
        winner_elo_before=winner.elo_before if winner else 0.0,
        winner_elo_after=winner.elo_after if winner else 0.0,
        loser_elo_before=loser.elo_before if loser else 0.0,
        loser_elo_after=loser.elo_after if loser else 0.0,
    )


@router.get(
    "/{game_id}",
    response_model=GameResponse,
    summary="Get Game",
)
async def get_game(
    game_id: UUID,
    games_service: GamesService = GAMES_SERVICE_DEP,
) -> GameResponse:
    try:
        record = await games_service.get_game(game_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return _game_response(record)


@router.patch(
    "/{game_id}",
    response_model=JobReferenceResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Correct Game",
    description=(
        "Schedules a correction of one game's winner or time inside its season, "
        "followed by a replay of that season. Poll the returned job for the outcome."
    ),
    responses={
        400: {"description": "Unknown winner, empty correction, or a time outside the season."},
        404: {"description": "Game not found."},
    },
)
async def patch_game(
    game_id: UUID,
    request: GameUpdateRequest,
    games_service: GamesService = GAMES_SERVICE_DEP,
) -> JobReferenceResponse:
    try:
        job = await games_service.request_update(game_id, request)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return JobReferenceResponse.from_job(job)


@router.delete(
    "/{game_id}",
    response_model=JobReferenceResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Delete Game",
    description=(
        "Schedules removal of one game and its rating history, then a replay of the "
        "season. A match left without games is removed with it."
    ),
    responses={404: {"description": "Game not found."}},
)
async def delete_game(
    game_id: UUID,
    created_by: str | None = CREATED_BY_QUERY,
    games_service: GamesService = GAMES_SERVICE_DEP,
) -> JobReferenceResponse:
    try:
        job = await games_service.request_deletion(game_id, created_by=created_by)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobReferenceResponse.from_job(job)
