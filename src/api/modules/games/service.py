from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, NamedTuple
from uuid import UUID

from api.common.clock import to_naive_utc
from api.common.errors import ConflictError
from api.db.enums import JobType
from api.db.locks import SeasonLockManager
from api.db.models import EloHistory, Game, Job, Season
from api.modules.games.repository import GamesRepository
from api.modules.games.schemas import GameUpdateRequest
from api.modules.jobs.scheduler import JobScheduler
from api.modules.recalculation.engine import ProgressReporter, RecalculationEngine

logger = logging.getLogger(__name__)


class GameRecord(NamedTuple):
    game: Game
    history: dict[UUID, EloHistory]


class GamesService:
    """Corrections to single games of a match.

    Requests only validate and schedule. The job applies the change under the
    season lock and replays the season in the same transaction.
    """

    def __init__(
        self,
        repository: GamesRepository,
        engine: RecalculationEngine,
        locks: SeasonLockManager,
        scheduler: JobScheduler | None = None,
    ) -> None:
        self.repository = repository
        self.engine = engine
        self.locks = locks
        self.scheduler = scheduler

    async def get_game(self, game_id: UUID) -> GameRecord:
        game = await self._require_game(game_id)
        return GameRecord(game=game, history=await self.repository.list_history(game.id))

    async def request_update(self, game_id: UUID, payload: GameUpdateRequest) -> Job:
        game = await self._require_game(game_id)
        if payload.winner_id is None and payload.played_at is None:
            raise ValueError("Nothing to change: give winner_id, played_at or both.")
        played_at = to_naive_utc(payload.played_at) if payload.played_at is not None else None
        await self._validate_update(game, payload.winner_id, played_at)

        job_payload: dict[str, Any] = {"game_id": str(game.id), "season_id": str(game.season_id)}
        if payload.winner_id is not None:
            job_payload["winner_id"] = str(payload.winner_id)
        if played_at is not None:
            job_payload["played_at"] = played_at.isoformat()
        return await self._enqueue(JobType.GAME_CORRECTION, job_payload, payload.created_by)

    async def request_deletion(self, game_id: UUID, created_by: str | None = None) -> Job:
        game = await self._require_game(game_id)
        return await self._enqueue(
            JobType.GAME_DELETION,
            {"game_id": str(game.id), "season_id": str(game.season_id)},
            created_by,
        )

    async def update_game(
        self,
        game_id: UUID,
        *,
        winner_id: UUID | None = None,
        played_at: datetime | None = None,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        game = await self._require_game(game_id)
        season = await self._require_season(game.season_id)
        async with self.locks.hold(self.repository.session, [season.id]):
            game = await self._require_game(game_id, reload=True, season_id=season.id)
            await self._validate_update(game, winner_id, played_at)
            flipped = winner_id is not None and winner_id != game.player1_id
            if flipped:
                game.player1_id, game.player2_id = game.player2_id, game.player1_id
            if played_at is not None:
                game.played_at = played_at
            self.repository.add(game)
            await self.repository.flush()
            summary = await self.engine.replay_season(season, reporter)
            await self.repository.commit()

        logger.info(
            "game_corrected",
            extra={
                "game_id": str(game_id),
                "season_id": str(season.id),
                "winner_flipped": flipped,
                "played_at_changed": played_at is not None,
            },
        )
        return {
            "game_id": str(game_id),
            "winner_flipped": flipped,
            "games_replayed": summary.games_replayed,
            "seasons": [summary.as_dict()],
        }

    async def delete_game(
        self,
        game_id: UUID,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        game = await self._require_game(game_id)
        season = await self._require_season(game.season_id)
        match_id = game.match_id
        async with self.locks.hold(self.repository.session, [season.id]):
            game = await self._require_game(game_id, reload=True, season_id=season.id)
            match_deleted = await self.repository.delete_game_rows(game)
            summary = await self.engine.replay_season(season, reporter)
            await self.repository.commit()

        logger.info(
            "game_deleted",
            extra={"game_id": str(game_id), "match_deleted": match_deleted},
        )
        return {
            "game_id": str(game_id),
            "match_id": str(match_id),
            "match_deleted": match_deleted,
            "games_replayed": summary.games_replayed,
            "seasons": [summary.as_dict()],
        }

    async def _validate_update(
        self,
        game: Game,
        winner_id: UUID | None,
        played_at: datetime | None,
    ) -> None:
        if winner_id is not None and winner_id not in (game.player1_id, game.player2_id):
            raise ValueError(f"Player {winner_id} did not play game {game.id}.")
        if played_at is None:
            return
        season = await self._require_season(game.season_id)
        following = await self.repository.get_next_season(season.start_date)
        if played_at < season.start_date or (
            following is not None and played_at >= following.start_date
        ):
            raise ValueError(
                f"{played_at.isoformat()} is outside season '{season.name}'; "
                "a game cannot be moved to another season."
            )

    async def _require_game(
        self,
        game_id: UUID,
        *,
        reload: bool = False,
        season_id: UUID | None = None,
    ) -> Game:
        game = await self.repository.get_game(game_id, reload=reload)
        if game is None:
            raise LookupError(f"Game not found: {game_id}")
        if season_id is not None and game.season_id != season_id:
            raise ConflictError(f"Game {game_id} moved to another season; retry.")
        return game

    async def _require_season(self, season_id: UUID) -> Season:
        season = await self.repository.get_season(season_id)
        if season is None:
            raise LookupError(f"Season not found: {season_id}")
        return season

    async def _enqueue(
        self,
        job_type: JobType,
        payload: dict[str, Any],
        created_by: str | None,
    ) -> Job:
        if self.scheduler is None:
            raise RuntimeError("No job scheduler is configured for this service.")
        return await self.scheduler.enqueue(job_type, payload, created_by=created_by)
