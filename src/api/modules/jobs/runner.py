from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.common.errors import ConflictError, ReplayConsistencyError
from api.config.settings import Settings
from api.db.enums import JobType
from api.db.locks import SeasonLockManager
from api.modules.games.repository import GamesRepository
from api.modules.games.service import GamesService
from api.modules.jobs.repository import JobsRepository
from api.modules.jobs.service import JobsService
from api.modules.matches.repository import MatchesRepository
from api.modules.matches.service import MatchesService
from api.modules.recalculation.engine import ProgressReporter, RecalculationEngine
from api.modules.recalculation.repository import RecalculationRepository
from api.modules.recalculation.service import RecalculationService
from api.modules.seasons.repository import SeasonsRepository
from api.modules.seasons.service import SeasonsService
from api.observability import job_log_context

logger = logging.getLogger(__name__)


class JobRunner:
    """Executes a persisted job outside the request that created it.

    The job's own work runs in a fresh session and waits for season locks
    without a deadline. Status and progress writes use short separate
    sessions so they survive a rolled back replay.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: SeasonLockManager,
        settings: Settings,
    ) -> None:
        self.session_factory = session_factory
        self.locks = locks.patient()
        self.settings = settings

    async def run(self, job_id: UUID) -> None:
        with job_log_context(str(job_id)):
            await self._run(job_id)

    async def _run(self, job_id: UUID) -> None:
        try:
            async with self.session_factory() as session:
                job = await JobsService(JobsRepository(session)).mark_running(job_id)
                job_type = job.job_type
                payload = dict(job.payload or {})
        except LookupError:
            logger.error("job_missing", extra={"job_id": str(job_id)})
            return
        logger.info("job_started", extra={"job_id": str(job_id), "job_type": job_type.value})

        try:
            async with self.session_factory() as session:
                result = await self._execute(session, job_type, payload, self._reporter(job_id))
        except ReplayConsistencyError as exc:
            logger.error(
                "job_failed",
                extra={
                    "job_id": str(job_id),
                    "error": str(exc),
                    "offending_record": exc.offending_record,
                },
            )
            await self._mark_failed(job_id, str(exc), exc.offending_record)
            return
        except (LookupError, ValueError, ConflictError) as exc:
            logger.warning("job_failed", extra={"job_id": str(job_id), "error": str(exc)})
            await self._mark_failed(job_id, str(exc))
            return
        except Exception as exc:
            logger.exception("job_crashed", extra={"job_id": str(job_id)})
            await self._mark_failed(job_id, f"{type(exc).__name__}: {exc}")
            return

        async with self.session_factory() as session:
            await JobsService(JobsRepository(session)).mark_completed(job_id, result)
        logger.info(
            "job_completed",
            extra={
                "job_id": str(job_id),
                "job_type": job_type.value,
                "games_replayed": result.get("games_replayed", 0),
            },
        )

    async def _execute(
        self,
        session: AsyncSession,
        job_type: JobType,
        payload: dict[str, Any],
        reporter: ProgressReporter,
    ) -> dict[str, Any]:
        engine = RecalculationEngine(
            RecalculationRepository(session),
            progress_interval=self.settings.recalc_progress_interval,
        )
        if job_type == JobType.ELO_RECALCULATION:
            service = RecalculationService(
                repository=RecalculationRepository(session),
                engine=engine,
                locks=self.locks,
            )
            season_id = payload.get("season_id")
            return await service.recalculate(
                UUID(season_id) if season_id else None,
                reporter,
                retag_version=payload.get("retag_version"),
            )
        if job_type == JobType.MATCH_DELETION:
            matches = MatchesService(
                repository=MatchesRepository(session),
                engine=engine,
                locks=self.locks,
                settings=self.settings,
            )
            return await matches.delete_match(UUID(payload["match_id"]), reporter)
        if job_type in (JobType.GAME_CORRECTION, JobType.GAME_DELETION):
            games = GamesService(
                repository=GamesRepository(session),
                engine=engine,
                locks=self.locks,
            )
            if job_type == JobType.GAME_DELETION:
                return await games.delete_game(UUID(payload["game_id"]), reporter)
            winner_id = payload.get("winner_id")
            played_at = payload.get("played_at")
            return await games.update_game(
                UUID(payload["game_id"]),
                winner_id=UUID(winner_id) if winner_id else None,
                played_at=datetime.fromisoformat(played_at) if played_at else None,
                reporter=reporter,
            )

        seasons = SeasonsService(
            repository=SeasonsRepository(session),
            engine=engine,
            locks=self.locks,
            settings=self.settings,
        )
        if job_type == JobType.SEASON_DELETION:
            return await seasons.delete_season(UUID(payload["season_id"]), reporter)
        if job_type == JobType.SEASON_REASSIGNMENT:
            return await seasons.reassign_games(reporter)
        raise ValueError(f"Unsupported job type: {job_type}")

    def _reporter(self, job_id: UUID) -> ProgressReporter:
        async def report(processed: int, total: int) -> None:
            try:
                async with self.session_factory() as session:
                    await JobsService(JobsRepository(session)).update_progress(
                        job_id,
                        processed,
                        total,
                    )
            except SQLAlchemyError as exc:
                logger.warning(
                    "job_progress_write_failed",
                    extra={"job_id": str(job_id), "processed": processed, "error": str(exc)},
                )

        return report

    async def _mark_failed(
        self,
        job_id: UUID,
        error: str,
        offending_record: dict[str, Any] | None = None,
    ) -> None:
        async with self.session_factory() as session:
            await JobsService(JobsRepository(session)).mark_failed(job_id, error, offending_record)
