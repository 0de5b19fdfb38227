from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.db.locks import SeasonLockManager
from api.db.session import get_session
from api.deps.jobs import SEASON_LOCKS_DEP, get_job_scheduler_dep
from api.deps.recalculation import get_recalculation_engine_dep
from api.modules.games.repository import GamesRepository
from api.modules.games.service import GamesService
from api.modules.jobs.scheduler import JobScheduler
from api.modules.recalculation.engine import RecalculationEngine

SESSION_DEP = Depends(get_session)
ENGINE_DEP = Depends(get_recalculation_engine_dep)
SCHEDULER_DEP = Depends(get_job_scheduler_dep)


def get_games_service_dep(
    session: AsyncSession = SESSION_DEP,
    engine: RecalculationEngine = ENGINE_DEP,
    locks: SeasonLockManager = SEASON_LOCKS_DEP,
    scheduler: JobScheduler = SCHEDULER_DEP,
) -> GamesService:
    return GamesService(
        repository=GamesRepository(session=session),
        engine=engine,
        locks=locks,
        scheduler=scheduler,
    )
