from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.config.settings import Settings, get_settings
from api.db.locks import SeasonLockManager
from api.db.session import get_session
from api.deps.jobs import SEASON_LOCKS_DEP, get_job_scheduler_dep
from api.deps.recalculation import get_recalculation_engine_dep
from api.modules.jobs.scheduler import JobScheduler
from api.modules.recalculation.engine import RecalculationEngine
from api.modules.seasons.repository import SeasonsRepository
from api.modules.seasons.service import SeasonsService

SESSION_DEP = Depends(get_session)
SETTINGS_DEP = Depends(get_settings)
ENGINE_DEP = Depends(get_recalculation_engine_dep)
SCHEDULER_DEP = Depends(get_job_scheduler_dep)


def get_seasons_service_dep(
    session: AsyncSession = SESSION_DEP,
    engine: RecalculationEngine = ENGINE_DEP,
    locks: SeasonLockManager = SEASON_LOCKS_DEP,
    settings: Settings = SETTINGS_DEP,
    scheduler: JobScheduler = SCHEDULER_DEP,
) -> SeasonsService:
    return SeasonsService(
        repository=SeasonsRepository(session=session),
        engine=engine,
        locks=locks,
        settings=settings,
        scheduler=scheduler,
    )
