from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.config.settings import Settings, get_settings
from api.db.locks import SeasonLockManager
from api.db.session import get_session
from api.deps.jobs import SEASON_LOCKS_DEP
from api.modules.recalculation.engine import RecalculationEngine
from api.modules.recalculation.repository import RecalculationRepository
from api.modules.recalculation.service import RecalculationService

SESSION_DEP = Depends(get_session)
SETTINGS_DEP = Depends(get_settings)


def get_recalculation_engine_dep(
    session: AsyncSession = SESSION_DEP,
    settings: Settings = SETTINGS_DEP,
) -> RecalculationEngine:
    return RecalculationEngine(
        RecalculationRepository(session=session),
        progress_interval=settings.recalc_progress_interval,
    )


ENGINE_DEP = Depends(get_recalculation_engine_dep)


def get_recalculation_service_dep(
    session: AsyncSession = SESSION_DEP,
    engine: RecalculationEngine = ENGINE_DEP,
    locks: SeasonLockManager = SEASON_LOCKS_DEP,
) -> RecalculationService:
    return RecalculationService(
        repository=RecalculationRepository(session=session),
        engine=engine,
        locks=locks,
    )
