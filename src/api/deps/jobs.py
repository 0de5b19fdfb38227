from __future__ import annotations

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.config.settings import Settings, get_settings
from api.db.locks import SeasonLockManager
from api.db.session import get_session, get_session_factory
from api.modules.jobs.repository import JobsRepository
from api.modules.jobs.runner import JobRunner
from api.modules.jobs.scheduler import JobScheduler
from api.modules.jobs.service import JobsService

SESSION_DEP = Depends(get_session)
SESSION_FACTORY_DEP = Depends(get_session_factory)
SETTINGS_DEP = Depends(get_settings)


def get_season_locks_dep(request: Request) -> SeasonLockManager:
    return request.app.state.season_locks


SEASON_LOCKS_DEP = Depends(get_season_locks_dep)


def get_jobs_service_dep(session: AsyncSession = SESSION_DEP) -> JobsService:
    return JobsService(repository=JobsRepository(session=session))


def get_job_runner_dep(
    session_factory: async_sessionmaker[AsyncSession] = SESSION_FACTORY_DEP,
    locks: SeasonLockManager = SEASON_LOCKS_DEP,
    settings: Settings = SETTINGS_DEP,
) -> JobRunner:
    return JobRunner(session_factory=session_factory, locks=locks, settings=settings)


JOBS_SERVICE_DEP = Depends(get_jobs_service_dep)
JOB_RUNNER_DEP = Depends(get_job_runner_dep)


def get_job_scheduler_dep(
    background_tasks: BackgroundTasks,
    jobs_service: JobsService = JOBS_SERVICE_DEP,
    runner: JobRunner = JOB_RUNNER_DEP,
) -> JobScheduler:
    return JobScheduler(
        jobs_service=jobs_service,
        background_tasks=background_tasks,
        run=runner.run,
    )
