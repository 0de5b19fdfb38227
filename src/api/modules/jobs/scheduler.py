from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from fastapi import BackgroundTasks

from api.db.enums import JobType
from api.db.models import Job
from api.modules.jobs.service import JobsService

logger = logging.getLogger(__name__)

JobRun = Callable[[UUID], Awaitable[None]]


class JobScheduler:
    """Persists a pending job and hands it to the background runner."""

    def __init__(
        self,
        jobs_service: JobsService,
        background_tasks: BackgroundTasks | None = None,
        run: JobRun | None = None,
    ) -> None:
        self.jobs_service = jobs_service
        self.background_tasks = background_tasks
        self.run = run

    async def enqueue(
        self,
        job_type: JobType,
        payload: dict[str, Any],
        created_by: str | None = None,
    ) -> Job:
        job = await self.jobs_service.create_job(job_type, payload, created_by=created_by)
        logger.info(
            "job_enqueued",
            extra={"job_id": str(job.id), "job_type": job.job_type.value, "payload": payload},
        )
        if self.background_tasks is not None and self.run is not None:
            self.background_tasks.add_task(self.run, job.id)
        return job
