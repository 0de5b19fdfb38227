from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from api.common.pagination import clamp_window
from api.db.enums import JobStatus, JobType
from api.db.models import Job
from api.modules.jobs.repository import JobsRepository


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class JobsService:
    def __init__(self, repository: JobsRepository) -> None:
        self.repository = repository

    async def create_job(
        self,
        job_type: JobType,
        payload: dict[str, Any],
        created_by: str | None = None,
    ) -> Job:
        job = Job(job_type=job_type, payload=payload, created_by=created_by)
        return await self.repository.create_job(job)

    async def get_job(self, job_id: UUID) -> Job:
        job = await self.repository.get_job(job_id)
        if job is None:
            raise LookupError(f"Job not found: {job_id}")
        return job

    async def list_jobs(
        self,
        *,
        status: JobStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[int, list[Job]]:
        safe_limit, safe_offset = clamp_window(limit, offset)
        total = await self.repository.count_jobs(status=status)
        jobs = await self.repository.list_jobs(status=status, limit=safe_limit, offset=safe_offset)
        return total, jobs

    async def mark_running(self, job_id: UUID) -> Job:
        job = await self.get_job(job_id)
        job.status = JobStatus.RUNNING
        job.started_at = _now()
        return await self.repository.save_job(job)

    async def update_progress(self, job_id: UUID, processed: int, total: int) -> Job:
        job = await self.get_job(job_id)
        job.processed_items = processed
        job.total_items = total
        job.progress = _percent(processed, total)
        return await self.repository.save_job(job)

    async def mark_completed(self, job_id: UUID, result: dict[str, Any]) -> Job:
        job = await self.get_job(job_id)
        processed = int(result.get("games_replayed", job.processed_items))
        job.status = JobStatus.COMPLETED
        job.processed_items = processed
        job.total_items = processed
        job.progress = 100
        job.result_data = result
        job.completed_at = _now()
        return await self.repository.save_job(job)

    async def mark_failed(
        self,
        job_id: UUID,
        error: str,
        offending_record: dict[str, Any] | None = None,
    ) -> Job:
        job = await self.get_job(job_id)
        result: dict[str, Any] = {"error": error}
        if offending_record:
            result["offending_record"] = offending_record
        job.status = JobStatus.FAILED
        job.result_data = result
        job.completed_at = _now()
        return await self.repository.save_job(job)


def _percent(processed: int, total: int) -> int:
    if total <= 0:
        return 0
    return max(0, min(100, (processed * 100) // total))
