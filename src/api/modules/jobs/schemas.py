from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from api.db.enums import JobStatus, JobType
from api.db.models import Job


class JobReferenceResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "job_id": "7d4c2a9e-5b8f-4c1d-9e0a-3f2b1c4d5e6f",
                "job_type": "elo_recalculation",
                "status": "pending",
            }
        }
    )

    job_id: UUID
    job_type: JobType
    status: JobStatus

    @classmethod
    def from_job(cls, job: Job) -> JobReferenceResponse:
        return cls(job_id=job.id, job_type=job.job_type, status=job.status)


class JobResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "7d4c2a9e-5b8f-4c1d-9e0a-3f2b1c4d5e6f",
                "job_type": "elo_recalculation",
                "status": "running",
                "progress_percent": 40,
                "processed_items": 400,
                "total_items": 1000,
                "payload": {"season_id": "4aaddf8e-ca81-4347-a278-f6f7be86c6d0"},
                "result_data": None,
                "created_by": "admin",
                "created_at": "2026-03-01T12:00:00",
                "started_at": "2026-03-01T12:00:01",
                "completed_at": None,
            }
        }
    )

    id: UUID
    job_type: JobType
    status: JobStatus
    progress_percent: int
    processed_items: int
    total_items: int | None
    payload: dict[str, Any]
    result_data: dict[str, Any] | None
    created_by: str | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None

    @classmethod
    def from_job(cls, job: Job) -> JobResponse:
        return cls(
            id=job.id,
            job_type=job.job_type,
            status=job.status,
            progress_percent=job.progress,
            processed_items=job.processed_items,
            total_items=job.total_items,
            payload=job.payload or {},
            result_data=job.result_data,
            created_by=job.created_by,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )
