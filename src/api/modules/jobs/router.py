from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from api.common.pagination import OffsetPage, build_page
from api.db.enums import JobStatus
from api.deps.jobs import get_jobs_service_dep
from api.modules.jobs.schemas import JobResponse
from api.modules.jobs.service import JobsService

router = APIRouter(prefix="/jobs", tags=["jobs"])
JOBS_SERVICE_DEP = Depends(get_jobs_service_dep)
STATUS_FILTER_QUERY = Query(default=None, alias="status")
LIMIT_QUERY = Query(default=50, ge=1, le=200)
OFFSET_QUERY = Query(default=0, ge=0)


@router.get(
    "",
    response_model=OffsetPage[JobResponse],
    summary="List Jobs",
    description="Lists background jobs, newest first, optionally filtered by status.",
)
async def list_jobs(
    status_filter: JobStatus | None = STATUS_FILTER_QUERY,
    limit: int = LIMIT_QUERY,
    offset: int = OFFSET_QUERY,
    jobs_service: JobsService = JOBS_SERVICE_DEP,
) -> OffsetPage[JobResponse]:
    total, jobs = await jobs_service.list_jobs(status=status_filter, limit=limit, offset=offset)
    return build_page(
        items=[JobResponse.from_job(job) for job in jobs],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/{job_id}",
    response_model=JobResponse,
    summary="Get Job",
    responses={
        200: {
            "description": "Job state returned.",
            "content": {
                "application/json": {
                    "example": {
                        "id": "b1c2d3e4-f5a6-4b7c-8d9e-0f1a2b3c4d5e",
                        "job_type": "match_deletion",
                        "status": "completed",
                        "progress_percent": 100,
                        "processed_items": 42,
                        "total_items": 42,
                        "payload": {"match_id": "3c1e8f0a-9b2d-4e6f-8a7c-5d4b3a2c1e0f"},
                        "result_data": {"games_deleted": 3, "games_replayed": 42},
                        "created_by": None,
                        "created_at": "2026-03-02T18:31:00",
                        "started_at": "2026-03-02T18:31:00",
                        "completed_at": "2026-03-02T18:31:01",
                    }
                }
            },
        },
        404: {
            "description": "Job not found.",
            "content": {"application/json": {"example": {"detail": "Job not found: ..."}}},
        },
    },
)
async def get_job(
    job_id: UUID,
    jobs_service: JobsService = JOBS_SERVICE_DEP,
) -> JobResponse:
    try:
        job = await jobs_service.get_job(job_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobResponse.from_job(job)
