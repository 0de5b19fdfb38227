from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from api.db.enums import JobType
from api.deps.jobs import get_job_scheduler_dep
from api.deps.recalculation import get_recalculation_service_dep
from api.modules.jobs.scheduler import JobScheduler
from api.modules.jobs.schemas import JobReferenceResponse
from api.modules.recalculation.schemas import RecalculationRequest
from api.modules.recalculation.service import RecalculationService

router = APIRouter(prefix="/recalculations", tags=["recalculations"])
RECALCULATION_SERVICE_DEP = Depends(get_recalculation_service_dep)
JOB_SCHEDULER_DEP = Depends(get_job_scheduler_dep)


@router.post(
    "",
    response_model=JobReferenceResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Recalculate Ratings",
    description=(
        "Schedules a full replay of one season, or of every season in start order "
        "when `season_id` is `\"all\"`. Poll the returned job for progress."
    ),
    responses={
        202: {
            "description": "Recalculation job accepted.",
            "content": {
                "application/json": {
                    "example": {
                        "job_id": "b1c2d3e4-f5a6-4b7c-8d9e-0f1a2b3c4d5e",
                        "job_type": "elo_recalculation",
                        "status": "pending",
                    }
                }
            },
        },
        404: {
            "description": "Season not found.",
            "content": {"application/json": {"example": {"detail": "Season not found: ..."}}},
        },
    },
)
async def post_recalculation(
    request: RecalculationRequest,
    recalculation_service: RecalculationService = RECALCULATION_SERVICE_DEP,
    scheduler: JobScheduler = JOB_SCHEDULER_DEP,
) -> JobReferenceResponse:
    season_id = request.target_season_id
    try:
        await recalculation_service.resolve_targets(season_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    job = await scheduler.enqueue(
        JobType.ELO_RECALCULATION,
        {"season_id": str(season_id) if season_id is not None else None},
        created_by=request.created_by,
    )
    return JobReferenceResponse.from_job(job)
