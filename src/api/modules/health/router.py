from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.config import Settings, get_settings
from api.db.locks import SeasonLockManager
from api.db.session import get_session

router = APIRouter(prefix="/health", tags=["health"])
SESSION_DEP = Depends(get_session)


class HealthResponse(BaseModel):
    status: str
    app: str
    env: str
    busy_seasons: int = 0


class DatabaseHealthResponse(BaseModel):
    status: str
    app: str
    env: str
    checks: dict[str, bool]


def _resolve_settings(request: Request) -> Settings:
    state_settings = getattr(request.app.state, "settings", None)
    if isinstance(state_settings, Settings):
        return state_settings
    return get_settings()


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health Check",
    description=(
        "Returns application metadata and how many seasons are currently "
        "held by an ingestion or replay in this process."
    ),
)
def get_health(request: Request) -> HealthResponse:
    settings = _resolve_settings(request)
    locks = getattr(request.app.state, "season_locks", None)
    return HealthResponse(
        status="ok",
        app=settings.app_name,
        env=settings.app_env,
        busy_seasons=locks.busy_count() if isinstance(locks, SeasonLockManager) else 0,
    )


@router.get(
    "/db",
    response_model=DatabaseHealthResponse,
    summary="Database Check",
    description="Checks that the rating store answers a trivial query.",
    responses={503: {"description": "Database unreachable."}},
)
async def get_db_health(
    request: Request,
    session: AsyncSession = SESSION_DEP,
) -> DatabaseHealthResponse:
    settings = _resolve_settings(request)
    result = await session.execute(text("SELECT 1"))
    if result.scalar_one() != 1:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        )
    return DatabaseHealthResponse(
        status="ok",
        app=settings.app_name,
        env=settings.app_env,
        checks={"db": True},
    )
