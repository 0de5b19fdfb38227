from __future__ import annotations

import logging

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.config import Settings, get_settings
from api.db.locks import SeasonLockManager
from api.error_handling import register_error_handlers
from api.modules.configurations.router import router as configurations_router
from api.modules.games.router import router as games_router
from api.modules.health.router import router as health_router
from api.modules.jobs.router import router as jobs_router
from api.modules.matches.router import router as matches_router
from api.modules.players.router import router as players_router
from api.modules.recalculation.router import router as recalculation_router
from api.modules.seasons.router import router as seasons_router
from api.observability import configure_logging, register_request_logging

API_PREFIX = "/api/v1"

_RATING_ROUTERS: tuple[APIRouter, ...] = (
    players_router,
    configurations_router,
    seasons_router,
    matches_router,
    games_router,
    recalculation_router,
    jobs_router,
)

logger = logging.getLogger(__name__)


def _build_season_locks(cfg: Settings) -> SeasonLockManager:
    # One manager per app; ingestion, replay and jobs of this process share it.
    return SeasonLockManager(timeout_s=cfg.season_lock_timeout_s)


def create_app(settings: Settings | None = None) -> FastAPI:
    cfg = settings or get_settings()
    configure_logging(cfg)
    app = FastAPI(
        title=cfg.app_name,
        debug=cfg.app_debug,
        docs_url=cfg.docs_url,
        redoc_url=cfg.redoc_url,
    )
    register_error_handlers(app)
    if cfg.app_log_requests:
        register_request_logging(app)
    if cfg.app_cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cfg.app_cors_origins,
            allow_credentials=cfg.app_cors_allow_credentials,
            allow_methods=cfg.app_cors_allow_methods,
            allow_headers=cfg.app_cors_allow_headers,
        )
    app.state.settings = cfg
    app.state.season_locks = _build_season_locks(cfg)

    app.include_router(health_router)
    for rating_router in _RATING_ROUTERS:
        app.include_router(rating_router, prefix=API_PREFIX)
    logger.debug(
        "app_created",
        extra={
            "env": cfg.app_env,
            "lock_timeout_s": cfg.season_lock_timeout_s,
            "progress_interval": cfg.recalc_progress_interval,
        },
    )
    return app


app = create_app()
