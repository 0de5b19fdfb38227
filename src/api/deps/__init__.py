from .configurations import get_configurations_service_dep
from .games import get_games_service_dep
from .jobs import get_job_runner_dep, get_job_scheduler_dep, get_jobs_service_dep, get_season_locks_dep
from .matches import get_matches_service_dep
from .players import get_players_service_dep
from .recalculation import get_recalculation_engine_dep, get_recalculation_service_dep
from .seasons import get_seasons_service_dep

__all__ = [
    "get_configurations_service_dep",
    "get_games_service_dep",
    "get_job_runner_dep",
    "get_job_scheduler_dep",
    "get_jobs_service_dep",
    "get_matches_service_dep",
    "get_players_service_dep",
    "get_recalculation_engine_dep",
    "get_recalculation_service_dep",
    "get_season_locks_dep",
    "get_seasons_service_dep",
]
