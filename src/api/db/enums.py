from __future__ import annotations

from enum import Enum

from elo.policy import KFactorPolicy


class MatchWinner(str, Enum):
    PLAYER1 = "player1"
    PLAYER2 = "player2"


class JobType(str, Enum):
    ELO_RECALCULATION = "elo_recalculation"
    MATCH_DELETION = "match_deletion"
    GAME_CORRECTION = "game_correction"
    GAME_DELETION = "game_deletion"
    SEASON_DELETION = "season_deletion"
    SEASON_REASSIGNMENT = "season_reassignment"


class JobStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


__all__ = ["JobStatus", "JobType", "KFactorPolicy", "MatchWinner"]
