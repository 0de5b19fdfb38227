from .constants import DEFAULT_K_FACTOR, DEFAULT_STARTING_ELO, ELO_SCALE
from .formula import RatedGame, expected_score, rate_game
from .ledger import (
    AppliedGame,
    PlayerStanding,
    RatingLedger,
    ReplayGame,
    UnknownParticipantError,
    replay,
)
from .policy import KFactorPolicy, RatingPolicy, effective_k_factor

__all__ = [
    "DEFAULT_K_FACTOR",
    "DEFAULT_STARTING_ELO",
    "ELO_SCALE",
    "AppliedGame",
    "KFactorPolicy",
    "PlayerStanding",
    "RatedGame",
    "RatingLedger",
    "RatingPolicy",
    "ReplayGame",
    "UnknownParticipantError",
    "effective_k_factor",
    "expected_score",
    "rate_game",
    "replay",
]
