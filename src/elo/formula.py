from __future__ import annotations

from typing import NamedTuple

from elo.constants import ELO_SCALE


class RatedGame(NamedTuple):
    winner_before: float
    winner_after: float
    loser_before: float
    loser_after: float
    k_winner: float
    k_loser: float

    @property
    def winner_delta(self) -> float:
        return self.winner_after - self.winner_before

    @property
    def loser_delta(self) -> float:
        return self.loser_after - self.loser_before


def expected_score(rating: float, opponent_rating: float) -> float:
    """Logistic probability that ``rating`` beats ``opponent_rating``."""
    return 1.0 / (1.0 + 10.0 ** ((opponent_rating - rating) / ELO_SCALE))


def rate_game(
    elo_winner: float,
    elo_loser: float,
    k_winner: float,
    k_loser: float,
) -> RatedGame:
    """Apply one decisive result.

    The loser's expectation is derived from the winner's so both sides see the
    same probability mass. With ``k_winner == k_loser`` the exchange is
    zero-sum; with different K-factors it is not.
    """
    expected_winner = expected_score(elo_winner, elo_loser)
    expected_loser = 1.0 - expected_winner
    return RatedGame(
        winner_before=elo_winner,
        winner_after=elo_winner + k_winner * (1.0 - expected_winner),
        loser_before=elo_loser,
        loser_after=elo_loser + k_loser * (0.0 - expected_loser),
        k_winner=k_winner,
        k_loser=k_loser,
    )
