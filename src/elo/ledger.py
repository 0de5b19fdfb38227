from __future__ import annotations

from collections.abc import Hashable, Iterable
from dataclasses import dataclass
from typing import NamedTuple

from elo.formula import RatedGame, rate_game
from elo.policy import RatingPolicy


class UnknownParticipantError(LookupError):
    def __init__(self, player_id: Hashable, game_id: Hashable | None = None) -> None:
        super().__init__(f"Player {player_id} has no standing in this ledger.")
        self.player_id = player_id
        self.game_id = game_id


@dataclass
class PlayerStanding:
    rating: float
    games_played: int = 0
    wins: int = 0
    losses: int = 0


class ReplayGame(NamedTuple):
    game_id: Hashable
    winner_id: Hashable
    loser_id: Hashable
    policy: RatingPolicy


class AppliedGame(NamedTuple):
    game_id: Hashable
    winner_id: Hashable
    loser_id: Hashable
    result: RatedGame


class RatingLedger:
    """Season-scoped player standings advanced one decisive game at a time.

    Ingestion seeds the ledger from persisted standings and applies the new
    games; replay seeds every member at the season's starting rating and
    applies the whole log. Both go through :meth:`apply`, so a game produces
    the same numbers either way.
    """

    def __init__(self, starting_elo: float) -> None:
        self.starting_elo = float(starting_elo)
        self._standings: dict[Hashable, PlayerStanding] = {}

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._standings

    def seed(self, player_id: Hashable, standing: PlayerStanding | None = None) -> None:
        self._standings[player_id] = standing or PlayerStanding(rating=self.starting_elo)

    def standing(self, player_id: Hashable) -> PlayerStanding:
        try:
            return self._standings[player_id]
        except KeyError as exc:
            raise UnknownParticipantError(player_id) from exc

    def standings(self) -> dict[Hashable, PlayerStanding]:
        return dict(self._standings)

    def apply(self, game: ReplayGame) -> AppliedGame:
        if game.winner_id == game.loser_id:
            raise ValueError(f"Game {game.game_id} pairs a player against themselves.")
        winner = self._require(game.winner_id, game.game_id)
        loser = self._require(game.loser_id, game.game_id)

        # K depends on experience before this game.
        k_winner = game.policy.k_for(winner.games_played)
        k_loser = game.policy.k_for(loser.games_played)
        result = rate_game(winner.rating, loser.rating, k_winner, k_loser)

        winner.rating = result.winner_after
        winner.games_played += 1
        winner.wins += 1
        loser.rating = result.loser_after
        loser.games_played += 1
        loser.losses += 1
        return AppliedGame(
            game_id=game.game_id,
            winner_id=game.winner_id,
            loser_id=game.loser_id,
            result=result,
        )

    def _require(self, player_id: Hashable, game_id: Hashable) -> PlayerStanding:
        standing = self._standings.get(player_id)
        if standing is None:
            raise UnknownParticipantError(player_id, game_id)
        return standing


def replay(
    starting_elo: float,
    participants: Iterable[Hashable],
    games: Iterable[ReplayGame],
) -> tuple[RatingLedger, list[AppliedGame]]:
    """Rebuild standings from scratch over an ordered game log."""
    ledger = RatingLedger(starting_elo)
    for player_id in participants:
        ledger.seed(player_id)
    applied = [ledger.apply(game) for game in games]
    return ledger, applied
