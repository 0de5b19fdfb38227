from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from elo.ledger import (
    PlayerStanding,
    RatingLedger,
    ReplayGame,
    UnknownParticipantError,
    replay,
)
from elo.policy import KFactorPolicy, RatingPolicy

STATIC_32 = RatingPolicy.static(32.0)


def _game(game_id: int, winner: str, loser: str, policy: RatingPolicy = STATIC_32) -> ReplayGame:
    return ReplayGame(game_id=game_id, winner_id=winner, loser_id=loser, policy=policy)


class TestRatingLedger(unittest.TestCase):
    def test_three_game_scenario(self) -> None:
        ledger, applied = replay(
            1000.0,
            ["A", "B", "C"],
            [_game(1, "A", "B"), _game(2, "B", "A"), _game(3, "A", "C")],
        )

        self.assertAlmostEqual(applied[1].result.winner_after, 1001.469502, places=4)
        self.assertAlmostEqual(applied[1].result.loser_after, 998.530498, places=4)

        a, b, c = (ledger.standing(player) for player in ("A", "B", "C"))
        self.assertAlmostEqual(a.rating, 1014.5982, places=4)
        self.assertAlmostEqual(b.rating, 1001.4695, places=4)
        self.assertAlmostEqual(c.rating, 983.9323, places=4)
        self.assertEqual((a.games_played, a.wins, a.losses), (3, 2, 1))
        self.assertEqual((b.games_played, b.wins, b.losses), (2, 1, 1))
        self.assertEqual((c.games_played, c.wins, c.losses), (1, 0, 1))

    def test_order_of_games_changes_outcome(self) -> None:
        games = [_game(1, "A", "B"), _game(2, "B", "C"), _game(3, "C", "A")]
        forward, _ = replay(1000.0, ["A", "B", "C"], games)
        swapped, _ = replay(1000.0, ["A", "B", "C"], [games[1], games[0], games[2]])

        forward_ratings = [forward.standing(p).rating for p in ("A", "B", "C")]
        swapped_ratings = [swapped.standing(p).rating for p in ("A", "B", "C")]
        self.assertNotEqual(forward_ratings, swapped_ratings)

    def test_replay_is_deterministic(self) -> None:
        games = [_game(i, "A" if i % 3 else "B", "C" if i % 2 else "B") for i in range(1, 30)]
        games = [game for game in games if game.winner_id != game.loser_id]
        first, first_applied = replay(1000.0, ["A", "B", "C"], games)
        second, second_applied = replay(1000.0, ["A", "B", "C"], games)
        self.assertEqual(first.standings(), second.standings())
        self.assertEqual(first_applied, second_applied)

    def test_members_without_games_keep_starting_rating(self) -> None:
        ledger, _ = replay(1200.0, ["A", "B", "idle"], [_game(1, "A", "B")])
        self.assertEqual(ledger.standing("idle"), PlayerStanding(rating=1200.0))

    def test_k_uses_games_played_before_the_game(self) -> None:
        policy = RatingPolicy(
            kind=KFactorPolicy.LINEAR_DECAY,
            base_k_factor=20.0,
            new_player_k_bonus=48.0,
            new_player_bonus_period=10,
        )
        ledger = RatingLedger(1000.0)
        ledger.seed("rookie")
        ledger.seed("veteran", PlayerStanding(rating=1000.0, games_played=10, wins=5, losses=5))

        applied = ledger.apply(_game(1, "rookie", "veteran", policy))

        self.assertAlmostEqual(applied.result.k_winner, 68.0)
        self.assertAlmostEqual(applied.result.k_loser, 20.0)
        self.assertAlmostEqual(ledger.standing("rookie").rating, 1034.0)
        self.assertAlmostEqual(ledger.standing("veteran").rating, 990.0)
        self.assertEqual(ledger.standing("veteran").games_played, 11)

    def test_unknown_participant_identifies_game(self) -> None:
        ledger = RatingLedger(1000.0)
        ledger.seed("A")
        with self.assertRaises(UnknownParticipantError) as ctx:
            ledger.apply(_game(7, "A", "ghost"))
        self.assertEqual(ctx.exception.player_id, "ghost")
        self.assertEqual(ctx.exception.game_id, 7)
        self.assertEqual(ledger.standing("A").games_played, 0)

    def test_self_play_rejected(self) -> None:
        ledger = RatingLedger(1000.0)
        ledger.seed("A")
        with self.assertRaises(ValueError):
            ledger.apply(_game(1, "A", "A"))


if __name__ == "__main__":
    unittest.main()
