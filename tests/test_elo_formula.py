from __future__ import annotations

import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from elo.formula import expected_score, rate_game


class TestEloFormula(unittest.TestCase):
    def test_equal_ratings_expect_even_odds(self) -> None:
        self.assertAlmostEqual(expected_score(1000.0, 1000.0), 0.5)

    def test_four_hundred_points_is_ten_to_one(self) -> None:
        self.assertAlmostEqual(expected_score(1400.0, 1000.0), 10.0 / 11.0)
        self.assertAlmostEqual(expected_score(1000.0, 1400.0), 1.0 / 11.0)

    def test_expectations_sum_to_one(self) -> None:
        for rating, opponent in ((1000.0, 1000.0), (1234.5, 987.6), (800.0, 2100.0)):
            total = expected_score(rating, opponent) + expected_score(opponent, rating)
            self.assertAlmostEqual(total, 1.0)

    def test_static_k32_between_equals(self) -> None:
        result = rate_game(1000.0, 1000.0, 32.0, 32.0)
        self.assertAlmostEqual(result.winner_after, 1016.0)
        self.assertAlmostEqual(result.loser_after, 984.0)
        self.assertAlmostEqual(result.winner_delta, 16.0)
        self.assertAlmostEqual(result.loser_delta, -16.0)

    def test_equal_k_is_zero_sum(self) -> None:
        for winner, loser, k in ((1000.0, 1000.0, 32.0), (1500.0, 1100.0, 20.0), (900.0, 1700.0, 68.0)):
            result = rate_game(winner, loser, k, k)
            self.assertAlmostEqual(result.winner_delta + result.loser_delta, 0.0, places=9)

    def test_upset_moves_more_points_than_expected_win(self) -> None:
        favourite_wins = rate_game(1400.0, 1000.0, 32.0, 32.0)
        underdog_wins = rate_game(1000.0, 1400.0, 32.0, 32.0)
        self.assertGreater(underdog_wins.winner_delta, favourite_wins.winner_delta)

    def test_unequal_k_is_not_zero_sum(self) -> None:
        result = rate_game(1000.0, 1000.0, 68.0, 20.0)
        self.assertAlmostEqual(result.winner_after, 1034.0)
        self.assertAlmostEqual(result.loser_after, 990.0)
        self.assertEqual(result.k_winner, 68.0)
        self.assertEqual(result.k_loser, 20.0)


if __name__ == "__main__":
    unittest.main()
