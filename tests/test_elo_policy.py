from __future__ import annotations

import math
import sys
import unittest
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from elo.policy import KFactorPolicy, RatingPolicy, effective_k_factor


def _linear() -> RatingPolicy:
    return RatingPolicy(
        kind=KFactorPolicy.LINEAR_DECAY,
        base_k_factor=20.0,
        new_player_k_bonus=48.0,
        new_player_bonus_period=10,
    )


class TestRatingPolicy(unittest.TestCase):
    def test_static_policy_ignores_experience(self) -> None:
        policy = RatingPolicy.static(32.0)
        self.assertEqual(policy.k_for(0), 32.0)
        self.assertEqual(policy.k_for(500), 32.0)

    def test_linear_decay_fades_bonus_over_period(self) -> None:
        policy = _linear()
        self.assertAlmostEqual(effective_k_factor(policy, 0), 68.0)
        self.assertAlmostEqual(effective_k_factor(policy, 5), 44.0)
        self.assertAlmostEqual(effective_k_factor(policy, 10), 20.0)
        self.assertAlmostEqual(effective_k_factor(policy, 25), 20.0)

    def test_exponential_decay_never_drops_below_base(self) -> None:
        policy = RatingPolicy(
            kind=KFactorPolicy.EXPONENTIAL_DECAY,
            base_k_factor=20.0,
            new_player_k_bonus=48.0,
            new_player_bonus_period=10,
        )
        self.assertAlmostEqual(policy.k_for(0), 68.0)
        self.assertAlmostEqual(policy.k_for(10), 20.0 + 48.0 * math.exp(-1.0))
        self.assertGreater(policy.k_for(100), 20.0)
        self.assertLess(policy.k_for(11), policy.k_for(10))

    def test_negative_games_played_rejected(self) -> None:
        with self.assertRaises(ValueError):
            effective_k_factor(_linear(), -1)

    def test_out_of_range_parameters_rejected(self) -> None:
        invalid = [
            {"kind": KFactorPolicy.STATIC, "k_factor": 0.5},
            {"kind": KFactorPolicy.STATIC, "k_factor": 101.0},
            {"kind": KFactorPolicy.STATIC},
            {
                "kind": KFactorPolicy.LINEAR_DECAY,
                "base_k_factor": 20.0,
                "new_player_k_bonus": 101.0,
                "new_player_bonus_period": 10,
            },
            {
                "kind": KFactorPolicy.LINEAR_DECAY,
                "base_k_factor": 20.0,
                "new_player_k_bonus": 48.0,
                "new_player_bonus_period": 0,
            },
            {
                "kind": KFactorPolicy.EXPONENTIAL_DECAY,
                "new_player_k_bonus": 48.0,
                "new_player_bonus_period": 10,
            },
        ]
        for fields in invalid:
            with self.subTest(fields=fields), self.assertRaises(ValueError):
                RatingPolicy(**fields)  # type: ignore[arg-type]

    def test_from_fields_parses_stored_values(self) -> None:
        policy = RatingPolicy.from_fields(
            {
                "k_policy": "linear_decay",
                "base_k_factor": 20,
                "new_player_k_bonus": 48,
                "new_player_bonus_period": 10,
            }
        )
        self.assertEqual(policy, _linear())
        self.assertEqual(policy.as_dict()["k_policy"], "linear_decay")

    def test_from_fields_defaults_to_static(self) -> None:
        policy = RatingPolicy.from_fields({"k_factor": 32})
        self.assertEqual(policy.kind, KFactorPolicy.STATIC)
        self.assertEqual(policy.k_for(3), 32.0)

    def test_from_fields_rejects_unknown_policy(self) -> None:
        with self.assertRaises(ValueError):
            RatingPolicy.from_fields({"k_policy": "glicko", "k_factor": 32})


if __name__ == "__main__":
    unittest.main()
