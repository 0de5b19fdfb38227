from __future__ import annotations

import sys
import unittest
from pathlib import Path

from pydantic import ValidationError

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from api.config import Settings


class TestApiSettings(unittest.TestCase):
    def test_rating_defaults(self) -> None:
        settings = Settings()
        self.assertEqual(settings.elo_default_starting_elo, 1000.0)
        self.assertEqual(settings.match_game_interval_minutes, 5)
        self.assertEqual(settings.recalc_progress_interval, 100)

    def test_rejects_non_positive_game_interval(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(match_game_interval_minutes=0)

    def test_rejects_negative_lock_timeout(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(season_lock_timeout_s=-1)

    def test_zero_lock_timeout_is_allowed(self) -> None:
        settings = Settings(season_lock_timeout_s=0)
        self.assertEqual(settings.season_lock_timeout_s, 0)

    def test_rejects_non_positive_progress_interval(self) -> None:
        with self.assertRaises(ValidationError):
            Settings(recalc_progress_interval=0)

    def test_sqlite_url_is_not_postgres(self) -> None:
        settings = Settings(database_url="sqlite+aiosqlite:///./ratings.db")
        self.assertFalse(settings.is_postgres)


if __name__ == "__main__":
    unittest.main()
