from __future__ import annotations

import asyncio
import sys
import tempfile
import unittest
from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from fastapi.testclient import TestClient
from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, select

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from api.app import create_app
from api.config import Settings
from api.config.settings import get_settings
from api.db import models as _models
from api.db.models import EloHistory, PlayerSeason, Season
from api.db.session import get_session, get_session_factory
from api.modules.recalculation.engine import RecalculationEngine
from api.modules.recalculation.repository import RecalculationRepository
from elo.ledger import ReplayGame, replay
from elo.policy import RatingPolicy

del _models

STATIC_32 = RatingPolicy.static(32.0)


class TestApiRatingsIntegration(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self.tmpdir.name) / "ratings_integration.db"
        self.database_url = f"sqlite+aiosqlite:///{db_path}"
        self.engine = create_async_engine(self.database_url, echo=False)
        self.sessionmaker = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        async def _init_db() -> None:
            async with self.engine.begin() as conn:
                await conn.run_sync(SQLModel.metadata.create_all)

        asyncio.run(_init_db())
        self.settings = Settings(
            app_env="test",
            app_log_requests=False,
            app_log_json=False,
            database_url=self.database_url,
        )
        app = create_app(settings=self.settings)

        async def _get_session_override() -> AsyncGenerator[AsyncSession, None]:
            async with self.sessionmaker() as session:
                try:
                    yield session
                except Exception:
                    await session.rollback()
                    raise

        app.dependency_overrides[get_session] = _get_session_override
        app.dependency_overrides[get_session_factory] = lambda: self.sessionmaker
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(app)

        self._post("/configurations", {"version_name": "v1", "k_factor": 32.0, "activate": True})
        created = self._post(
            "/seasons",
            {"name": "All-Time", "start_date": "2000-01-01T00:00:00", "activate": True},
        )
        self.all_time_id = created["season"]["id"]
        self.alice = self._post("/players", {"first_name": "Alice"})["id"]
        self.bruno = self._post("/players", {"first_name": "Bruno"})["id"]
        self.chen = self._post("/players", {"first_name": "Chen"})["id"]

    def tearDown(self) -> None:
        self.client.close()

        async def _dispose() -> None:
            await self.engine.dispose()

        asyncio.run(_dispose())
        self.tmpdir.cleanup()

    def _post(self, path: str, payload: dict[str, Any], expected: int = 201) -> Any:
        response = self.client.post(f"/api/v1{path}", json=payload)
        self.assertEqual(response.status_code, expected, response.text)
        return response.json()

    def _get(self, path: str, expected: int = 200, **params: Any) -> Any:
        response = self.client.get(f"/api/v1{path}", params=params)
        self.assertEqual(response.status_code, expected, response.text)
        return response.json()

    def _submit(
        self,
        player1: str,
        player2: str,
        winners: list[str],
        submitted_at: str,
        expected: int = 201,
    ) -> Any:
        return self._post(
            "/matches",
            {
                "player1_id": player1,
                "player2_id": player2,
                "games": [{"winner": winner} for winner in winners],
                "submitted_at": submitted_at,
            },
            expected=expected,
        )

    def _play_scenario(self) -> list[Any]:
        return [
            self._submit(self.alice, self.bruno, ["player1"], "2026-03-01T10:00:00"),
            self._submit(self.alice, self.bruno, ["player2"], "2026-03-01T11:00:00"),
            self._submit(self.alice, self.chen, ["player1"], "2026-03-01T12:00:00"),
        ]

    def _job(self, job_id: str) -> Any:
        return self._get(f"/jobs/{job_id}")

    def _members(self, season_id: str) -> dict[str, Any]:
        rows = self._get(f"/seasons/{season_id}/players")
        return {row["player_id"]: row for row in rows}

    def _rating(self, player_id: str) -> float:
        return self._get(f"/players/{player_id}")["current_elo"]

    def _run(self, coro_factory: Any) -> Any:
        async def _wrapped() -> Any:
            async with self.sessionmaker() as session:
                return await coro_factory(session)

        return asyncio.run(_wrapped())

    def test_scenario_ratings_and_counters(self) -> None:
        matches = self._play_scenario()

        second = matches[1]["games"][0]
        self.assertEqual(second["winner_id"], self.bruno)
        self.assertAlmostEqual(second["winner_elo_after"], 1001.469502, places=4)
        self.assertAlmostEqual(second["loser_elo_after"], 998.530498, places=4)
        self.assertEqual(second["elo_version"], "v1")

        self.assertAlmostEqual(self._rating(self.alice), 1014.5982, places=4)
        self.assertAlmostEqual(self._rating(self.bruno), 1001.4695, places=4)
        self.assertAlmostEqual(self._rating(self.chen), 983.9323, places=4)

        board = self._get(f"/seasons/{self.all_time_id}/leaderboard")
        self.assertEqual(board["total"], 3)
        self.assertEqual(
            [entry["player_id"] for entry in board["items"]],
            [self.alice, self.bruno, self.chen],
        )
        counters = {
            entry["player_id"]: (entry["games_played"], entry["wins"], entry["losses"])
            for entry in board["items"]
        }
        self.assertEqual(counters[self.alice], (3, 2, 1))
        self.assertEqual(counters[self.bruno], (2, 1, 1))
        self.assertEqual(counters[self.chen], (1, 0, 1))

        history = self._get(f"/players/{self.alice}/history")
        self.assertEqual(history["total"], 3)
        latest = history["items"][0]
        self.assertEqual(latest["opponent_id"], self.chen)
        self.assertTrue(latest["won"])
        self.assertAlmostEqual(latest["elo_after"], 1014.5982, places=4)
        self.assertAlmostEqual(latest["k_factor"], 32.0)

    def test_games_of_a_match_are_spaced_before_submission(self) -> None:
        match = self._submit(
            self.alice,
            self.bruno,
            ["player1", "player2", "player1"],
            "2026-03-02T12:00:00",
        )

        self.assertEqual(match["player1_wins"], 2)
        self.assertEqual(match["player2_wins"], 1)
        played_at = [datetime.fromisoformat(game["played_at"]) for game in match["games"]]
        self.assertEqual(
            played_at,
            [
                datetime(2026, 3, 2, 11, 50),
                datetime(2026, 3, 2, 11, 55),
                datetime(2026, 3, 2, 12, 0),
            ],
        )
        self.assertEqual([game["game_number"] for game in match["games"]], [1, 2, 3])
        # Each game starts from the ratings the previous one produced.
        for earlier, later in zip(match["games"], match["games"][1:]):
            earlier_after = {
                earlier["winner_id"]: earlier["winner_elo_after"],
                earlier["loser_id"]: earlier["loser_elo_after"],
            }
            self.assertAlmostEqual(later["winner_elo_before"], earlier_after[later["winner_id"]])
            self.assertAlmostEqual(later["loser_elo_before"], earlier_after[later["loser_id"]])

    def test_invalid_submissions_persist_nothing(self) -> None:
        when = "2026-03-01T10:00:00"
        self._submit(self.alice, self.alice, ["player1"], when, expected=400)
        self._submit(self.alice, self.bruno, [], when, expected=400)
        self._submit(
            self.alice,
            "00000000-0000-4000-8000-000000000000",
            ["player1"],
            when,
            expected=404,
        )
        self._submit(self.alice, self.bruno, ["player1"], "1999-12-31T23:00:00", expected=400)

        response = self.client.patch(f"/api/v1/players/{self.chen}", json={"is_active": False})
        self.assertEqual(response.status_code, 200, response.text)
        self._submit(self.alice, self.chen, ["player1"], when, expected=400)

        self.assertEqual(self._get("/matches")["total"], 0)
        self.assertEqual(self._rating(self.alice), 1000.0)

    def test_excluded_member_cannot_submit(self) -> None:
        response = self.client.put(
            f"/api/v1/seasons/{self.all_time_id}/players/{self.bruno}",
            json={"is_included": False},
        )
        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertFalse(payload["membership"]["is_included"])
        self.assertEqual(payload["job"]["job_type"], "elo_recalculation")

        self._submit(self.alice, self.bruno, ["player1"], "2026-03-01T10:00:00", expected=400)
        included = self._get(f"/seasons/{self.all_time_id}/players", included_only=True)
        self.assertNotIn(self.bruno, [row["player_id"] for row in included])

    def test_backdated_match_is_rated_in_play_order(self) -> None:
        self._submit(self.alice, self.chen, ["player1"], "2026-03-01T12:00:00")
        self._submit(self.alice, self.bruno, ["player1"], "2026-03-01T11:00:00")

        ledger, _ = replay(
            1000.0,
            ["A", "B", "C"],
            [
                ReplayGame(game_id=1, winner_id="A", loser_id="B", policy=STATIC_32),
                ReplayGame(game_id=2, winner_id="A", loser_id="C", policy=STATIC_32),
            ],
        )
        self.assertAlmostEqual(self._rating(self.alice), ledger.standing("A").rating, places=6)
        self.assertAlmostEqual(self._rating(self.chen), ledger.standing("C").rating, places=6)
        self.assertAlmostEqual(self._rating(self.bruno), 984.0, places=6)

    def test_match_deletion_job_replays_the_season(self) -> None:
        matches = self._play_scenario()

        response = self.client.delete(f"/api/v1/matches/{matches[0]['match_id']}")
        self.assertEqual(response.status_code, 202, response.text)
        reference = response.json()
        self.assertEqual(reference["job_type"], "match_deletion")

        job = self._job(reference["job_id"])
        self.assertEqual(job["status"], "completed", job)
        self.assertEqual(job["result_data"]["games_deleted"], 1)
        self.assertEqual(job["result_data"]["games_replayed"], 2)
        self.assertEqual(job["progress_percent"], 100)
        self._get(f"/matches/{matches[0]['match_id']}", expected=404)

        ledger, _ = replay(
            1000.0,
            ["A", "B", "C"],
            [
                ReplayGame(game_id=2, winner_id="B", loser_id="A", policy=STATIC_32),
                ReplayGame(game_id=3, winner_id="A", loser_id="C", policy=STATIC_32),
            ],
        )
        for player_id, label in ((self.alice, "A"), (self.bruno, "B"), (self.chen, "C")):
            self.assertAlmostEqual(self._rating(player_id), ledger.standing(label).rating, places=6)
        self.assertEqual(self._get(f"/players/{self.alice}/history")["total"], 2)

    def test_recalculation_is_idempotent(self) -> None:
        self._play_scenario()
        before = self._members(self.all_time_id)

        reference = self._post("/recalculations", {"season_id": "all"}, expected=202)
        self.assertEqual(reference["job_type"], "elo_recalculation")
        job = self._job(reference["job_id"])
        self.assertEqual(job["status"], "completed", job)
        self.assertEqual(job["result_data"]["games_replayed"], 3)

        after = self._members(self.all_time_id)
        for player_id, row in before.items():
            self.assertAlmostEqual(after[player_id]["current_elo"], row["current_elo"], places=9)
            self.assertEqual(after[player_id]["games_played"], row["games_played"])
        self.assertEqual(self._get(f"/players/{self.alice}/history")["total"], 3)

        completed = self._get("/jobs", status="completed")
        self.assertEqual(completed["total"], 1)

    def test_recalculation_of_unknown_season_is_404(self) -> None:
        self._post(
            "/recalculations",
            {"season_id": "00000000-0000-4000-8000-000000000000"},
            expected=404,
        )

    def test_seasons_keep_separate_ratings(self) -> None:
        self._play_scenario()
        spring = self._post(
            "/seasons",
            {"name": "Spring", "start_date": "2026-04-01T00:00:00", "activate": True},
        )
        self.assertIsNone(spring["job"])
        spring_id = spring["season"]["id"]

        self.assertEqual(self._rating(self.alice), 1000.0)
        self._submit(self.alice, self.bruno, ["player1"], "2026-04-02T10:00:00")
        self._submit(self.alice, self.bruno, ["player1"], "2026-03-15T10:00:00", expected=400)

        self.assertAlmostEqual(self._rating(self.alice), 1016.0, places=6)
        all_time = self._members(self.all_time_id)
        self.assertAlmostEqual(all_time[self.alice]["current_elo"], 1014.5982, places=4)

        reference = self._post("/recalculations", {"season_id": spring_id}, expected=202)
        self.assertEqual(self._job(reference["job_id"])["status"], "completed")
        all_time_after = self._members(self.all_time_id)
        self.assertEqual(all_time_after[self.alice]["current_elo"], all_time[self.alice]["current_elo"])
        self.assertEqual(self._members(spring_id)[self.alice]["games_played"], 1)

        spring_history = self._get(f"/players/{self.alice}/history", season_id=spring_id)
        self.assertEqual(spring_history["total"], 1)

    def test_historical_season_takes_over_its_games(self) -> None:
        self._submit(self.alice, self.bruno, ["player1"], "2026-03-10T12:00:00")

        created = self._post(
            "/seasons",
            {"name": "Winter", "start_date": "2026-03-01T00:00:00", "activate": False},
        )
        winter_id = created["season"]["id"]
        self.assertEqual(created["job"]["job_type"], "season_reassignment")

        job = self._job(created["job"]["job_id"])
        self.assertEqual(job["status"], "completed", job)
        self.assertEqual(job["result_data"]["games_reassigned"], 1)

        winter = self._members(winter_id)
        self.assertAlmostEqual(winter[self.alice]["current_elo"], 1016.0, places=6)
        self.assertEqual(winter[self.alice]["games_played"], 1)
        all_time = self._members(self.all_time_id)
        self.assertEqual(all_time[self.alice]["games_played"], 0)
        self.assertEqual(all_time[self.alice]["current_elo"], 1000.0)
        self.assertEqual(self._get("/matches", season_id=winter_id)["total"], 1)

    def test_season_deletion_folds_games_into_previous_season(self) -> None:
        self._submit(self.alice, self.bruno, ["player1"], "2026-03-10T12:00:00")
        winter = self._post(
            "/seasons",
            {"name": "Winter", "start_date": "2026-03-01T00:00:00", "activate": False},
        )
        winter_id = winter["season"]["id"]
        self.assertEqual(self._job(winter["job"]["job_id"])["status"], "completed")

        response = self.client.delete(f"/api/v1/seasons/{self.all_time_id}")
        self.assertEqual(response.status_code, 400, response.text)

        response = self.client.delete(f"/api/v1/seasons/{winter_id}")
        self.assertEqual(response.status_code, 202, response.text)
        job = self._job(response.json()["job_id"])
        self.assertEqual(job["status"], "completed", job)
        self.assertEqual(job["result_data"]["games_reassigned"], 1)

        self._get(f"/seasons/{winter_id}", expected=404)
        all_time = self._members(self.all_time_id)
        self.assertAlmostEqual(all_time[self.alice]["current_elo"], 1016.0, places=6)
        self.assertAlmostEqual(self._rating(self.alice), 1016.0, places=6)

        response = self.client.delete(f"/api/v1/seasons/{self.all_time_id}")
        self.assertEqual(response.status_code, 400, response.text)
        self.assertIn("only remaining season", response.json()["detail"])

    def test_configuration_lifecycle(self) -> None:
        self._post("/configurations", {"version_name": "v1", "k_factor": 16.0}, expected=400)
        self._post(
            "/configurations",
            {"version_name": "v2", "k_policy": "linear_decay", "base_k_factor": 20.0},
            expected=400,
        )
        self._post(
            "/configurations",
            {
                "version_name": "v2",
                "k_policy": "linear_decay",
                "base_k_factor": 20.0,
                "new_player_k_bonus": 48.0,
                "new_player_bonus_period": 10,
            },
        )
        self._post("/configurations/v1/activate", {}, expected=409)
        self._post("/configurations/v9/activate", {}, expected=404)
        activated = self._post("/configurations/v2/activate", {}, expected=200)
        self.assertTrue(activated["is_active"])
        self.assertEqual(self._get("/configurations/active")["version_name"], "v2")

        match = self._submit(self.alice, self.bruno, ["player1"], "2026-03-01T10:00:00")
        game = match["games"][0]
        self.assertEqual(game["elo_version"], "v2")
        self.assertAlmostEqual(game["winner_elo_after"], 1034.0, places=6)
        self.assertAlmostEqual(game["loser_elo_after"], 966.0, places=6)

        self.assertEqual(self.client.delete("/api/v1/configurations/v2").status_code, 400)
        self.assertEqual(self.client.delete("/api/v1/configurations/v1").status_code, 204)
        self.assertEqual(self.client.delete("/api/v1/configurations/v1").status_code, 404)
        self.assertEqual(
            [config["version_name"] for config in self._get("/configurations")],
            ["v2"],
        )

    def test_configuration_correction_retags_season(self) -> None:
        match = self._submit(self.alice, self.bruno, ["player1"], "2026-03-01T10:00:00")
        self._post(
            "/configurations",
            {
                "version_name": "v2",
                "k_policy": "linear_decay",
                "base_k_factor": 20.0,
                "new_player_k_bonus": 48.0,
                "new_player_bonus_period": 10,
            },
        )
        response = self.client.put(
            f"/api/v1/seasons/{self.all_time_id}/configuration",
            json={"version_name": "v9"},
        )
        self.assertEqual(response.status_code, 404, response.text)

        response = self.client.put(
            f"/api/v1/seasons/{self.all_time_id}/configuration",
            json={"version_name": "v2"},
        )
        self.assertEqual(response.status_code, 202, response.text)
        job = self._job(response.json()["job_id"])
        self.assertEqual(job["status"], "completed", job)
        self.assertEqual(job["result_data"]["elo_version"], "v2")

        self.assertAlmostEqual(self._rating(self.alice), 1034.0, places=6)
        self.assertAlmostEqual(self._rating(self.bruno), 966.0, places=6)
        game = self._get(f"/matches/{match['match_id']}")["games"][0]
        self.assertEqual(game["elo_version"], "v2")
        self.assertEqual(self.client.delete("/api/v1/configurations/v2").status_code, 400)

    def test_failed_replay_marks_job_and_keeps_state(self) -> None:
        self._play_scenario()
        before = self._members(self.all_time_id)

        async def _drop_membership(session: AsyncSession) -> None:
            await session.execute(
                delete(PlayerSeason).where(
                    PlayerSeason.season_id == UUID(self.all_time_id),
                    PlayerSeason.player_id == UUID(self.chen),
                )
            )
            await session.commit()

        self._run(_drop_membership)

        reference = self._post("/recalculations", {"season_id": self.all_time_id}, expected=202)
        job = self._job(reference["job_id"])
        self.assertEqual(job["status"], "failed", job)
        offending = job["result_data"]["offending_record"]
        self.assertEqual(offending["player_id"], self.chen)
        self.assertEqual(offending["season_id"], self.all_time_id)

        after = self._members(self.all_time_id)
        self.assertEqual(after[self.alice]["current_elo"], before[self.alice]["current_elo"])
        self.assertEqual(after[self.bruno]["games_played"], before[self.bruno]["games_played"])

        async def _count_history(session: AsyncSession) -> int:
            result = await session.execute(select(func.count()).select_from(EloHistory))
            return int(result.scalar_one())

        self.assertEqual(self._run(_count_history), 6)
        failed = self._get("/jobs", status="failed")
        self.assertEqual(failed["total"], 1)

    def test_replay_reports_progress_at_interval(self) -> None:
        self._play_scenario()

        async def _replay(session: AsyncSession) -> list[tuple[int, int]]:
            calls: list[tuple[int, int]] = []

            async def reporter(processed: int, total: int) -> None:
                calls.append((processed, total))

            engine = RecalculationEngine(RecalculationRepository(session), progress_interval=2)
            season = await session.get(Season, UUID(self.all_time_id))
            assert season is not None
            await engine.replay_season(season, reporter)
            await session.rollback()
            return calls

        self.assertEqual(self._run(_replay), [(2, 3)])

    def test_season_parameter_change_and_activation(self) -> None:
        self._submit(self.alice, self.bruno, ["player1"], "2026-03-01T10:00:00")
        self._post(f"/seasons/{self.all_time_id}/activate", {}, expected=409)

        response = self.client.patch(
            f"/api/v1/seasons/{self.all_time_id}",
            json={"description": "Every game ever played."},
        )
        self.assertEqual(response.status_code, 200, response.text)
        self.assertIsNone(response.json()["job"])

        response = self.client.patch(
            f"/api/v1/seasons/{self.all_time_id}",
            json={"starting_elo": 1200.0},
        )
        self.assertEqual(response.status_code, 200, response.text)
        job = self._job(response.json()["job"]["job_id"])
        self.assertEqual(job["status"], "completed", job)
        self.assertAlmostEqual(self._rating(self.alice), 1216.0, places=6)
        self.assertAlmostEqual(self._rating(self.chen), 1200.0, places=6)

        summer = self._post(
            "/seasons",
            {"name": "Summer", "start_date": "2026-06-01T00:00:00", "activate": False},
        )
        summer_id = summer["season"]["id"]
        self.assertEqual(self._get("/seasons/active")["id"], self.all_time_id)
        self._post(f"/seasons/{summer_id}/activate", {}, expected=200)
        self.assertEqual(self._get("/seasons/active")["id"], summer_id)
        self.assertEqual(self._rating(self.alice), 1000.0)
        self.assertEqual(
            [season["name"] for season in self._get("/seasons")],
            ["All-Time", "Summer"],
        )

    def test_database_health_check(self) -> None:
        response = self.client.get("/health/db")
        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertEqual(payload["status"], "ok")
        self.assertEqual(payload["checks"], {"db": True})

    def test_duplicate_season_name_or_start_is_rejected(self) -> None:
        self._post(
            "/seasons",
            {"name": "All-Time", "start_date": "2026-06-01T00:00:00", "activate": False},
            expected=400,
        )
        self._post(
            "/seasons",
            {"name": "Reboot", "start_date": "2000-01-01T00:00:00", "activate": False},
            expected=400,
        )
        for starting_elo in (99.0, 3001.0):
            self._post(
                "/seasons",
                {
                    "name": "Bounds",
                    "start_date": "2026-06-01T00:00:00",
                    "starting_elo": starting_elo,
                    "activate": False,
                },
                expected=422,
            )
        self.assertEqual([season["name"] for season in self._get("/seasons")], ["All-Time"])

    def test_inclusion_toggle_requires_known_season_and_player(self) -> None:
        missing = "00000000-0000-4000-8000-000000000000"
        response = self.client.put(
            f"/api/v1/seasons/{missing}/players/{self.alice}",
            json={"is_included": False},
        )
        self.assertEqual(response.status_code, 400, response.text)
        self.assertIn("Season not found", response.json()["detail"])

        response = self.client.put(
            f"/api/v1/seasons/{self.all_time_id}/players/{missing}",
            json={"is_included": False},
        )
        self.assertEqual(response.status_code, 400, response.text)
        self.assertIn("Player not found", response.json()["detail"])
        self.assertEqual(self._get("/jobs")["total"], 0)

    def test_activating_unknown_season_is_404(self) -> None:
        self._post("/seasons/00000000-0000-4000-8000-000000000000/activate", {}, expected=404)
        self.assertEqual(self._get("/seasons/active")["id"], self.all_time_id)

    def test_game_correction_flips_winner_and_replays(self) -> None:
        matches = self._play_scenario()
        game_id = matches[0]["games"][0]["id"]

        response = self.client.patch(
            f"/api/v1/games/{game_id}",
            json={"winner_id": self.bruno, "created_by": "admin"},
        )
        self.assertEqual(response.status_code, 202, response.text)
        reference = response.json()
        self.assertEqual(reference["job_type"], "game_correction")

        job = self._job(reference["job_id"])
        self.assertEqual(job["status"], "completed", job)
        self.assertTrue(job["result_data"]["winner_flipped"])
        self.assertEqual(job["result_data"]["games_replayed"], 3)

        game = self._get(f"/games/{game_id}")
        self.assertEqual(game["winner_id"], self.bruno)
        self.assertEqual(game["loser_id"], self.alice)
        self.assertEqual(game["match_id"], matches[0]["match_id"])

        ledger, _ = replay(
            1000.0,
            ["A", "B", "C"],
            [
                ReplayGame(game_id=1, winner_id="B", loser_id="A", policy=STATIC_32),
                ReplayGame(game_id=2, winner_id="B", loser_id="A", policy=STATIC_32),
                ReplayGame(game_id=3, winner_id="A", loser_id="C", policy=STATIC_32),
            ],
        )
        for player_id, label in ((self.alice, "A"), (self.bruno, "B"), (self.chen, "C")):
            self.assertAlmostEqual(self._rating(player_id), ledger.standing(label).rating, places=6)

    def test_game_correction_rejects_invalid_changes(self) -> None:
        matches = self._play_scenario()
        game_id = matches[0]["games"][0]["id"]

        for payload in (
            {},
            {"winner_id": self.chen},
            {"played_at": "1999-12-31T23:00:00"},
        ):
            response = self.client.patch(f"/api/v1/games/{game_id}", json=payload)
            self.assertEqual(response.status_code, 400, (payload, response.text))

        response = self.client.patch(
            "/api/v1/games/00000000-0000-4000-8000-000000000000",
            json={"winner_id": self.alice},
        )
        self.assertEqual(response.status_code, 404, response.text)
        self.assertEqual(self._get("/jobs")["total"], 0)

    def test_game_deletion_removes_emptied_match(self) -> None:
        matches = self._play_scenario()
        game_id = matches[0]["games"][0]["id"]

        response = self.client.delete(f"/api/v1/games/{game_id}")
        self.assertEqual(response.status_code, 202, response.text)
        job = self._job(response.json()["job_id"])
        self.assertEqual(job["status"], "completed", job)
        self.assertTrue(job["result_data"]["match_deleted"])
        self.assertEqual(job["result_data"]["games_replayed"], 2)

        self._get(f"/games/{game_id}", expected=404)
        self._get(f"/matches/{matches[0]['match_id']}", expected=404)
        ledger, _ = replay(
            1000.0,
            ["A", "B", "C"],
            [
                ReplayGame(game_id=2, winner_id="B", loser_id="A", policy=STATIC_32),
                ReplayGame(game_id=3, winner_id="A", loser_id="C", policy=STATIC_32),
            ],
        )
        for player_id, label in ((self.alice, "A"), (self.bruno, "B"), (self.chen, "C")):
            self.assertAlmostEqual(self._rating(player_id), ledger.standing(label).rating, places=6)

    def test_all_players_history_has_one_point_per_match(self) -> None:
        matches = self._play_scenario()
        dana = self._post("/players", {"first_name": "Dana"})["id"]

        rows = self._get("/players/history")
        self.assertEqual(
            [row["player_id"] for row in rows],
            [self.alice, self.bruno, dana, self.chen],
        )
        alice = rows[0]
        self.assertEqual(
            [point["match_id"] for point in alice["history"]],
            [match["match_id"] for match in matches],
        )
        self.assertEqual(alice["history"][0]["elo_before"], 1000.0)
        self.assertAlmostEqual(alice["history"][0]["elo_change"], 16.0, places=6)
        self.assertAlmostEqual(alice["history"][-1]["elo_after"], alice["current_elo"], places=6)
        self.assertEqual(alice["history"][0]["season_name"], "All-Time")
        self.assertEqual(len(rows[1]["history"]), 2)
        self.assertEqual(rows[2]["history"], [])
        self.assertEqual(len(rows[3]["history"]), 1)

        self._get("/players/history", expected=422, season_id="not-a-uuid")



if __name__ == "__main__":
    unittest.main()
