from __future__ import annotations

import asyncio
import sys
import tempfile
import unittest
from collections.abc import AsyncGenerator, Iterable
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace
from typing import Any, cast
from uuid import UUID, uuid4

from fastapi.testclient import TestClient
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel, select

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from api.app import create_app
from api.common.errors import ConflictError
from api.config import Settings
from api.config.settings import get_settings
from api.db import models as _models
from api.db.enums import JobType, MatchWinner
from api.db.locks import SeasonLockManager
from api.db.models import Game, Season
from api.db.session import get_session, get_session_factory
from api.modules.jobs.repository import JobsRepository
from api.modules.jobs.runner import JobRunner
from api.modules.jobs.service import JobsService
from api.modules.matches.repository import MatchesRepository
from api.modules.matches.schemas import MatchGameRequest, MatchSubmitRequest
from api.modules.matches.service import MatchesService
from api.modules.recalculation.engine import RecalculationEngine
from api.modules.recalculation.repository import RecalculationRepository
from api.modules.seasons.repository import SeasonsRepository
from api.modules.seasons.schemas import SeasonCreateRequest
from api.modules.seasons.service import SeasonsService

del _models


class _HolderSession:
    """Stands in for a session that only holds a lock."""

    def __init__(self) -> None:
        self._bind = SimpleNamespace(dialect=SimpleNamespace(name="sqlite"))

    def get_bind(self) -> SimpleNamespace:
        return self._bind

    async def rollback(self) -> None:
        return None


class _ObservedLocks(SeasonLockManager):
    def __init__(self, timeout_s: float | None = None) -> None:
        super().__init__(timeout_s=timeout_s)
        self.held: list[list[UUID]] = []
        self.waiting: list[UUID] = []

    def hold(self, session: AsyncSession, season_ids: Iterable[UUID]) -> Any:
        ids = list(season_ids)
        self.held.append(ids)
        return super().hold(session, ids)

    async def _acquire(self, lock: asyncio.Lock, season_id: UUID) -> None:
        if lock.locked():
            self.waiting.append(season_id)
        await super()._acquire(lock, season_id)


class TestSeasonConcurrency(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(self.tmpdir.name) / "season_concurrency.db"
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
                yield session

        app.dependency_overrides[get_session] = _get_session_override
        app.dependency_overrides[get_session_factory] = lambda: self.sessionmaker
        app.dependency_overrides[get_settings] = lambda: self.settings
        self.client = TestClient(app)

        self._post("/configurations", {"version_name": "v1", "k_factor": 32.0, "activate": True})
        created = self._post(
            "/seasons",
            {"name": "All-Time", "start_date": "2000-01-01T00:00:00", "activate": True},
        )
        self.all_time_id = UUID(created["season"]["id"])
        self.alice = UUID(self._post("/players", {"first_name": "Alice"})["id"])
        self.bruno = UUID(self._post("/players", {"first_name": "Bruno"})["id"])

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

    def _engine(self, session: AsyncSession) -> RecalculationEngine:
        return RecalculationEngine(RecalculationRepository(session))

    def _seasons(self, session: AsyncSession, locks: SeasonLockManager) -> SeasonsService:
        return SeasonsService(
            repository=SeasonsRepository(session),
            engine=self._engine(session),
            locks=locks,
            settings=self.settings,
        )

    def _matches(self, session: AsyncSession, locks: SeasonLockManager) -> MatchesService:
        return MatchesService(
            repository=MatchesRepository(session),
            engine=self._engine(session),
            locks=locks,
            settings=self.settings,
        )

    async def _hold_until(
        self,
        locks: SeasonLockManager,
        season_id: UUID,
        ready: asyncio.Event,
        release: asyncio.Event,
    ) -> None:
        async with locks.hold(cast(AsyncSession, _HolderSession()), [season_id]):
            ready.set()
            await release.wait()

    @staticmethod
    async def _wait_for_waiters(locks: _ObservedLocks, count: int) -> None:
        while len(locks.waiting) < count:
            await asyncio.sleep(0.01)

    def test_match_queued_behind_season_switch_is_rejected(self) -> None:
        locks = _ObservedLocks()

        async def scenario() -> tuple[Any, Any, int]:
            ready, release = asyncio.Event(), asyncio.Event()
            holder = asyncio.create_task(self._hold_until(locks, self.all_time_id, ready, release))
            await ready.wait()

            async def create_spring() -> Any:
                async with self.sessionmaker() as session:
                    return await self._seasons(session, locks).create_season(
                        SeasonCreateRequest(
                            name="Spring",
                            start_date=datetime(2026, 3, 1),
                            activate=True,
                        )
                    )

            async def submit() -> Any:
                async with self.sessionmaker() as session:
                    return await self._matches(session, locks).submit_match(
                        MatchSubmitRequest(
                            player1_id=self.alice,
                            player2_id=self.bruno,
                            games=[MatchGameRequest(winner=MatchWinner.PLAYER1)],
                            submitted_at=datetime(2026, 3, 10, 12, 0),
                        )
                    )

            spring = asyncio.create_task(create_spring())
            await self._wait_for_waiters(locks, 1)
            match = asyncio.create_task(submit())
            await self._wait_for_waiters(locks, 2)
            release.set()
            await holder
            spring_result, match_result = await asyncio.gather(
                spring, match, return_exceptions=True
            )

            async with self.sessionmaker() as session:
                result = await session.execute(select(func.count()).select_from(Game))
                games = int(result.scalar_one())
            return spring_result, match_result, games

        spring_result, match_result, games = asyncio.run(scenario())
        season, job = spring_result
        self.assertTrue(season.is_active)
        self.assertIsNone(job)
        self.assertIsInstance(match_result, ConflictError)
        self.assertIn("active season changed", str(match_result))
        self.assertEqual(games, 0)

    def test_activation_locks_previous_and_target_season(self) -> None:
        summer_id = UUID(
            self._post(
                "/seasons",
                {"name": "Summer", "start_date": "2026-06-01T00:00:00", "activate": False},
            )["season"]["id"]
        )
        locks = _ObservedLocks()

        async def scenario() -> Season:
            ready, release = asyncio.Event(), asyncio.Event()
            holder = asyncio.create_task(self._hold_until(locks, self.all_time_id, ready, release))
            await ready.wait()

            async def activate() -> Season:
                async with self.sessionmaker() as session:
                    return await self._seasons(session, locks).activate_season(summer_id)

            task = asyncio.create_task(activate())
            await self._wait_for_waiters(locks, 1)
            self.assertFalse(task.done())
            release.set()
            await holder
            return await task

        season = asyncio.run(scenario())
        self.assertTrue(season.is_active)
        self.assertEqual(locks.waiting, [self.all_time_id])
        self.assertEqual(locks.held[-1], [self.all_time_id, summer_id])

    def test_job_replay_outlasts_request_lock_timeout(self) -> None:
        self._post(
            "/matches",
            {
                "player1_id": str(self.alice),
                "player2_id": str(self.bruno),
                "games": [{"winner": "player1"}],
                "submitted_at": "2026-03-01T10:00:00",
            },
        )
        locks = SeasonLockManager(timeout_s=0.05)
        runner = JobRunner(self.sessionmaker, locks, self.settings)

        async def scenario() -> UUID:
            async with self.sessionmaker() as session:
                season = await session.get(Season, self.all_time_id)
                assert season is not None
                season.starting_elo = 1500.0
                session.add(season)
                await session.commit()
                job = await JobsService(JobsRepository(session)).create_job(
                    JobType.ELO_RECALCULATION,
                    {"season_id": str(self.all_time_id)},
                )

            ready, release = asyncio.Event(), asyncio.Event()
            holder = asyncio.create_task(self._hold_until(locks, self.all_time_id, ready, release))
            await ready.wait()
            run = asyncio.create_task(runner.run(job.id))
            await asyncio.sleep(0.2)
            self.assertFalse(run.done())
            release.set()
            await holder
            await run
            return job.id

        job_id = asyncio.run(scenario())
        job = self.client.get(f"/api/v1/jobs/{job_id}").json()
        self.assertEqual(job["status"], "completed", job)
        members = {
            row["player_id"]: row
            for row in self.client.get(f"/api/v1/seasons/{self.all_time_id}/players").json()
        }
        self.assertAlmostEqual(members[str(self.alice)]["current_elo"], 1516.0, places=6)
        self.assertAlmostEqual(members[str(self.bruno)]["current_elo"], 1484.0, places=6)

    def test_runner_ignores_missing_job(self) -> None:
        runner = JobRunner(self.sessionmaker, SeasonLockManager(), self.settings)
        with self.assertLogs("api.modules.jobs.runner", level="ERROR") as captured:
            asyncio.run(runner.run(uuid4()))
        self.assertIn("job_missing", captured.output[0])


if __name__ == "__main__":
    unittest.main()
