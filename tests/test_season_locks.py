from __future__ import annotations

import asyncio
import sys
import unittest
from pathlib import Path
from types import SimpleNamespace
from typing import cast
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncSession

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from api.common.errors import ConflictError
from api.db.locks import SeasonBusyError, SeasonLockManager, advisory_lock_key


class _FakeSession:
    def __init__(self, dialect: str = "sqlite") -> None:
        self.rollbacks = 0
        self._bind = SimpleNamespace(dialect=SimpleNamespace(name=dialect))

    def get_bind(self) -> SimpleNamespace:
        return self._bind

    async def rollback(self) -> None:
        self.rollbacks += 1


def _session(fake: _FakeSession) -> AsyncSession:
    return cast(AsyncSession, fake)


class TestSeasonLockManager(unittest.TestCase):
    def test_second_writer_times_out_with_busy_conflict(self) -> None:
        season_id = uuid4()
        locks = SeasonLockManager(timeout_s=0.05)

        async def scenario() -> None:
            holder_ready = asyncio.Event()
            release = asyncio.Event()

            async def holder() -> None:
                async with locks.hold(_session(_FakeSession()), [season_id]):
                    holder_ready.set()
                    await release.wait()

            task = asyncio.create_task(holder())
            await holder_ready.wait()
            self.assertTrue(locks.is_locked(season_id))
            self.assertEqual(locks.busy_count(), 1)
            with self.assertRaises(SeasonBusyError) as ctx:
                async with locks.hold(_session(_FakeSession()), [season_id]):
                    self.fail("lock should not be granted")
            self.assertIsInstance(ctx.exception, ConflictError)
            self.assertEqual(ctx.exception.season_id, season_id)
            release.set()
            await task
            self.assertEqual(locks.busy_count(), 0)

        asyncio.run(scenario())
        self.assertFalse(locks.is_locked(season_id))

    def test_waiter_proceeds_once_holder_releases(self) -> None:
        season_id = uuid4()
        locks = SeasonLockManager(timeout_s=1.0)
        order: list[str] = []

        async def worker(name: str, pause: float) -> None:
            async with locks.hold(_session(_FakeSession()), [season_id]):
                order.append(f"{name}:start")
                await asyncio.sleep(pause)
                order.append(f"{name}:end")

        async def scenario() -> None:
            first = asyncio.create_task(worker("first", 0.05))
            await asyncio.sleep(0)
            await asyncio.gather(first, worker("second", 0.0))

        asyncio.run(scenario())
        self.assertEqual(order, ["first:start", "first:end", "second:start", "second:end"])

    def test_different_seasons_do_not_block_each_other(self) -> None:
        locks = SeasonLockManager(timeout_s=0.05)
        first, second = uuid4(), uuid4()

        async def scenario() -> None:
            async with locks.hold(_session(_FakeSession()), [first]):
                async with locks.hold(_session(_FakeSession()), [second]):
                    self.assertTrue(locks.is_locked(first))
                    self.assertTrue(locks.is_locked(second))

        asyncio.run(scenario())

    def test_failure_rolls_back_and_releases(self) -> None:
        season_id = uuid4()
        locks = SeasonLockManager(timeout_s=0.05)
        session = _FakeSession()

        async def scenario() -> None:
            async with locks.hold(_session(session), [season_id, season_id]):
                raise ValueError("invalid game")

        with self.assertRaises(ValueError):
            asyncio.run(scenario())
        self.assertEqual(session.rollbacks, 1)
        self.assertFalse(locks.is_locked(season_id))

    def test_patient_view_waits_past_the_timeout(self) -> None:
        season_id = uuid4()
        locks = SeasonLockManager(timeout_s=0.05)
        patient = locks.patient()
        self.assertIsNone(patient.timeout_s)

        async def scenario() -> bool:
            release = asyncio.Event()
            ready = asyncio.Event()

            async def holder() -> None:
                async with locks.hold(_session(_FakeSession()), [season_id]):
                    ready.set()
                    await release.wait()

            task = asyncio.create_task(holder())
            await ready.wait()
            self.assertTrue(patient.is_locked(season_id))

            async def waiter() -> bool:
                async with patient.hold(_session(_FakeSession()), [season_id]):
                    return locks.is_locked(season_id)

            waiting = asyncio.create_task(waiter())
            await asyncio.sleep(0.2)
            self.assertFalse(waiting.done())
            release.set()
            await task
            return await waiting

        self.assertTrue(asyncio.run(scenario()))
        self.assertEqual(locks.busy_count(), 0)

    def test_advisory_key_is_stable_signed_64_bit(self) -> None:
        key = advisory_lock_key("season:abc")
        self.assertEqual(key, advisory_lock_key("season:abc"))
        self.assertNotEqual(key, advisory_lock_key("season:abd"))
        self.assertGreaterEqual(key, -(2**63))
        self.assertLess(key, 2**63)


if __name__ == "__main__":
    unittest.main()
