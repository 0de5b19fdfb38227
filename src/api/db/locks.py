"""Per-season write locks for ingestion and replay."""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from time import monotonic
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from api.common.errors import ConflictError

logger = logging.getLogger(__name__)


class SeasonBusyError(ConflictError):
    def __init__(self, season_id: UUID) -> None:
        super().__init__(f"Season {season_id} is busy; retry shortly.")
        self.season_id = season_id


def advisory_lock_key(name: str) -> int:
    """Return a deterministic signed 64-bit lock key for a lock name."""
    digest = hashlib.sha256(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=True)


class SeasonLockManager:
    """Exclusive per-season lock held for the life of one transaction.

    Inside a process an ``asyncio.Lock`` per season serializes writers. On
    PostgreSQL a transaction-scoped advisory lock extends the guarantee
    across processes; it is released by the database on commit or rollback.
    """

    def __init__(self, timeout_s: float | None = 5.0, poll_interval_s: float = 0.1) -> None:
        # None waits without a deadline.
        self.timeout_s = timeout_s
        self.poll_interval_s = poll_interval_s
        self._locks: dict[UUID, asyncio.Lock] = {}

    def patient(self) -> SeasonLockManager:
        """Return a view over the same locks that waits for them without a deadline.

        Background jobs hold locks through this view, so their replays queue
        behind request writers instead of failing.
        """
        view = SeasonLockManager(timeout_s=None, poll_interval_s=self.poll_interval_s)
        view._locks = self._locks
        return view

    def is_locked(self, season_id: UUID) -> bool:
        lock = self._locks.get(season_id)
        return lock is not None and lock.locked()

    def busy_count(self) -> int:
        return sum(1 for lock in self._locks.values() if lock.locked())

    @asynccontextmanager
    async def hold(
        self,
        session: AsyncSession,
        season_ids: Iterable[UUID],
    ) -> AsyncIterator[None]:
        # Callers pass seasons in start_date order so multi-season holders
        # never deadlock against each other.
        ordered = list(dict.fromkeys(season_ids))
        acquired: list[asyncio.Lock] = []
        try:
            for season_id in ordered:
                lock = self._locks.setdefault(season_id, asyncio.Lock())
                await self._acquire(lock, season_id)
                acquired.append(lock)
            if _dialect_name(session) == "postgresql":
                for season_id in ordered:
                    await self._acquire_advisory(session, season_id)
            yield
        except BaseException:
            # Roll back before the lock is released.
            await session.rollback()
            raise
        finally:
            for lock in reversed(acquired):
                lock.release()

    async def _acquire(self, lock: asyncio.Lock, season_id: UUID) -> None:
        if not lock.locked():
            await lock.acquire()
            return
        logger.info("season_lock_wait", extra={"season_id": str(season_id)})
        try:
            await asyncio.wait_for(lock.acquire(), timeout=self.timeout_s)
        except asyncio.TimeoutError as exc:
            logger.warning("season_lock_timeout", extra={"season_id": str(season_id)})
            raise SeasonBusyError(season_id) from exc

    async def _acquire_advisory(self, session: AsyncSession, season_id: UUID) -> None:
        key = advisory_lock_key(f"season:{season_id}")
        deadline = None if self.timeout_s is None else monotonic() + max(self.timeout_s, 0.0)
        while True:
            result = await session.execute(
                text("SELECT pg_try_advisory_xact_lock(:key)"),
                {"key": key},
            )
            if bool(result.scalar()):
                return
            if deadline is not None and monotonic() >= deadline:
                raise SeasonBusyError(season_id)
            await asyncio.sleep(max(self.poll_interval_s, 0.05))


def _dialect_name(session: AsyncSession) -> str:
    return session.get_bind().dialect.name
