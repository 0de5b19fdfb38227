from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any
from uuid import UUID

# Allows running the script from the repository root.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))


async def print_progress(processed: int, total: int) -> None:
    print(f"  progress {processed}/{total}")


async def recalculate(season_id: UUID | None, retag_version: str | None) -> dict[str, Any]:
    from api.config.settings import get_settings
    from api.db.locks import SeasonLockManager
    from api.db.session import get_sessionmaker
    from api.modules.recalculation.engine import RecalculationEngine
    from api.modules.recalculation.repository import RecalculationRepository
    from api.modules.recalculation.service import RecalculationService

    settings = get_settings()
    async with get_sessionmaker()() as session:
        repository = RecalculationRepository(session=session)
        service = RecalculationService(
            repository=repository,
            engine=RecalculationEngine(
                repository,
                progress_interval=settings.recalc_progress_interval,
            ),
            locks=SeasonLockManager(timeout_s=settings.season_lock_timeout_s),
        )
        return await service.recalculate(
            season_id,
            print_progress,
            retag_version=retag_version,
        )


async def print_leaderboard(season_id: UUID, top: int) -> None:
    from api.db.session import get_sessionmaker
    from api.modules.seasons.repository import SeasonsRepository

    async with get_sessionmaker()() as session:
        repository = SeasonsRepository(session=session)
        season = await repository.get_season(season_id)
        rows = await repository.list_members_with_players(season_id, included_only=True)
    name = season.name if season is not None else str(season_id)
    print(f"Leaderboard: {name}")
    for rank, (membership, player) in enumerate(rows[:top], start=1):
        print(
            f"  {rank:>3}. {player.display_name:<30} {membership.current_elo:>8.1f} "
            f"({membership.wins}-{membership.losses})"
        )


async def main_async() -> None:
    parser = argparse.ArgumentParser(
        description="Replay rating history for one season or for every season."
    )
    parser.add_argument(
        "--season-id",
        type=UUID,
        default=None,
        help="Season to replay (default: every season in start order).",
    )
    parser.add_argument(
        "--retag-version",
        default=None,
        help="Retag the replayed games with this configuration version first.",
    )
    parser.add_argument("--top", type=int, default=10, help="Leaderboard rows to print.")
    args = parser.parse_args()

    from api.db.session import get_engine

    try:
        result = await recalculate(args.season_id, args.retag_version)
        print(f"Replayed {result['games_replayed']} games.")
        for summary in result["seasons"]:
            await print_leaderboard(UUID(summary["season_id"]), args.top)
    except (LookupError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    finally:
        await get_engine().dispose()


if __name__ == "__main__":
    asyncio.run(main_async())
