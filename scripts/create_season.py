from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Allows running the script from the repository root.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))


async def create_season(args: argparse.Namespace) -> None:
    from api.config.settings import get_settings
    from api.db.locks import SeasonLockManager
    from api.db.session import get_sessionmaker
    from api.modules.jobs.repository import JobsRepository
    from api.modules.jobs.runner import JobRunner
    from api.modules.jobs.scheduler import JobScheduler
    from api.modules.jobs.service import JobsService
    from api.modules.recalculation.engine import RecalculationEngine
    from api.modules.recalculation.repository import RecalculationRepository
    from api.modules.seasons.repository import SeasonsRepository
    from api.modules.seasons.schemas import SeasonCreateRequest
    from api.modules.seasons.service import SeasonsService

    settings = get_settings()
    sessionmaker = get_sessionmaker()
    locks = SeasonLockManager(timeout_s=settings.season_lock_timeout_s)
    async with sessionmaker() as session:
        service = SeasonsService(
            repository=SeasonsRepository(session=session),
            engine=RecalculationEngine(
                RecalculationRepository(session=session),
                progress_interval=settings.recalc_progress_interval,
            ),
            locks=locks,
            settings=settings,
            scheduler=JobScheduler(JobsService(JobsRepository(session=session))),
        )
        season, job = await service.create_season(
            SeasonCreateRequest(
                name=args.name,
                description=args.description,
                start_date=args.start_date,
                starting_elo=args.starting_elo,
                activate=not args.inactive,
                created_by=args.created_by,
            )
        )

    print("Season created:")
    print(f"  id={season.id}")
    print(f"  name={season.name}")
    print(f"  start_date={season.start_date.isoformat()}")
    print(f"  starting_elo={season.starting_elo}")
    print(f"  is_active={season.is_active}")
    if job is not None:
        # No web worker here; run the reassignment inline.
        await JobRunner(sessionmaker, locks, settings).run(job.id)
        async with sessionmaker() as session:
            finished = await JobsService(JobsRepository(session=session)).get_job(job.id)
        print(f"  reassignment_job={finished.id} status={finished.status.value}")
        if finished.result_data:
            print(f"  result={finished.result_data}")


async def main_async() -> None:
    parser = argparse.ArgumentParser(description="Create a rating season.")
    parser.add_argument("--name", required=True)
    parser.add_argument(
        "--start-date",
        type=datetime.fromisoformat,
        default=datetime.now(),
        help="ISO-8601 start of the season window (default: now).",
    )
    parser.add_argument("--description", default=None)
    parser.add_argument("--starting-elo", type=float, default=None)
    parser.add_argument("--inactive", action="store_true", help="Do not activate the season.")
    parser.add_argument("--created-by", default="create_season")
    args = parser.parse_args()

    try:
        await create_season(args)
    except (LookupError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    finally:
        from api.db.session import get_engine

        await get_engine().dispose()


if __name__ == "__main__":
    asyncio.run(main_async())
