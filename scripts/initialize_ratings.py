from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Allows running the script from the repository root.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

DEFAULT_CONFIGURATIONS: list[dict[str, object]] = [
    {
        "version_name": "v1",
        "k_policy": "static",
        "k_factor": 32.0,
        "starting_elo": 1000.0,
        "description": "Static K=32 for every game.",
        "activate": True,
    },
    {
        "version_name": "v2",
        "k_policy": "linear_decay",
        "base_k_factor": 20.0,
        "new_player_k_bonus": 48.0,
        "new_player_bonus_period": 10,
        "starting_elo": 1000.0,
        "description": "Base K=20 plus a new-player bonus of 48 fading linearly over 10 games.",
    },
    {
        "version_name": "v3",
        "k_policy": "exponential_decay",
        "base_k_factor": 20.0,
        "new_player_k_bonus": 48.0,
        "new_player_bonus_period": 10,
        "starting_elo": 1000.0,
        "description": "Base K=20 plus a new-player bonus of 48 fading exponentially.",
    },
]

ALL_TIME_SEASON = "All-Time"
ALL_TIME_START = datetime(2000, 1, 1)


async def seed_configurations(created_by: str | None) -> list[str]:
    from api.db.session import get_sessionmaker
    from api.modules.configurations.repository import ConfigurationsRepository
    from api.modules.configurations.schemas import ConfigurationCreateRequest
    from api.modules.configurations.service import ConfigurationsService

    created: list[str] = []
    async with get_sessionmaker()() as session:
        service = ConfigurationsService(repository=ConfigurationsRepository(session=session))
        has_active = await service.get_active_configuration() is not None
        for fields in DEFAULT_CONFIGURATIONS:
            version_name = str(fields["version_name"])
            try:
                await service.get_configuration(version_name)
                continue
            except LookupError:
                pass
            payload = ConfigurationCreateRequest.model_validate(
                {**fields, "created_by": created_by}
            )
            if has_active:
                payload.activate = False
            await service.create_configuration(payload)
            created.append(version_name)
    return created


async def seed_all_time_season(created_by: str | None) -> bool:
    from api.config.settings import get_settings
    from api.db.locks import SeasonLockManager
    from api.db.session import get_sessionmaker
    from api.modules.recalculation.engine import RecalculationEngine
    from api.modules.recalculation.repository import RecalculationRepository
    from api.modules.seasons.repository import SeasonsRepository
    from api.modules.seasons.schemas import SeasonCreateRequest
    from api.modules.seasons.service import SeasonsService

    settings = get_settings()
    async with get_sessionmaker()() as session:
        repository = SeasonsRepository(session=session)
        if await repository.list_seasons():
            return False
        service = SeasonsService(
            repository=repository,
            engine=RecalculationEngine(RecalculationRepository(session=session)),
            locks=SeasonLockManager(timeout_s=settings.season_lock_timeout_s),
            settings=settings,
        )
        await service.create_season(
            SeasonCreateRequest(
                name=ALL_TIME_SEASON,
                description="Every game ever recorded.",
                start_date=ALL_TIME_START,
                starting_elo=settings.elo_default_starting_elo,
                activate=True,
                created_by=created_by,
            )
        )
    return True


async def main_async() -> None:
    parser = argparse.ArgumentParser(
        description="Create tables and seed default rating configurations and the All-Time season."
    )
    parser.add_argument("--created-by", default="initialize_ratings")
    parser.add_argument(
        "--skip-create-tables",
        action="store_true",
        help="Assume the schema already exists (e.g. applied by alembic).",
    )
    args = parser.parse_args()

    from api.db.session import get_engine, init_db

    if not args.skip_create_tables:
        await init_db()
    created = await seed_configurations(args.created_by)
    season_created = await seed_all_time_season(args.created_by)

    print("Rating data ready:")
    print(f"  configurations_created={', '.join(created) or 'none'}")
    print(f"  all_time_season_created={season_created}")

    await get_engine().dispose()


if __name__ == "__main__":
    asyncio.run(main_async())
