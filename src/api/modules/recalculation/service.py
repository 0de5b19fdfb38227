from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from api.db.locks import SeasonLockManager
from api.db.models import Season
from api.modules.recalculation.engine import ProgressReporter, RecalculationEngine
from api.modules.recalculation.repository import RecalculationRepository

logger = logging.getLogger(__name__)


class RecalculationService:
    def __init__(
        self,
        repository: RecalculationRepository,
        engine: RecalculationEngine,
        locks: SeasonLockManager,
    ) -> None:
        self.repository = repository
        self.engine = engine
        self.locks = locks

    async def resolve_targets(self, season_id: UUID | None) -> list[Season]:
        if season_id is None:
            seasons = await self.repository.list_seasons()
            if not seasons:
                raise ValueError("There are no seasons to recalculate.")
            return seasons
        season = await self.repository.get_season(season_id)
        if season is None:
            raise LookupError(f"Season not found: {season_id}")
        return [season]

    async def validate_version(self, version_name: str) -> None:
        if await self.repository.get_configuration(version_name) is None:
            raise LookupError(f"Rating configuration not found: {version_name}")

    async def recalculate(
        self,
        season_id: UUID | None = None,
        reporter: ProgressReporter | None = None,
        *,
        retag_version: str | None = None,
    ) -> dict[str, Any]:
        """Replay one season, or every season in start order, in one transaction."""
        seasons = await self.resolve_targets(season_id)
        if retag_version is not None:
            await self.validate_version(retag_version)

        async with self.locks.hold(self.repository.session, [season.id for season in seasons]):
            total = await self.repository.count_games(season.id for season in seasons)
            summaries = []
            processed = 0
            for season in seasons:
                summary = await self.engine.replay_season(
                    season,
                    reporter,
                    retag_version=retag_version,
                    progress_offset=processed,
                    progress_total=total,
                )
                processed += summary.games_replayed
                summaries.append(summary)
            await self.repository.commit()

        logger.info(
            "recalculation_completed",
            extra={
                "season_id": str(season_id) if season_id else "all",
                "games_replayed": processed,
            },
        )
        result: dict[str, Any] = {
            "games_replayed": processed,
            "seasons": [summary.as_dict() for summary in summaries],
        }
        if retag_version is not None:
            result["elo_version"] = retag_version
        return result
