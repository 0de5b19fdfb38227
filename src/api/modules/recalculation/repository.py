from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from api.db.models import EloConfiguration, EloHistory, Game, Player, PlayerSeason, Season


class RecalculationRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_season(self, season_id: UUID) -> Season | None:
        return await self.session.get(Season, season_id)

    async def list_seasons(self) -> list[Season]:
        stmt = select(Season).order_by(col(Season.start_date))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_configuration(self, version_name: str) -> EloConfiguration | None:
        stmt = select(EloConfiguration).where(EloConfiguration.version_name == version_name)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_configurations_by_version(self) -> dict[str, EloConfiguration]:
        result = await self.session.execute(select(EloConfiguration))
        return {config.version_name: config for config in result.scalars().all()}

    async def list_games_in_order(self, season_id: UUID) -> list[Game]:
        stmt = (
            select(Game)
            .where(Game.season_id == season_id)
            .order_by(col(Game.played_at), col(Game.sequence), col(Game.id))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_games(self, season_ids: Iterable[UUID]) -> int:
        ids = list(season_ids)
        if not ids:
            return 0
        stmt = select(func.count()).select_from(Game).where(col(Game.season_id).in_(ids))
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_memberships(self, season_id: UUID) -> list[PlayerSeason]:
        stmt = (
            select(PlayerSeason)
            .where(PlayerSeason.season_id == season_id)
            .order_by(col(PlayerSeason.player_id))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def delete_history(self, season_id: UUID) -> None:
        season_games = select(Game.id).where(Game.season_id == season_id)
        await self.session.execute(
            delete(EloHistory)
            .where(
                or_(
                    col(EloHistory.season_id) == season_id,
                    col(EloHistory.game_id).in_(season_games),
                )
            )
            .execution_options(synchronize_session=False)
        )

    def add_history(self, rows: Iterable[EloHistory]) -> None:
        self.session.add_all(list(rows))

    async def list_players(self) -> list[Player]:
        result = await self.session.execute(select(Player))
        return list(result.scalars().all())

    async def flush(self) -> None:
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)
