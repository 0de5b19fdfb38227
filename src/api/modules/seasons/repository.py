from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import delete, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from api.db.models import EloConfiguration, EloHistory, Game, Match, Player, PlayerSeason, Season


class SeasonsRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_season(self, season_id: UUID) -> Season | None:
        return await self.session.get(Season, season_id)

    async def get_season_by_name(self, name: str) -> Season | None:
        stmt = select(Season).where(Season.name == name)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_season_by_start(self, start_date: datetime) -> Season | None:
        stmt = select(Season).where(Season.start_date == start_date)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_active_season(self, *, reload: bool = False) -> Season | None:
        stmt = select(Season).where(col(Season.is_active))
        if reload:
            # Overwrite identity-map copies with what another writer committed.
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_seasons(self) -> list[Season]:
        stmt = select(Season).order_by(col(Season.start_date))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_previous_season(self, start_date: datetime) -> Season | None:
        stmt = (
            select(Season)
            .where(col(Season.start_date) < start_date)
            .order_by(col(Season.start_date).desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_next_season(self, start_date: datetime) -> Season | None:
        stmt = (
            select(Season)
            .where(col(Season.start_date) > start_date)
            .order_by(col(Season.start_date))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def deactivate_all(self) -> None:
        await self.session.execute(
            update(Season).where(col(Season.is_active)).values(is_active=False)
        )

    async def get_active_configuration(self) -> EloConfiguration | None:
        stmt = select(EloConfiguration).where(col(EloConfiguration.is_active))
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_configuration(self, version_name: str) -> EloConfiguration | None:
        stmt = select(EloConfiguration).where(EloConfiguration.version_name == version_name)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_player(self, player_id: UUID) -> Player | None:
        return await self.session.get(Player, player_id)

    async def list_active_players(self) -> list[Player]:
        stmt = select(Player).where(col(Player.is_active))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_available_players(self, season_id: UUID) -> list[Player]:
        members = select(PlayerSeason.player_id).where(PlayerSeason.season_id == season_id)
        stmt = (
            select(Player)
            .where(col(Player.is_active), col(Player.id).not_in(members))
            .order_by(col(Player.first_name), col(Player.last_name))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_membership(self, season_id: UUID, player_id: UUID) -> PlayerSeason | None:
        stmt = select(PlayerSeason).where(
            PlayerSeason.season_id == season_id,
            PlayerSeason.player_id == player_id,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_memberships(self, season_id: UUID) -> list[PlayerSeason]:
        stmt = select(PlayerSeason).where(PlayerSeason.season_id == season_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_members_with_players(
        self,
        season_id: UUID,
        included_only: bool = False,
    ) -> list[tuple[PlayerSeason, Player]]:
        stmt = (
            select(PlayerSeason, Player)
            .join(Player, col(PlayerSeason.player_id) == col(Player.id))
            .where(PlayerSeason.season_id == season_id)
        )
        if included_only:
            stmt = stmt.where(col(PlayerSeason.is_included))
        stmt = stmt.order_by(
            col(PlayerSeason.current_elo).desc(),
            col(Player.first_name),
            col(Player.last_name),
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def count_games(self, season_id: UUID) -> int:
        stmt = select(func.count()).select_from(Game).where(Game.season_id == season_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def count_games_in_window(self, start: datetime, end: datetime | None) -> int:
        stmt = select(func.count()).select_from(Game).where(col(Game.played_at) >= start)
        if end is not None:
            stmt = stmt.where(col(Game.played_at) < end)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_games(self) -> list[Game]:
        result = await self.session.execute(select(Game))
        return list(result.scalars().all())

    async def list_games_for_season(self, season_id: UUID) -> list[Game]:
        result = await self.session.execute(select(Game).where(Game.season_id == season_id))
        return list(result.scalars().all())

    async def list_matches(self) -> list[Match]:
        result = await self.session.execute(select(Match))
        return list(result.scalars().all())

    async def list_matches_for_season(self, season_id: UUID) -> list[Match]:
        result = await self.session.execute(select(Match).where(Match.season_id == season_id))
        return list(result.scalars().all())

    async def delete_season_rows(self, season: Season) -> None:
        await self.session.execute(
            delete(EloHistory)
            .where(EloHistory.season_id == season.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            delete(PlayerSeason)
            .where(PlayerSeason.season_id == season.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(season)
        await self.session.flush()

    def add(self, row: Season | PlayerSeason | Game | Match) -> None:
        self.session.add(row)

    async def flush(self) -> None:
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)
