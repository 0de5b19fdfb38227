from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from api.db.models import EloHistory, Game, Match, Player, PlayerSeason, Season


class PlayersRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_player(self, player_id: UUID) -> Player | None:
        return await self.session.get(Player, player_id)

    async def list_players(self, include_inactive: bool = True) -> list[Player]:
        stmt = select(Player)
        if not include_inactive:
            stmt = stmt.where(col(Player.is_active))
        stmt = stmt.order_by(col(Player.current_elo).desc(), col(Player.first_name), col(Player.last_name))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_season(self) -> Season | None:
        stmt = select(Season).where(col(Season.is_active))
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def add_player(self, player: Player) -> Player:
        self.session.add(player)
        await self.session.flush()
        return player

    async def add_membership(self, membership: PlayerSeason) -> PlayerSeason:
        self.session.add(membership)
        await self.session.flush()
        return membership

    async def count_history(self, player_id: UUID, season_id: UUID | None = None) -> int:
        stmt = select(func.count()).select_from(EloHistory).where(EloHistory.player_id == player_id)
        if season_id is not None:
            stmt = stmt.where(EloHistory.season_id == season_id)
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_history(
        self,
        player_id: UUID,
        season_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[tuple[EloHistory, Game]]:
        stmt = (
            select(EloHistory, Game)
            .join(Game, col(EloHistory.game_id) == col(Game.id))
            .where(EloHistory.player_id == player_id)
        )
        if season_id is not None:
            stmt = stmt.where(EloHistory.season_id == season_id)
        stmt = (
            stmt.order_by(col(Game.played_at).desc(), col(Game.sequence).desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def list_match_history_rows(
        self,
        season_id: UUID | None = None,
    ) -> list[tuple[EloHistory, Game, Match, Season]]:
        stmt = (
            select(EloHistory, Game, Match, Season)
            .join(Game, col(EloHistory.game_id) == col(Game.id))
            .join(Match, col(Game.match_id) == col(Match.id))
            .join(Season, col(EloHistory.season_id) == col(Season.id))
            .join(Player, col(EloHistory.player_id) == col(Player.id))
            .where(col(Player.is_active))
        )
        if season_id is not None:
            stmt = stmt.where(EloHistory.season_id == season_id)
        stmt = stmt.order_by(
            col(Match.submitted_at),
            col(Match.id),
            col(Game.played_at),
            col(Game.sequence),
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1], row[2], row[3]) for row in result.all()]

    async def commit(self) -> None:
        await self.session.commit()

    async def refresh(self, player: Player) -> Player:
        await self.session.refresh(player)
        return player

    @staticmethod
    def now_utc() -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)
