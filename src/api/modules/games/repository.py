from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from api.db.models import EloHistory, Game, Match, Season


class GamesRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_game(self, game_id: UUID, *, reload: bool = False) -> Game | None:
        if not reload:
            return await self.session.get(Game, game_id)
        stmt = select(Game).where(Game.id == game_id).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_season(self, season_id: UUID) -> Season | None:
        return await self.session.get(Season, season_id)

    async def get_next_season(self, start_date: datetime) -> Season | None:
        stmt = (
            select(Season)
            .where(col(Season.start_date) > start_date)
            .order_by(col(Season.start_date))
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def list_history(self, game_id: UUID) -> dict[UUID, EloHistory]:
        stmt = select(EloHistory).where(EloHistory.game_id == game_id)
        result = await self.session.execute(stmt)
        return {row.player_id: row for row in result.scalars().all()}

    async def delete_game_rows(self, game: Game) -> bool:
        """Delete a game with its history; drop the match too once it has no games.

        Returns whether the match was deleted.
        """
        await self.session.execute(
            delete(EloHistory)
            .where(EloHistory.game_id == game.id)
            .execution_options(synchronize_session=False)
        )
        match_id = game.match_id
        await self.session.delete(game)
        await self.session.flush()

        stmt = select(func.count()).select_from(Game).where(Game.match_id == match_id)
        remaining = int((await self.session.execute(stmt)).scalar_one())
        if remaining:
            return False
        match = await self.session.get(Match, match_id)
        if match is not None:
            await self.session.delete(match)
            await self.session.flush()
        return True

    def add(self, row: Game) -> None:
        self.session.add(row)

    async def flush(self) -> None:
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()
