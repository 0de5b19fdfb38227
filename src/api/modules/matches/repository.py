from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import NamedTuple
from uuid import UUID

from sqlalchemy import ColumnElement, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from api.db.models import EloConfiguration, EloHistory, Game, Match, Player, PlayerSeason, Season


class GameOrderKey(NamedTuple):
    played_at: datetime
    sequence: int


class MatchesRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_player(self, player_id: UUID) -> Player | None:
        return await self.session.get(Player, player_id)

    async def get_active_season(self, *, reload: bool = False) -> Season | None:
        stmt = select(Season).where(col(Season.is_active))
        if reload:
            # Overwrite identity-map copies with what another writer committed.
            stmt = stmt.execution_options(populate_existing=True)
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

    async def get_active_configuration(self, *, reload: bool = False) -> EloConfiguration | None:
        stmt = select(EloConfiguration).where(col(EloConfiguration.is_active))
        if reload:
            stmt = stmt.execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def get_memberships_for_update(
        self,
        season_id: UUID,
        player_ids: Iterable[UUID],
    ) -> dict[UUID, PlayerSeason]:
        stmt = (
            select(PlayerSeason)
            .where(
                PlayerSeason.season_id == season_id,
                col(PlayerSeason.player_id).in_(list(player_ids)),
            )
            .with_for_update()
        )
        result = await self.session.execute(stmt)
        return {membership.player_id: membership for membership in result.scalars().all()}

    async def get_last_order_key(self, season_id: UUID) -> GameOrderKey | None:
        stmt = (
            select(Game.played_at, Game.sequence)
            .where(Game.season_id == season_id)
            .order_by(col(Game.played_at).desc(), col(Game.sequence).desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return GameOrderKey(played_at=row[0], sequence=row[1])

    async def next_sequence(self, season_id: UUID) -> int:
        stmt = select(func.max(Game.sequence)).where(Game.season_id == season_id)
        result = await self.session.execute(stmt)
        current = result.scalar_one_or_none()
        return int(current or 0) + 1

    async def get_match(self, match_id: UUID) -> Match | None:
        return await self.session.get(Match, match_id)

    async def count_matches(
        self,
        season_id: UUID | None = None,
        player_id: UUID | None = None,
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(Match)
            .where(*self._match_filters(season_id, player_id))
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def list_matches(
        self,
        season_id: UUID | None = None,
        player_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Match]:
        stmt = (
            select(Match)
            .where(*self._match_filters(season_id, player_id))
            .order_by(col(Match.submitted_at).desc(), col(Match.created_at).desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_games_for_matches(self, match_ids: list[UUID]) -> dict[UUID, list[Game]]:
        grouped: dict[UUID, list[Game]] = {match_id: [] for match_id in match_ids}
        if not match_ids:
            return grouped
        stmt = (
            select(Game)
            .where(col(Game.match_id).in_(match_ids))
            .order_by(col(Game.game_number))
        )
        result = await self.session.execute(stmt)
        for game in result.scalars().all():
            grouped[game.match_id].append(game)
        return grouped

    async def list_history_for_games(self, game_ids: list[UUID]) -> dict[tuple[UUID, UUID], EloHistory]:
        if not game_ids:
            return {}
        stmt = select(EloHistory).where(col(EloHistory.game_id).in_(game_ids))
        result = await self.session.execute(stmt)
        return {(row.game_id, row.player_id): row for row in result.scalars().all()}

    def add(self, row: Match | Game | EloHistory | PlayerSeason | Player) -> None:
        self.session.add(row)

    async def delete_match_rows(self, match: Match) -> int:
        games = select(Game.id).where(Game.match_id == match.id)
        await self.session.execute(
            delete(EloHistory)
            .where(col(EloHistory.game_id).in_(games))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(Game)
            .where(Game.match_id == match.id)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(match)
        await self.session.flush()
        return int(result.rowcount or 0)

    async def flush(self) -> None:
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    @staticmethod
    def _match_filters(
        season_id: UUID | None,
        player_id: UUID | None,
    ) -> list[ColumnElement[bool]]:
        filters: list[ColumnElement[bool]] = []
        if season_id is not None:
            filters.append(col(Match.season_id) == season_id)
        if player_id is not None:
            filters.append(
                or_(col(Match.player1_id) == player_id, col(Match.player2_id) == player_id)
            )
        return filters
