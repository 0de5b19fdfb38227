from __future__ import annotations

import logging
from datetime import datetime
from typing import NamedTuple
from uuid import UUID

from api.common.pagination import clamp_window
from api.config.settings import Settings
from api.db.models import EloHistory, Game, Player, PlayerSeason
from api.modules.players.repository import PlayersRepository
from api.modules.players.schemas import PlayerCreateRequest, PlayerUpdateRequest

logger = logging.getLogger(__name__)


class MatchRatingPoint(NamedTuple):
    match_id: UUID
    season_id: UUID
    season_name: str
    submitted_at: datetime
    elo_before: float
    elo_after: float
    elo_version: str
    games: int


class PlayersService:
    def __init__(self, repository: PlayersRepository, settings: Settings) -> None:
        self.repository = repository
        self.settings = settings

    async def create_player(self, payload: PlayerCreateRequest) -> Player:
        season = await self.repository.get_active_season()
        starting_elo = (
            season.starting_elo if season is not None else self.settings.elo_default_starting_elo
        )
        player = Player(
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            current_elo=starting_elo,
        )
        await self.repository.add_player(player)
        if season is not None:
            await self.repository.add_membership(
                PlayerSeason(
                    player_id=player.id,
                    season_id=season.id,
                    current_elo=season.starting_elo,
                )
            )
        await self.repository.commit()
        logger.info("player_created", extra={"player_id": str(player.id)})
        return await self.repository.refresh(player)

    async def list_players(self, include_inactive: bool = True) -> list[Player]:
        return await self.repository.list_players(include_inactive=include_inactive)

    async def get_player(self, player_id: UUID) -> Player:
        player = await self.repository.get_player(player_id)
        if player is None:
            raise LookupError(f"Player not found: {player_id}")
        return player

    async def update_player(self, player_id: UUID, payload: PlayerUpdateRequest) -> Player:
        player = await self.get_player(player_id)
        if payload.first_name is not None:
            player.first_name = payload.first_name.strip()
        if payload.last_name is not None:
            player.last_name = payload.last_name.strip()
        if payload.is_active is not None:
            player.is_active = payload.is_active
        player.updated_at = self.repository.now_utc()
        self.repository.session.add(player)
        await self.repository.commit()
        return await self.repository.refresh(player)

    async def get_history(
        self,
        player_id: UUID,
        *,
        season_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[int, list[tuple[EloHistory, Game]]]:
        await self.get_player(player_id)
        safe_limit, safe_offset = clamp_window(limit, offset)
        total = await self.repository.count_history(player_id, season_id=season_id)
        rows = await self.repository.list_history(
            player_id,
            season_id=season_id,
            limit=safe_limit,
            offset=safe_offset,
        )
        return total, rows

    async def get_all_history(
        self,
        season_id: UUID | None = None,
    ) -> list[tuple[Player, list[MatchRatingPoint]]]:
        """Match-level rating history of every active player, best rated first.

        Each point spans one match: the rating before its first game and after
        its last one. Players without games get an empty history.
        """
        players = await self.repository.list_players(include_inactive=False)
        points: dict[UUID, dict[UUID, MatchRatingPoint]] = {player.id: {} for player in players}
        for entry, game, match, season in await self.repository.list_match_history_rows(season_id):
            by_match = points.get(entry.player_id)
            if by_match is None:
                continue
            point = by_match.get(match.id)
            if point is None:
                by_match[match.id] = MatchRatingPoint(
                    match_id=match.id,
                    season_id=season.id,
                    season_name=season.name,
                    submitted_at=match.submitted_at,
                    elo_before=entry.elo_before,
                    elo_after=entry.elo_after,
                    elo_version=entry.elo_version,
                    games=1,
                )
            else:
                by_match[match.id] = point._replace(
                    elo_after=entry.elo_after,
                    elo_version=entry.elo_version,
                    games=point.games + 1,
                )
        return [(player, list(points[player.id].values())) for player in players]
