from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, NamedTuple
from uuid import UUID

from api.common.clock import to_naive_utc, utcnow
from api.common.errors import ConflictError
from api.common.pagination import clamp_window
from api.config.settings import Settings
from api.db.enums import JobType, MatchWinner
from api.db.locks import SeasonLockManager
from api.db.models import EloHistory, Game, Job, Match, Player, Season
from api.modules.jobs.scheduler import JobScheduler
from api.modules.matches.repository import MatchesRepository
from api.modules.matches.schemas import MatchSubmitRequest
from api.modules.recalculation.engine import ProgressReporter, RecalculationEngine, history_rows
from elo.ledger import PlayerStanding, RatingLedger, ReplayGame

logger = logging.getLogger(__name__)


class MatchRecord(NamedTuple):
    match: Match
    games: list[Game]
    history: dict[tuple[UUID, UUID], EloHistory]


def spread_played_at(submitted_at: datetime, game_count: int, interval: timedelta) -> list[datetime]:
    """Evenly spaced timestamps for a match's games, the last one at ``submitted_at``."""
    return [submitted_at - interval * (game_count - number) for number in range(1, game_count + 1)]


class MatchesService:
    def __init__(
        self,
        repository: MatchesRepository,
        engine: RecalculationEngine,
        locks: SeasonLockManager,
        settings: Settings,
        scheduler: JobScheduler | None = None,
    ) -> None:
        self.repository = repository
        self.engine = engine
        self.locks = locks
        self.settings = settings
        self.scheduler = scheduler

    async def submit_match(self, payload: MatchSubmitRequest) -> MatchRecord:
        if payload.player1_id == payload.player2_id:
            raise ValueError("A match needs two distinct players.")
        if not payload.games:
            raise ValueError("A match needs at least one game.")

        players = [
            await self._require_player(payload.player1_id),
            await self._require_player(payload.player2_id),
        ]
        for player in players:
            if not player.is_active:
                raise ValueError(f"Player {player.display_name} is inactive.")

        config = await self.repository.get_active_configuration()
        if config is None:
            raise ValueError("No active rating configuration.")
        season = await self.repository.get_active_season()
        if season is None:
            raise ValueError("No active season.")

        submitted_at = (
            to_naive_utc(payload.submitted_at) if payload.submitted_at is not None else utcnow()
        )
        interval = timedelta(minutes=self.settings.match_game_interval_minutes)
        played_at = spread_played_at(submitted_at, len(payload.games), interval)
        await self._check_window(season, played_at[0], submitted_at)

        async with self.locks.hold(self.repository.session, [season.id]):
            current = await self.repository.get_active_season(reload=True)
            if current is None or current.id != season.id:
                raise ConflictError(
                    f"The active season changed while the match for season '{season.name}' "
                    "was waiting; submit it again."
                )
            await self._check_window(season, played_at[0], submitted_at)
            config = await self.repository.get_active_configuration(reload=True)
            if config is None:
                raise ValueError("No active rating configuration.")

            memberships = await self.repository.get_memberships_for_update(
                season.id,
                [player.id for player in players],
            )
            for player in players:
                membership = memberships.get(player.id)
                if membership is None:
                    raise ValueError(
                        f"Player {player.display_name} is not part of season '{season.name}'."
                    )
                if not membership.is_included:
                    raise ValueError(
                        f"Player {player.display_name} is excluded from season '{season.name}'."
                    )

            last_key = await self.repository.get_last_order_key(season.id)
            backdated = last_key is not None and played_at[0] < last_key.played_at
            sequence = await self.repository.next_sequence(season.id)
            policy = season.policy_override() or config.policy()

            ledger = RatingLedger(season.starting_elo)
            for player_id, membership in memberships.items():
                ledger.seed(
                    player_id,
                    PlayerStanding(
                        rating=membership.current_elo,
                        games_played=membership.games_played,
                        wins=membership.wins,
                        losses=membership.losses,
                    ),
                )

            match = Match(
                season_id=season.id,
                player1_id=payload.player1_id,
                player2_id=payload.player2_id,
                submitted_at=submitted_at,
                created_by=payload.created_by,
            )
            self.repository.add(match)
            games: list[Game] = []
            for number, (entry, moment) in enumerate(zip(payload.games, played_at), start=1):
                if entry.winner == MatchWinner.PLAYER1:
                    winner_id, loser_id = payload.player1_id, payload.player2_id
                else:
                    winner_id, loser_id = payload.player2_id, payload.player1_id
                game = Game(
                    match_id=match.id,
                    season_id=season.id,
                    game_number=number,
                    player1_id=winner_id,
                    player2_id=loser_id,
                    played_at=moment,
                    sequence=sequence + number - 1,
                    elo_version=config.version_name,
                )
                applied = ledger.apply(
                    ReplayGame(
                        game_id=game.id,
                        winner_id=winner_id,
                        loser_id=loser_id,
                        policy=policy,
                    )
                )
                self.repository.add(game)
                for row in history_rows(game, applied):
                    self.repository.add(row)
                games.append(game)
            await self.repository.flush()

            if backdated:
                # Later games already exist, so the season is rebuilt in order.
                await self.engine.replay_season(season)
            else:
                now = utcnow()
                for player_id, membership in memberships.items():
                    standing = ledger.standing(player_id)
                    membership.current_elo = standing.rating
                    membership.games_played = standing.games_played
                    membership.wins = standing.wins
                    membership.losses = standing.losses
                    membership.updated_at = now
                    self.repository.add(membership)
                for player in players:
                    player.current_elo = ledger.standing(player.id).rating
                    player.updated_at = now
                    self.repository.add(player)
                await self.repository.flush()

            history = await self.repository.list_history_for_games([game.id for game in games])
            await self.repository.commit()

        logger.info(
            "match_submitted",
            extra={
                "match_id": str(match.id),
                "season_id": str(season.id),
                "games": len(games),
                "elo_version": config.version_name,
                "backdated": backdated,
            },
        )
        return MatchRecord(match=match, games=games, history=history)

    async def get_match(self, match_id: UUID) -> MatchRecord:
        match = await self.repository.get_match(match_id)
        if match is None:
            raise LookupError(f"Match not found: {match_id}")
        records = await self._load_records([match])
        return records[0]

    async def list_matches(
        self,
        *,
        season_id: UUID | None = None,
        player_id: UUID | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[int, list[MatchRecord]]:
        safe_limit, safe_offset = clamp_window(limit, offset)
        total = await self.repository.count_matches(season_id=season_id, player_id=player_id)
        matches = await self.repository.list_matches(
            season_id=season_id,
            player_id=player_id,
            limit=safe_limit,
            offset=safe_offset,
        )
        return total, await self._load_records(matches)

    async def request_deletion(self, match_id: UUID, created_by: str | None = None) -> Job:
        match = await self.repository.get_match(match_id)
        if match is None:
            raise LookupError(f"Match not found: {match_id}")
        if self.scheduler is None:
            raise RuntimeError("No job scheduler is configured for this service.")
        return await self.scheduler.enqueue(
            JobType.MATCH_DELETION,
            {"match_id": str(match.id), "season_id": str(match.season_id)},
            created_by=created_by,
        )

    async def delete_match(
        self,
        match_id: UUID,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        """Remove a match with its games and history, then replay its seasons."""
        match = await self.repository.get_match(match_id)
        if match is None:
            raise LookupError(f"Match not found: {match_id}")
        games = (await self.repository.list_games_for_matches([match.id]))[match.id]
        season_ids = {game.season_id for game in games} | {match.season_id}
        seasons = [await self._require_season(season_id) for season_id in season_ids]
        seasons.sort(key=lambda season: season.start_date)

        async with self.locks.hold(self.repository.session, [season.id for season in seasons]):
            deleted = await self.repository.delete_match_rows(match)
            summaries = [await self.engine.replay_season(season, reporter) for season in seasons]
            await self.repository.commit()

        logger.info(
            "match_deleted",
            extra={"match_id": str(match_id), "games_deleted": deleted},
        )
        return {
            "match_id": str(match_id),
            "games_deleted": deleted,
            "games_replayed": sum(summary.games_replayed for summary in summaries),
            "seasons": [summary.as_dict() for summary in summaries],
        }

    async def _load_records(self, matches: list[Match]) -> list[MatchRecord]:
        games_by_match = await self.repository.list_games_for_matches([match.id for match in matches])
        game_ids = [game.id for games in games_by_match.values() for game in games]
        history = await self.repository.list_history_for_games(game_ids)
        return [
            MatchRecord(match=match, games=games_by_match[match.id], history=history)
            for match in matches
        ]

    async def _check_window(self, season: Season, first_played_at: datetime, submitted_at: datetime) -> None:
        if first_played_at < season.start_date:
            raise ValueError(
                f"No active season covers {submitted_at.isoformat()}: "
                f"season '{season.name}' starts at {season.start_date.isoformat()}."
            )
        following = await self.repository.get_next_season(season.start_date)
        if following is not None and submitted_at >= following.start_date:
            raise ValueError(
                f"No active season covers {submitted_at.isoformat()}: "
                f"season '{season.name}' ends at {following.start_date.isoformat()}."
            )

    async def _require_player(self, player_id: UUID) -> Player:
        player = await self.repository.get_player(player_id)
        if player is None:
            raise LookupError(f"Player not found: {player_id}")
        return player

    async def _require_season(self, season_id: UUID) -> Season:
        season = await self.repository.get_season(season_id)
        if season is None:
            raise LookupError(f"Season not found: {season_id}")
        return season
