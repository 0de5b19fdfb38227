from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import NamedTuple, Protocol
from uuid import UUID

from api.common.errors import ReplayConsistencyError
from api.db.models import EloConfiguration, EloHistory, Game, PlayerSeason, Season
from api.modules.recalculation.repository import RecalculationRepository
from elo.ledger import AppliedGame, RatingLedger, ReplayGame, UnknownParticipantError
from elo.policy import RatingPolicy

logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    async def __call__(self, processed: int, total: int) -> None: ...


class ReplaySummary(NamedTuple):
    season_id: UUID
    season_name: str
    games_replayed: int
    members: int

    def as_dict(self) -> dict[str, object]:
        return {
            "season_id": str(self.season_id),
            "season_name": self.season_name,
            "games_replayed": self.games_replayed,
            "members": self.members,
        }


def resolve_game_policy(
    season: Season,
    game: Game,
    configurations: Mapping[str, EloConfiguration],
) -> RatingPolicy:
    override = season.policy_override()
    if override is not None:
        return override
    config = configurations.get(game.elo_version)
    if config is None:
        raise ReplayConsistencyError(
            f"Game {game.id} is tagged with unknown rating configuration '{game.elo_version}'.",
            offending_record={
                "game_id": str(game.id),
                "season_id": str(season.id),
                "elo_version": game.elo_version,
            },
        )
    return config.policy()


def history_rows(game: Game, applied: AppliedGame) -> tuple[EloHistory, EloHistory]:
    result = applied.result
    return (
        EloHistory(
            player_id=game.player1_id,
            game_id=game.id,
            season_id=game.season_id,
            elo_before=result.winner_before,
            elo_after=result.winner_after,
            k_factor=result.k_winner,
            elo_version=game.elo_version,
        ),
        EloHistory(
            player_id=game.player2_id,
            game_id=game.id,
            season_id=game.season_id,
            elo_before=result.loser_before,
            elo_after=result.loser_after,
            k_factor=result.k_loser,
            elo_version=game.elo_version,
        ),
    )


class RecalculationEngine:
    """Rebuilds a season's derived rating state from its game log.

    The engine never commits. Callers hold the season lock and own the
    transaction, so a failure anywhere leaves the previous state in place.
    """

    def __init__(self, repository: RecalculationRepository, progress_interval: int = 100) -> None:
        self.repository = repository
        self.progress_interval = max(1, progress_interval)

    async def replay_season(
        self,
        season: Season,
        reporter: ProgressReporter | None = None,
        *,
        retag_version: str | None = None,
        progress_offset: int = 0,
        progress_total: int | None = None,
    ) -> ReplaySummary:
        configurations = await self.repository.get_configurations_by_version()
        games = await self.repository.list_games_in_order(season.id)
        memberships = await self.repository.list_memberships(season.id)
        total = progress_total if progress_total is not None else len(games)

        ledger = RatingLedger(season.starting_elo)
        for membership in memberships:
            ledger.seed(membership.player_id)

        await self.repository.delete_history(season.id)

        for index, game in enumerate(games, start=1):
            if retag_version is not None:
                game.elo_version = retag_version
            policy = resolve_game_policy(season, game, configurations)
            try:
                applied = ledger.apply(
                    ReplayGame(
                        game_id=game.id,
                        winner_id=game.player1_id,
                        loser_id=game.player2_id,
                        policy=policy,
                    )
                )
            except UnknownParticipantError as exc:
                raise ReplayConsistencyError(
                    f"Game {game.id} references player {exc.player_id} "
                    f"who is not a member of season '{season.name}'.",
                    offending_record={
                        "game_id": str(game.id),
                        "player_id": str(exc.player_id),
                        "season_id": str(season.id),
                    },
                ) from exc
            self.repository.add_history(history_rows(game, applied))

            if reporter is not None and index % self.progress_interval == 0:
                await reporter(progress_offset + index, total)

        now = self.repository.now_utc()
        for membership in memberships:
            standing = ledger.standing(membership.player_id)
            membership.current_elo = standing.rating
            membership.games_played = standing.games_played
            membership.wins = standing.wins
            membership.losses = standing.losses
            membership.updated_at = now

        if season.is_active:
            await self.sync_player_ratings(season, memberships)
        await self.repository.flush()

        logger.info(
            "season_replayed",
            extra={
                "season_id": str(season.id),
                "games_replayed": len(games),
                "members": len(memberships),
            },
        )
        return ReplaySummary(
            season_id=season.id,
            season_name=season.name,
            games_replayed=len(games),
            members=len(memberships),
        )

    async def sync_player_ratings(
        self,
        season: Season,
        memberships: list[PlayerSeason] | None = None,
    ) -> None:
        """Point every player's ``current_elo`` at ``season``."""
        if memberships is None:
            memberships = await self.repository.list_memberships(season.id)
        ratings = {membership.player_id: membership.current_elo for membership in memberships}
        now = self.repository.now_utc()
        for player in await self.repository.list_players():
            rating = ratings.get(player.id, season.starting_elo)
            if player.current_elo != rating:
                player.current_elo = rating
                player.updated_at = now
