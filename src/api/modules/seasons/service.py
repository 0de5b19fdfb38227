from __future__ import annotations

import logging
from bisect import bisect_right
from collections import defaultdict
from collections.abc import Iterable
from typing import Any
from uuid import UUID

from api.common.clock import to_naive_utc
from api.common.errors import ConflictError, ReplayConsistencyError
from api.common.pagination import clamp_window
from api.config.settings import Settings
from api.db.enums import JobType
from api.db.locks import SeasonLockManager
from api.db.models import Game, Job, Player, PlayerSeason, Season
from api.modules.jobs.scheduler import JobScheduler
from api.modules.recalculation.engine import ProgressReporter, RecalculationEngine, ReplaySummary
from api.modules.seasons.repository import SeasonsRepository
from api.modules.seasons.schemas import KFactorOverride, SeasonCreateRequest, SeasonUpdateRequest
from elo.policy import RatingPolicy

logger = logging.getLogger(__name__)

_OVERRIDE_FIELDS = (
    "k_policy",
    "k_factor",
    "base_k_factor",
    "new_player_k_bonus",
    "new_player_bonus_period",
)


def _override_values(payload: KFactorOverride) -> dict[str, Any]:
    if payload.k_policy is None:
        return {}
    policy = RatingPolicy.from_fields(payload.model_dump(include=set(_OVERRIDE_FIELDS)))
    values = policy.as_dict()
    values["k_policy"] = policy.kind
    return values


class SeasonsService:
    """Season lifecycle: creation, activation, deletion and membership.

    Seasons partition time by ``start_date``; each season's window ends where
    the next one starts. Any operation that moves games between windows or
    changes a season's starting parameters is followed by a replay of the
    affected seasons.
    """

    def __init__(
        self,
        repository: SeasonsRepository,
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

    async def list_seasons(self) -> list[Season]:
        return await self.repository.list_seasons()

    async def get_season(self, season_id: UUID) -> Season:
        season = await self.repository.get_season(season_id)
        if season is None:
            raise LookupError(f"Season not found: {season_id}")
        return season

    async def get_active_season(self) -> Season | None:
        return await self.repository.get_active_season()

    async def create_season(self, payload: SeasonCreateRequest) -> tuple[Season, Job | None]:
        name = payload.name.strip()
        start_date = to_naive_utc(payload.start_date)
        if not name:
            raise ValueError("Season name cannot be blank.")
        if await self.repository.get_season_by_name(name) is not None:
            raise ValueError(f"A season named '{name}' already exists.")
        if await self.repository.get_season_by_start(start_date) is not None:
            raise ValueError(f"A season already starts at {start_date.isoformat()}.")
        override = _override_values(payload)

        starting_elo = payload.starting_elo
        if starting_elo is None:
            config = await self.repository.get_active_configuration()
            starting_elo = (
                config.starting_elo if config is not None else self.settings.elo_default_starting_elo
            )

        season = Season(
            name=name,
            description=payload.description,
            start_date=start_date,
            starting_elo=starting_elo,
            created_by=payload.created_by,
            **override,
        )
        previous = await self.repository.get_previous_season(start_date)
        following = await self.repository.get_next_season(start_date)
        active = await self.repository.get_active_season()
        # The previous season's window shrinks; the active one may be replaced.
        locked = _ordered_ids(s for s in (previous, active) if s is not None)
        games_to_move = await self.repository.count_games_in_window(
            start_date,
            following.start_date if following is not None else None,
        )

        async with self.locks.hold(self.repository.session, locked):
            current = await self.repository.get_active_season(reload=True)
            if (current.id if current else None) != (active.id if active else None):
                raise ConflictError(f"The active season changed while creating '{name}'; retry.")
            if payload.activate:
                await self.repository.deactivate_all()
                season.is_active = True
            self.repository.add(season)
            await self.repository.flush()
            for player in await self.repository.list_active_players():
                self.repository.add(
                    PlayerSeason(
                        player_id=player.id,
                        season_id=season.id,
                        current_elo=starting_elo,
                    )
                )
            await self.repository.flush()
            if season.is_active:
                await self.engine.sync_player_ratings(season)
            await self.repository.commit()

        logger.info(
            "season_created",
            extra={
                "season_id": str(season.id),
                "start_date": start_date.isoformat(),
                "is_active": season.is_active,
                "games_to_move": games_to_move,
            },
        )
        job = None
        if games_to_move > 0:
            job = await self._enqueue(
                JobType.SEASON_REASSIGNMENT,
                {"season_id": str(season.id)},
                payload.created_by,
            )
        return season, job

    async def update_season(
        self,
        season_id: UUID,
        payload: SeasonUpdateRequest,
    ) -> tuple[Season, Job | None]:
        season = await self.get_season(season_id)
        replay_needed = False
        async with self.locks.hold(self.repository.session, [season.id]):
            if payload.name is not None and payload.name.strip() != season.name:
                name = payload.name.strip()
                if await self.repository.get_season_by_name(name) is not None:
                    raise ValueError(f"A season named '{name}' already exists.")
                season.name = name
            if payload.description is not None:
                season.description = payload.description
            if payload.starting_elo is not None and payload.starting_elo != season.starting_elo:
                season.starting_elo = payload.starting_elo
                replay_needed = True
            if payload.clear_k_override:
                if season.k_policy is not None:
                    for field in _OVERRIDE_FIELDS:
                        setattr(season, field, None)
                    replay_needed = True
            elif payload.k_policy is not None:
                for field, value in _override_values(payload).items():
                    if getattr(season, field) != value:
                        setattr(season, field, value)
                        replay_needed = True
            self.repository.add(season)
            await self.repository.commit()

        job = None
        if replay_needed:
            job = await self._enqueue(
                JobType.ELO_RECALCULATION,
                {"season_id": str(season.id), "reason": "season_parameters_changed"},
                payload.created_by,
            )
        return season, job

    async def activate_season(self, season_id: UUID) -> Season:
        season = await self.get_season(season_id)
        if season.is_active:
            raise ConflictError(f"Season '{season.name}' is already active.")
        previous = await self.repository.get_active_season()
        locked = _ordered_ids(s for s in (previous, season) if s is not None)
        async with self.locks.hold(self.repository.session, locked):
            current = await self.repository.get_active_season(reload=True)
            if (current.id if current else None) != (previous.id if previous else None):
                raise ConflictError(
                    f"The active season changed while activating '{season.name}'; retry."
                )
            await self.repository.deactivate_all()
            season.is_active = True
            self.repository.add(season)
            await self.repository.flush()
            await self.engine.sync_player_ratings(season)
            await self.repository.commit()
        logger.info("season_activated", extra={"season_id": str(season.id)})
        return season

    async def request_deletion(self, season_id: UUID, created_by: str | None = None) -> Job:
        season = await self.get_season(season_id)
        await self._check_deletable(season)
        return await self._enqueue(
            JobType.SEASON_DELETION,
            {"season_id": str(season.id)},
            created_by,
        )

    async def delete_season(
        self,
        season_id: UUID,
        reporter: ProgressReporter | None = None,
    ) -> dict[str, Any]:
        """Fold a season into its predecessor and replay the predecessor."""
        season = await self.get_season(season_id)
        previous = await self._check_deletable(season)
        locked = [previous.id, season.id] if previous is not None else [season.id]
        summary: ReplaySummary | None = None
        async with self.locks.hold(self.repository.session, locked):
            games = await self.repository.list_games_for_season(season.id)
            if previous is not None:
                inclusion = {
                    membership.player_id: membership.is_included
                    for membership in await self.repository.list_memberships(season.id)
                }
                for game in games:
                    game.season_id = previous.id
                for match in await self.repository.list_matches_for_season(season.id):
                    match.season_id = previous.id
                await self._ensure_memberships(previous, games, inclusion)
                await self.repository.flush()
            await self.repository.delete_season_rows(season)
            if previous is not None:
                summary = await self.engine.replay_season(previous, reporter)
            await self.repository.commit()

        logger.info(
            "season_deleted",
            extra={"season_id": str(season_id), "games_reassigned": len(games)},
        )
        return {
            "deleted_season_id": str(season_id),
            "games_reassigned": len(games),
            "games_replayed": summary.games_replayed if summary is not None else 0,
            "seasons": [summary.as_dict()] if summary is not None else [],
        }

    async def reassign_games(self, reporter: ProgressReporter | None = None) -> dict[str, Any]:
        """Move every game into the season whose window contains its ``played_at``."""
        seasons = await self.repository.list_seasons()
        by_id = {season.id: season for season in seasons}
        starts = [season.start_date for season in seasons]

        def covering(moment: Any) -> Season | None:
            index = bisect_right(starts, moment) - 1
            return seasons[index] if index >= 0 else None

        async with self.locks.hold(self.repository.session, [season.id for season in seasons]):
            moved: dict[UUID, list[Game]] = defaultdict(list)
            affected: set[UUID] = set()
            for game in await self.repository.list_games():
                target = covering(game.played_at)
                if target is None:
                    raise ReplayConsistencyError(
                        f"Game {game.id} was played before the earliest season starts.",
                        offending_record={"game_id": str(game.id)},
                    )
                if target.id != game.season_id:
                    affected.update({game.season_id, target.id})
                    game.season_id = target.id
                    moved[target.id].append(game)
            for match in await self.repository.list_matches():
                target = covering(match.submitted_at)
                if target is not None and target.id != match.season_id:
                    match.season_id = target.id
            for target_id, games in moved.items():
                await self._ensure_memberships(by_id[target_id], games)
            await self.repository.flush()

            replay_order = [season for season in seasons if season.id in affected]
            total = sum([await self.repository.count_games(season.id) for season in replay_order])
            summaries: list[ReplaySummary] = []
            processed = 0
            for season in replay_order:
                summary = await self.engine.replay_season(
                    season,
                    reporter,
                    progress_offset=processed,
                    progress_total=total,
                )
                processed += summary.games_replayed
                summaries.append(summary)
            await self.repository.commit()

        reassigned = sum(len(games) for games in moved.values())
        logger.info("games_reassigned", extra={"games_reassigned": reassigned})
        return {
            "games_reassigned": reassigned,
            "games_replayed": processed,
            "seasons": [summary.as_dict() for summary in summaries],
        }

    async def set_inclusion(
        self,
        season_id: UUID,
        player_id: UUID,
        included: bool,
        created_by: str | None = None,
    ) -> tuple[PlayerSeason, Player, Job | None]:
        season = await self.repository.get_season(season_id)
        if season is None:
            raise ValueError(f"Season not found: {season_id}")
        player = await self.repository.get_player(player_id)
        if player is None:
            raise ValueError(f"Player not found: {player_id}")

        async with self.locks.hold(self.repository.session, [season.id]):
            membership = await self.repository.get_membership(season.id, player.id)
            if membership is not None and membership.is_included == included:
                return membership, player, None
            if membership is None:
                membership = PlayerSeason(
                    player_id=player.id,
                    season_id=season.id,
                    current_elo=season.starting_elo,
                    is_included=included,
                )
            else:
                membership.is_included = included
                membership.updated_at = self.repository.now_utc()
            self.repository.add(membership)
            await self.repository.commit()

        logger.info(
            "season_inclusion_changed",
            extra={
                "season_id": str(season.id),
                "player_id": str(player.id),
                "is_included": included,
            },
        )
        job = await self._enqueue(
            JobType.ELO_RECALCULATION,
            {"season_id": str(season.id), "reason": "inclusion_changed"},
            created_by,
        )
        return membership, player, job

    async def request_configuration_correction(
        self,
        season_id: UUID,
        version_name: str,
        created_by: str | None = None,
    ) -> Job:
        season = await self.get_season(season_id)
        if await self.repository.get_configuration(version_name) is None:
            raise LookupError(f"Rating configuration not found: {version_name}")
        return await self._enqueue(
            JobType.ELO_RECALCULATION,
            {"season_id": str(season.id), "retag_version": version_name},
            created_by,
        )

    async def list_members(
        self,
        season_id: UUID,
        included_only: bool = False,
    ) -> list[tuple[PlayerSeason, Player]]:
        await self.get_season(season_id)
        return await self.repository.list_members_with_players(
            season_id,
            included_only=included_only,
        )

    async def list_available_players(self, season_id: UUID) -> list[Player]:
        await self.get_season(season_id)
        return await self.repository.list_available_players(season_id)

    async def get_leaderboard(
        self,
        season_id: UUID,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[int, list[tuple[int, PlayerSeason, Player]]]:
        safe_limit, safe_offset = clamp_window(limit, offset, max_limit=500)
        rows = await self.list_members(season_id, included_only=True)
        ranked = [(rank, membership, player) for rank, (membership, player) in enumerate(rows, start=1)]
        return len(ranked), ranked[safe_offset : safe_offset + safe_limit]

    async def _check_deletable(self, season: Season) -> Season | None:
        seasons = await self.repository.list_seasons()
        if len(seasons) <= 1:
            raise ValueError("Cannot delete the only remaining season.")
        if season.is_active:
            raise ValueError("Cannot delete the active season; activate another season first.")
        previous = await self.repository.get_previous_season(season.start_date)
        if previous is None and await self.repository.count_games(season.id) > 0:
            raise ValueError(
                "The earliest season holds games and has no earlier season to absorb them."
            )
        return previous

    async def _ensure_memberships(
        self,
        season: Season,
        games: Iterable[Game],
        inclusion: dict[UUID, bool] | None = None,
    ) -> None:
        existing = {membership.player_id for membership in await self.repository.list_memberships(season.id)}
        participants = {player_id for game in games for player_id in (game.player1_id, game.player2_id)}
        for player_id in sorted(participants - existing, key=str):
            self.repository.add(
                PlayerSeason(
                    player_id=player_id,
                    season_id=season.id,
                    current_elo=season.starting_elo,
                    is_included=(inclusion or {}).get(player_id, True),
                )
            )

    async def _enqueue(
        self,
        job_type: JobType,
        payload: dict[str, Any],
        created_by: str | None,
    ) -> Job:
        if self.scheduler is None:
            raise RuntimeError("No job scheduler is configured for this service.")
        return await self.scheduler.enqueue(job_type, payload, created_by=created_by)


def _ordered_ids(seasons: Iterable[Season]) -> list[UUID]:
    unique = {season.id: season for season in seasons}
    return [season.id for season in sorted(unique.values(), key=lambda s: s.start_date)]
