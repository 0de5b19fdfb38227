from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EloHistory(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("game_id", "player_id", name="uq_elo_history_game_player"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    player_id: UUID = Field(foreign_key="player.id", index=True)
    game_id: UUID = Field(foreign_key="game.id", index=True)
    season_id: UUID = Field(foreign_key="season.id", index=True)
    elo_before: float
    elo_after: float
    k_factor: float
    elo_version: str = Field(max_length=50)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
