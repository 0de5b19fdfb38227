from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import Index
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Game(SQLModel, table=True):
    __table_args__ = (Index("ix_game_season_order", "season_id", "played_at", "sequence"),)

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    match_id: UUID = Field(foreign_key="match.id", index=True)
    season_id: UUID = Field(foreign_key="season.id", index=True)
    game_number: int = Field(ge=1)
    # player1 is always the winner.
    player1_id: UUID = Field(foreign_key="player.id", index=True)
    player2_id: UUID = Field(foreign_key="player.id", index=True)
    played_at: datetime = Field(nullable=False)
    sequence: int = Field(default=0)
    elo_version: str = Field(max_length=50, index=True)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    @property
    def winner_id(self) -> UUID:
        return self.player1_id

    @property
    def loser_id(self) -> UUID:
        return self.player2_id
