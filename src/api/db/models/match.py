from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Match(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    season_id: UUID = Field(foreign_key="season.id", index=True)
    player1_id: UUID = Field(foreign_key="player.id", index=True)
    player2_id: UUID = Field(foreign_key="player.id", index=True)
    submitted_at: datetime = Field(nullable=False, index=True)
    created_by: str | None = Field(default=None, max_length=120)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
