from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from elo.policy import KFactorPolicy, RatingPolicy


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class EloConfiguration(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("version_name", name="uq_elo_configuration_version_name"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    version_name: str = Field(index=True, min_length=1, max_length=50)
    k_policy: KFactorPolicy = Field(default=KFactorPolicy.STATIC)
    k_factor: float | None = Field(default=None)
    base_k_factor: float | None = Field(default=None)
    new_player_k_bonus: float | None = Field(default=None)
    new_player_bonus_period: int | None = Field(default=None)
    starting_elo: float = Field(default=1000.0)
    description: str | None = Field(default=None, max_length=500)
    is_active: bool = Field(default=False, index=True)
    created_by: str | None = Field(default=None, max_length=120)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    def policy(self) -> RatingPolicy:
        return RatingPolicy(
            kind=KFactorPolicy(self.k_policy),
            k_factor=self.k_factor,
            base_k_factor=self.base_k_factor,
            new_player_k_bonus=self.new_player_k_bonus,
            new_player_bonus_period=self.new_player_bonus_period,
        )
