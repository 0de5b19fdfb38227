from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from elo.policy import KFactorPolicy, RatingPolicy


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Season(SQLModel, table=True):
    __table_args__ = (
        UniqueConstraint("name", name="uq_season_name"),
        UniqueConstraint("start_date", name="uq_season_start_date"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    name: str = Field(index=True, min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    start_date: datetime = Field(nullable=False, index=True)
    starting_elo: float = Field(default=1000.0)
    # Null k_policy means each game uses its tagged configuration's policy.
    k_policy: KFactorPolicy | None = Field(default=None)
    k_factor: float | None = Field(default=None)
    base_k_factor: float | None = Field(default=None)
    new_player_k_bonus: float | None = Field(default=None)
    new_player_bonus_period: int | None = Field(default=None)
    is_active: bool = Field(default=False, index=True)
    created_by: str | None = Field(default=None, max_length=120)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)

    def policy_override(self) -> RatingPolicy | None:
        if self.k_policy is None:
            return None
        return RatingPolicy(
            kind=KFactorPolicy(self.k_policy),
            k_factor=self.k_factor,
            base_k_factor=self.base_k_factor,
            new_player_k_bonus=self.new_player_k_bonus,
            new_player_bonus_period=self.new_player_bonus_period,
        )
