from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from elo.constants import DEFAULT_STARTING_ELO, MAX_STARTING_ELO, MIN_STARTING_ELO
from elo.policy import KFactorPolicy


class ConfigurationCreateRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "version_name": "v2",
                "k_policy": "linear_decay",
                "base_k_factor": 20.0,
                "new_player_k_bonus": 48.0,
                "new_player_bonus_period": 10,
                "starting_elo": 1000.0,
                "description": "Base K 20 with a decaying bonus for new players.",
                "activate": False,
            }
        }
    )

    version_name: str = Field(min_length=1, max_length=50)
    k_policy: KFactorPolicy = KFactorPolicy.STATIC
    k_factor: float | None = None
    base_k_factor: float | None = None
    new_player_k_bonus: float | None = None
    new_player_bonus_period: int | None = None
    starting_elo: float = Field(default=DEFAULT_STARTING_ELO, ge=MIN_STARTING_ELO, le=MAX_STARTING_ELO)
    description: str | None = Field(default=None, max_length=500)
    activate: bool = False
    created_by: str | None = Field(default=None, max_length=120)


class ConfigurationResponse(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "b1c0a8f4-6cfa-4a3e-9d7b-19b4cf3f6f0e",
                "version_name": "v1",
                "k_policy": "static",
                "k_factor": 32.0,
                "base_k_factor": None,
                "new_player_k_bonus": None,
                "new_player_bonus_period": None,
                "starting_elo": 1000.0,
                "description": "Standard ELO with K=32.",
                "is_active": True,
                "created_by": None,
                "created_at": "2026-03-01T00:00:00",
            }
        },
    )

    id: UUID
    version_name: str
    k_policy: KFactorPolicy
    k_factor: float | None
    base_k_factor: float | None
    new_player_k_bonus: float | None
    new_player_bonus_period: int | None
    starting_elo: float
    description: str | None
    is_active: bool
    created_by: str | None
    created_at: datetime
