from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.modules.jobs.schemas import JobReferenceResponse
from elo.constants import MAX_STARTING_ELO, MIN_STARTING_ELO
from elo.policy import KFactorPolicy


class KFactorOverride(BaseModel):
    k_policy: KFactorPolicy | None = None
    k_factor: float | None = None
    base_k_factor: float | None = None
    new_player_k_bonus: float | None = None
    new_player_bonus_period: int | None = None


class SeasonCreateRequest(KFactorOverride):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Spring 2026",
                "description": "Ratings reset for the spring ladder.",
                "start_date": "2026-03-01T00:00:00+00:00",
                "starting_elo": 1000.0,
                "k_policy": None,
                "activate": True,
                "created_by": "admin",
            }
        }
    )

    name: str = Field(min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    start_date: datetime
    starting_elo: float | None = Field(default=None, ge=MIN_STARTING_ELO, le=MAX_STARTING_ELO)
    activate: bool = True
    created_by: str | None = Field(default=None, max_length=120)


class SeasonUpdateRequest(KFactorOverride):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=500)
    starting_elo: float | None = Field(default=None, ge=MIN_STARTING_ELO, le=MAX_STARTING_ELO)
    clear_k_override: bool = False
    created_by: str | None = Field(default=None, max_length=120)


class SeasonResponse(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "4aaddf8e-ca81-4347-a278-f6f7be86c6d0",
                "name": "All-Time",
                "description": None,
                "start_date": "2000-01-01T00:00:00",
                "starting_elo": 1000.0,
                "k_policy": None,
                "k_factor": None,
                "base_k_factor": None,
                "new_player_k_bonus": None,
                "new_player_bonus_period": None,
                "is_active": True,
                "created_by": None,
                "created_at": "2026-03-01T00:00:00",
            }
        },
    )

    id: UUID
    name: str
    description: str | None
    start_date: datetime
    starting_elo: float
    k_policy: KFactorPolicy | None
    k_factor: float | None
    base_k_factor: float | None
    new_player_k_bonus: float | None
    new_player_bonus_period: int | None
    is_active: bool
    created_by: str | None
    created_at: datetime


class SeasonMutationResponse(BaseModel):
    season: SeasonResponse
    job: JobReferenceResponse | None = None


class InclusionRequest(BaseModel):
    is_included: bool
    created_by: str | None = Field(default=None, max_length=120)


class ConfigurationCorrectionRequest(BaseModel):
    model_config = ConfigDict(json_schema_extra={"example": {"version_name": "v2"}})

    version_name: str = Field(min_length=1, max_length=50)
    created_by: str | None = Field(default=None, max_length=120)


class MembershipResponse(BaseModel):
    player_id: UUID
    season_id: UUID
    player_name: str
    current_elo: float
    games_played: int
    wins: int
    losses: int
    win_rate: float
    is_included: bool
    is_active: bool


class MembershipMutationResponse(BaseModel):
    membership: MembershipResponse
    job: JobReferenceResponse | None = None


class LeaderboardEntryResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "rank": 1,
                "player_id": "0f7c8c2e-4f55-4a43-a3f7-2bb0a4f0f8a1",
                "player_name": "Wenxi Huang",
                "current_elo": 1016.0,
                "games_played": 1,
                "wins": 1,
                "losses": 0,
                "win_rate": 1.0,
            }
        }
    )

    rank: int
    player_id: UUID
    player_name: str
    current_elo: float
    games_played: int
    wins: int
    losses: int
    win_rate: float
