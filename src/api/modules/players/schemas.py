from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class PlayerCreateRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"example": {"first_name": "Wenxi", "last_name": "Huang"}}
    )

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(default="", max_length=100)


class PlayerUpdateRequest(BaseModel):
    first_name: str | None = Field(default=None, min_length=1, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    is_active: bool | None = None


class PlayerResponse(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "0f7c8c2e-4f55-4a43-a3f7-2bb0a4f0f8a1",
                "first_name": "Wenxi",
                "last_name": "Huang",
                "display_name": "Wenxi Huang",
                "current_elo": 1016.0,
                "is_active": True,
                "created_at": "2026-03-01T00:00:00",
                "updated_at": "2026-03-02T10:00:00",
            }
        },
    )

    id: UUID
    first_name: str
    last_name: str
    display_name: str
    current_elo: float
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PlayerHistoryEntryResponse(BaseModel):
    game_id: UUID
    match_id: UUID
    season_id: UUID
    opponent_id: UUID
    won: bool
    played_at: datetime
    elo_before: float
    elo_after: float
    elo_change: float
    k_factor: float
    elo_version: str


class MatchRatingPointResponse(BaseModel):
    match_id: UUID
    season_id: UUID
    season_name: str
    submitted_at: datetime
    games: int
    elo_before: float
    elo_after: float
    elo_change: float
    elo_version: str


class PlayerRatingHistoryResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "player_id": "0f7c8c2e-4f55-4a43-a3f7-2bb0a4f0f8a1",
                "display_name": "Wenxi Huang",
                "current_elo": 1014.6,
                "history": [
                    {
                        "match_id": "3c1e8f0a-9b2d-4e6f-8a7c-5d4b3a2c1e0f",
                        "season_id": "4aaddf8e-ca81-4347-a278-f6f7be86c6d0",
                        "season_name": "All-Time",
                        "submitted_at": "2026-03-01T10:00:00",
                        "games": 1,
                        "elo_before": 1000.0,
                        "elo_after": 1016.0,
                        "elo_change": 16.0,
                        "elo_version": "v1",
                    }
                ],
            }
        }
    )

    player_id: UUID
    display_name: str
    current_elo: float
    history: list[MatchRatingPointResponse]
