from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.modules.matches.schemas import MatchGameResponse


class GameUpdateRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "winner_id": "5e2d3c4b-1a2b-4c3d-8e9f-0a1b2c3d4e5f",
                "played_at": "2026-03-02T18:25:00",
                "created_by": "admin",
            }
        }
    )

    # Either participant; naming the other one flips the result.
    winner_id: UUID | None = None
    played_at: datetime | None = None
    created_by: str | None = Field(default=None, max_length=120)


class GameResponse(MatchGameResponse):
    match_id: UUID
    season_id: UUID
