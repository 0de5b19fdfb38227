from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.db.enums import MatchWinner


class MatchGameRequest(BaseModel):
    winner: MatchWinner


class MatchSubmitRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "player1_id": "0f7c8c2e-4f55-4a43-a3f7-2bb0a4f0f8a1",
                "player2_id": "5e2d3c4b-1a2b-4c3d-8e9f-0a1b2c3d4e5f",
                "games": [
                    {"winner": "player1"},
                    {"winner": "player2"},
                    {"winner": "player1"},
                ],
                "submitted_at": None,
            }
        }
    )

    player1_id: UUID
    player2_id: UUID
    # Empty lists are rejected by the service.
    games: list[MatchGameRequest]
    submitted_at: datetime | None = None
    created_by: str | None = Field(default=None, max_length=120)


class MatchGameResponse(BaseModel):
    id: UUID
    game_number: int
    played_at: datetime
    winner_id: UUID
    loser_id: UUID
    elo_version: str
    winner_elo_before: float
    winner_elo_after: float
    loser_elo_before: float
    loser_elo_after: float


class MatchResponse(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "match_id": "3c1e8f0a-9b2d-4e6f-8a7c-5d4b3a2c1e0f",
                "season_id": "4aaddf8e-ca81-4347-a278-f6f7be86c6d0",
                "player1_id": "0f7c8c2e-4f55-4a43-a3f7-2bb0a4f0f8a1",
                "player2_id": "5e2d3c4b-1a2b-4c3d-8e9f-0a1b2c3d4e5f",
                "submitted_at": "2026-03-02T18:30:00",
                "player1_wins": 1,
                "player2_wins": 0,
                "games": [
                    {
                        "id": "9a8b7c6d-5e4f-4a3b-2c1d-0e9f8a7b6c5d",
                        "game_number": 1,
                        "played_at": "2026-03-02T18:30:00",
                        "winner_id": "0f7c8c2e-4f55-4a43-a3f7-2bb0a4f0f8a1",
                        "loser_id": "5e2d3c4b-1a2b-4c3d-8e9f-0a1b2c3d4e5f",
                        "elo_version": "v1",
                        "winner_elo_before": 1000.0,
                        "winner_elo_after": 1016.0,
                        "loser_elo_before": 1000.0,
                        "loser_elo_after": 984.0,
                    }
                ],
            }
        }
    )

    match_id: UUID
    season_id: UUID
    player1_id: UUID
    player2_id: UUID
    submitted_at: datetime
    player1_wins: int
    player2_wins: int
    games: list[MatchGameResponse]
