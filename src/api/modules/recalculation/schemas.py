from __future__ import annotations

from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RecalculationRequest(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={"example": {"season_id": "all", "created_by": "admin"}}
    )

    season_id: UUID | Literal["all"]
    created_by: str | None = Field(default=None, max_length=120)

    @property
    def target_season_id(self) -> UUID | None:
        return None if self.season_id == "all" else self.season_id
