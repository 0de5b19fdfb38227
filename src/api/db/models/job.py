from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON
from sqlmodel import Field, SQLModel

from api.db.enums import JobStatus, JobType


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Job(SQLModel, table=True):
    id: UUID = Field(default_factory=uuid4, primary_key=True)
    job_type: JobType = Field(index=True)
    status: JobStatus = Field(default=JobStatus.PENDING, index=True)
    progress: int = Field(default=0, ge=0, le=100)
    total_items: int | None = Field(default=None)
    processed_items: int = Field(default=0)
    payload: dict[str, Any] = Field(default_factory=dict, sa_type=JSON)
    result_data: dict[str, Any] | None = Field(default=None, sa_type=JSON)
    created_by: str | None = Field(default=None, max_length=120)
    created_at: datetime = Field(default_factory=utcnow, nullable=False)
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)
