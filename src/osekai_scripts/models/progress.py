"""Progress and finish records reported while a cycle runs."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class ProgressState(BaseModel):
    id: int  # cycle id, the start timestamp
    start: datetime
    current: int
    total: int
    eta_seconds: int | None = None
    task: str


class FinishRecord(BaseModel):
    id: int
    requested_users: int
    task: str
    finished_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
