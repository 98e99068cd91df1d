from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class RegenerateRequestSchema(BaseModel):
    from_date: datetime | None = None


class RegenerationResponseSchema(BaseModel):
    event_id: str
    skipped: bool = False
    reason: str | None = None
    range_start: datetime | None = None
    range_end: datetime | None = None
    deleted: int = 0
    generated: int = 0
    created: int = 0
    duplicates: int = 0
    errors: int = 0


class JobTriggerResponseSchema(BaseModel):
    job_id: str
    result: dict[str, Any] = Field(default_factory=dict)
