from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class RecurrenceType(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


@dataclass(frozen=True)
class RecurrencePattern:
    type: RecurrenceType
    interval: int = 1
    end_date: date | None = None  # inclusive, whole local day
    max_occurrences: int | None = None


@dataclass(frozen=True)
class ScheduleException:
    id: str
    event: str
    start_datetime: datetime  # aware
    end_datetime: datetime  # aware
    recurring: bool = False
    recurrence_pattern: RecurrencePattern | None = None
    owner: str | None = None
    timezone: str = "UTC"
    reason: str | None = None

    @property
    def is_recurring(self) -> bool:
        return self.recurring and self.recurrence_pattern is not None
