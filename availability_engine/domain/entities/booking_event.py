from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any


class DayOfWeek(str, Enum):
    sun = "sun"
    mon = "mon"
    tue = "tue"
    wed = "wed"
    thu = "thu"
    fri = "fri"
    sat = "sat"

    @classmethod
    def from_date(cls, day: date) -> "DayOfWeek":
        # date.weekday() is Monday=0
        return _WEEKDAY_ORDER[day.weekday()]


_WEEKDAY_ORDER = (
    DayOfWeek.mon,
    DayOfWeek.tue,
    DayOfWeek.wed,
    DayOfWeek.thu,
    DayOfWeek.fri,
    DayOfWeek.sat,
    DayOfWeek.sun,
)


class EventStatus(str, Enum):
    draft = "draft"
    active = "active"
    paused = "paused"


class LocationType(str, Enum):
    video = "video"
    phone = "phone"
    in_person = "in-person"


DEFAULT_SLOT_DURATION = 30
DEFAULT_BUFFER_TIME = 0


@dataclass(frozen=True)
class TimeBlock:
    start_time: str  # "HH:MM", provider civil time
    end_time: str
    slot_duration: int = DEFAULT_SLOT_DURATION  # minutes
    buffer_time: int = DEFAULT_BUFFER_TIME  # minutes


@dataclass(frozen=True)
class DailyConfig:
    enabled: bool = False
    time_blocks: tuple[TimeBlock, ...] = ()


@dataclass(frozen=True)
class BookingEvent:
    id: str
    owner: str
    timezone: str
    effective_from: date
    effective_to: date | None = None
    status: EventStatus = EventStatus.draft
    location_types: tuple[LocationType, ...] = (LocationType.video, LocationType.phone, LocationType.in_person)
    billing_config: dict[str, Any] | None = None
    daily_configs: dict[DayOfWeek, DailyConfig] = field(default_factory=dict)
    title: str | None = None
    context: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == EventStatus.active

    def config_for(self, day: date) -> DailyConfig | None:
        return self.daily_configs.get(DayOfWeek.from_date(day))

    def is_effective_on(self, day: date) -> bool:
        """Whole-calendar-day check against the effective range."""
        if day < self.effective_from:
            return False
        if self.effective_to is not None and day > self.effective_to:
            return False
        return True

    def overlaps_range(self, start: date, end: date) -> bool:
        if self.effective_to is not None and self.effective_to < start:
            return False
        return self.effective_from <= end
