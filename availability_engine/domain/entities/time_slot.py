from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any

from availability_engine.domain.entities.booking_event import LocationType


class SlotStatus(str, Enum):
    available = "available"
    booked = "booked"
    blocked = "blocked"


@dataclass(frozen=True)
class TimeSlot:
    owner: str
    event: str
    start_time: datetime  # UTC
    end_time: datetime  # UTC
    local_date: date  # provider-local day the slot was generated for
    location_types: tuple[LocationType, ...] = ()
    status: SlotStatus = SlotStatus.available
    billing_override: dict[str, Any] | None = None
    context: str | None = None
    id: str | None = None  # assigned on insert
    booking: str | None = None
    created_by: str | None = None
    updated_by: str | None = None

    @property
    def key(self) -> tuple[str, datetime, datetime]:
        """Uniqueness key: (event, start_time, end_time)."""
        return (self.event, self.start_time, self.end_time)

    @property
    def is_available(self) -> bool:
        return self.status == SlotStatus.available
