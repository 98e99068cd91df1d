from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from availability_engine.domain.entities.booking_event import (
    BookingEvent,
    DailyConfig,
    DayOfWeek,
    EventStatus,
    TimeBlock,
)
from availability_engine.infrastructure.clock.system_clock import FixedClock
from availability_engine.infrastructure.store.memory_store import (
    MemoryBookingEventRepository,
    MemoryScheduleExceptionRepository,
    MemoryTimeSlotRepository,
)

# 2026-01-05 is a Monday
MONDAY = date(2026, 1, 5)


def make_event(
    event_id: str = "evt-1",
    timezone_name: str = "UTC",
    days: tuple[DayOfWeek, ...] = (DayOfWeek.mon,),
    start_time: str = "09:00",
    end_time: str = "12:00",
    slot_duration: int = 30,
    buffer_time: int = 0,
    **overrides,
) -> BookingEvent:
    block = TimeBlock(start_time=start_time, end_time=end_time, slot_duration=slot_duration, buffer_time=buffer_time)
    fields = dict(
        id=event_id,
        owner=f"owner-{event_id}",
        timezone=timezone_name,
        effective_from=date(2025, 12, 1),
        status=EventStatus.active,
        daily_configs={day: DailyConfig(enabled=True, time_blocks=(block,)) for day in days},
    )
    fields.update(overrides)
    return BookingEvent(**fields)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2026, 1, 5, 3, 0, tzinfo=timezone.utc))


@pytest.fixture
def event_repo() -> MemoryBookingEventRepository:
    return MemoryBookingEventRepository([make_event()])


@pytest.fixture
def exception_repo() -> MemoryScheduleExceptionRepository:
    return MemoryScheduleExceptionRepository()


@pytest.fixture
def slot_repo() -> MemoryTimeSlotRepository:
    return MemoryTimeSlotRepository()
