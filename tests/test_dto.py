from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError

from availability_engine.application.dto.schedule import (
    BookingEventDTO,
    ScheduleExceptionDTO,
    TimeBlockDTO,
    TimeSlotDTO,
)
from availability_engine.domain.entities.booking_event import DayOfWeek, EventStatus, LocationType
from availability_engine.domain.entities.time_slot import TimeSlot

UTC = timezone.utc


def event_payload(**overrides) -> dict:
    payload = {
        "id": "evt-1",
        "owner": "prov-1",
        "timezone": "America/New_York",
        "status": "active",
        "effectiveFrom": "2026-01-01",
        "dailyConfigs": {
            "mon": {"enabled": True, "timeBlocks": [{"startTime": "09:00", "endTime": "12:00"}]},
        },
    }
    payload.update(overrides)
    return payload


def test_event_payload_to_entity():
    event = BookingEventDTO.model_validate(event_payload()).to_entity()

    assert event.status == EventStatus.active
    assert event.location_types == (LocationType.video, LocationType.phone, LocationType.in_person)
    block = event.daily_configs[DayOfWeek.mon].time_blocks[0]
    assert (block.slot_duration, block.buffer_time) == (30, 0)


def test_effective_instant_is_reduced_to_local_day():
    dto = BookingEventDTO.model_validate(event_payload(effectiveFrom="2026-01-05T03:00:00Z"))

    assert dto.effective_from == date(2026, 1, 4)


def test_invalid_event_payloads_are_rejected():
    with pytest.raises(ValidationError):
        BookingEventDTO.model_validate(event_payload(timezone="Mars/Olympus"))
    with pytest.raises(ValidationError):
        BookingEventDTO.model_validate(event_payload(effectiveTo="2025-12-01"))
    with pytest.raises(ValidationError):
        TimeBlockDTO.model_validate({"startTime": "12:00", "endTime": "09:00"})
    with pytest.raises(ValidationError):
        TimeBlockDTO.model_validate({"startTime": "09:00", "endTime": "12:00", "slotDuration": 0})


def test_exception_naive_times_read_in_its_timezone():
    dto = ScheduleExceptionDTO.model_validate(
        {
            "id": "exc-1",
            "event": "evt-1",
            "timezone": "America/New_York",
            "startDatetime": "2026-01-05T12:00:00",
            "endDatetime": "2026-01-05T13:00:00",
            "recurring": True,
            "recurrencePattern": {"type": "weekly", "endDate": "2026-03-01"},
        }
    )

    exception = dto.to_entity()

    assert exception.start_datetime == datetime(2026, 1, 5, 17, 0, tzinfo=UTC)
    assert exception.is_recurring
    assert exception.recurrence_pattern.interval == 1


def test_invalid_exceptions_are_rejected():
    base = {"id": "exc-1", "event": "evt-1", "startDatetime": "2026-01-05T13:00:00Z"}
    with pytest.raises(ValidationError):
        ScheduleExceptionDTO.model_validate({**base, "endDatetime": "2026-01-05T12:00:00Z"})
    with pytest.raises(ValidationError):
        ScheduleExceptionDTO.model_validate({**base, "endDatetime": "2026-01-05T14:00:00Z", "recurring": True})


def test_slot_serializes_local_day_as_date():
    slot = TimeSlot(
        owner="prov-1",
        event="evt-1",
        start_time=datetime(2026, 1, 5, 14, tzinfo=UTC),
        end_time=datetime(2026, 1, 5, 14, 30, tzinfo=UTC),
        local_date=date(2026, 1, 5),
        location_types=(LocationType.in_person,),
    )

    data = TimeSlotDTO.from_entity(slot).model_dump(mode="json", by_alias=True)

    assert data["date"] == "2026-01-05"
    assert data["locationTypes"] == ["in-person"]
    assert data["status"] == "available"
    assert TimeSlotDTO.model_validate(data).to_entity() == slot
