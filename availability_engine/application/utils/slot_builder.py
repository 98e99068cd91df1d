from __future__ import annotations

from datetime import date
from zoneinfo import ZoneInfo

from availability_engine.application.exceptions import InvalidTimeBlockError
from availability_engine.application.utils.intervals import Interval, civil_to_utc, parse_civil_time, resolve_timezone
from availability_engine.domain.entities.booking_event import (
    DEFAULT_BUFFER_TIME,
    DEFAULT_SLOT_DURATION,
    BookingEvent,
    TimeBlock,
)


def validate_time_block(block: TimeBlock) -> tuple[int, int, int, int]:
    """
    Check a block and return (start_minute, end_minute, slot_duration, buffer_time).

    A missing duration/buffer (None or 0 duration) falls back to the defaults.
    """
    start = parse_civil_time(block.start_time)
    end = parse_civil_time(block.end_time)
    if start >= end:
        raise InvalidTimeBlockError(f"Time block start {block.start_time} is not before end {block.end_time}")

    duration = block.slot_duration or DEFAULT_SLOT_DURATION
    buffer = block.buffer_time if block.buffer_time is not None else DEFAULT_BUFFER_TIME
    if duration <= 0:
        raise InvalidTimeBlockError(f"Slot duration must be positive, got {duration}")
    if buffer < 0:
        raise InvalidTimeBlockError(f"Buffer time must not be negative, got {buffer}")
    return start, end, duration, buffer


def build_slots(
    event: BookingEvent,
    calendar_day: date,
    time_block: TimeBlock,
    tz: ZoneInfo | None = None,
) -> list[Interval]:
    """
    Slice one time block on one provider-local day into UTC slot intervals.

    Slots are `slot_duration` long and start every `slot_duration + buffer_time`
    minutes from block start. A slot that would run past block end is dropped.
    Packing is done on civil minutes; each civil boundary is then converted
    through the event's zone, so wall-clock times stay fixed across DST.
    """
    start, end, duration, buffer = validate_time_block(time_block)
    zone = tz or resolve_timezone(event.timezone)

    slots: list[Interval] = []
    cursor = start
    while cursor + duration <= end:
        slot_start = civil_to_utc(calendar_day, cursor, zone)
        slot_end = civil_to_utc(calendar_day, cursor + duration, zone)
        # a slot starting inside a spring-forward gap can collapse to zero length
        if slot_end > slot_start:
            slots.append(Interval(start=slot_start, end=slot_end))
        cursor += duration + buffer

    return slots
