from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from availability_engine.application.exceptions import InvalidTimeBlockError
from availability_engine.application.utils.intervals import parse_civil_time
from availability_engine.application.utils.slot_builder import build_slots, validate_time_block
from availability_engine.domain.entities.booking_event import TimeBlock
from tests.conftest import MONDAY, make_event


def test_buffer_packing_drops_slot_past_block_end():
    event = make_event()
    block = TimeBlock(start_time="09:00", end_time="10:00", slot_duration=15, buffer_time=5)

    slots = build_slots(event, MONDAY, block)

    starts = [s.start.strftime("%H:%M") for s in slots]
    ends = [s.end.strftime("%H:%M") for s in slots]
    assert starts == ["09:00", "09:20", "09:40"]
    assert ends == ["09:15", "09:35", "09:55"]


def test_slot_fitting_exactly_at_block_end_is_kept():
    event = make_event()
    block = TimeBlock(start_time="09:00", end_time="10:00", slot_duration=30)

    slots = build_slots(event, MONDAY, block)

    assert len(slots) == 2
    assert slots[-1].end == datetime(2026, 1, 5, 10, 0, tzinfo=timezone.utc)


def test_wall_clock_times_stay_fixed_across_dst():
    event = make_event(timezone_name="America/New_York")
    block = TimeBlock(start_time="09:00", end_time="10:00", slot_duration=60)

    winter = build_slots(event, date(2026, 1, 5), block)
    summer = build_slots(event, date(2026, 7, 6), block)

    assert winter[0].start == datetime(2026, 1, 5, 14, 0, tzinfo=timezone.utc)
    assert summer[0].start == datetime(2026, 7, 6, 13, 0, tzinfo=timezone.utc)


def test_spring_forward_gap_never_yields_inverted_slots():
    event = make_event(timezone_name="America/New_York")
    block = TimeBlock(start_time="01:00", end_time="04:00", slot_duration=30)

    slots = build_slots(event, date(2026, 3, 8), block)

    assert slots
    assert all(s.end > s.start for s in slots)


def test_invalid_blocks_are_rejected():
    with pytest.raises(InvalidTimeBlockError):
        validate_time_block(TimeBlock(start_time="10:00", end_time="09:00"))
    with pytest.raises(InvalidTimeBlockError):
        validate_time_block(TimeBlock(start_time="25:00", end_time="26:00"))
    with pytest.raises(InvalidTimeBlockError):
        validate_time_block(TimeBlock(start_time="09:00", end_time="10:00", buffer_time=-5))


def test_zero_duration_falls_back_to_default():
    _, _, duration, buffer = validate_time_block(TimeBlock(start_time="09:00", end_time="10:00", slot_duration=0))
    assert duration == 30
    assert buffer == 0


def test_parse_civil_time():
    assert parse_civil_time("09:30") == 570
    assert parse_civil_time("9:05:00") == 545
    assert parse_civil_time("24:00") == 1440
    with pytest.raises(InvalidTimeBlockError):
        parse_civil_time("noon")
