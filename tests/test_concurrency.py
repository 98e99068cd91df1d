"""
Concurrent regeneration and bulk inserts against one event.
"""

from __future__ import annotations

import json
import tempfile
import threading
from collections import Counter
from datetime import datetime, timedelta, timezone
from pathlib import Path

from availability_engine.application.use_cases.generate_event_slots import EventSlotGenerator
from availability_engine.application.use_cases.regenerate_event_slots import RegenerateEventSlotsUseCase
from availability_engine.domain.entities.time_slot import SlotStatus
from availability_engine.infrastructure.store.json_store import (
    JsonBookingEventRepository,
    JsonScheduleExceptionRepository,
    JsonTimeSlotRepository,
)
from tests.conftest import make_event

UTC = timezone.utc

# clock is Monday 2026-01-05; a 30-day window holds five Mondays of six slots
EXPECTED_AVAILABLE = 30


def run_concurrently(*targets) -> list[Exception]:
    barrier = threading.Barrier(len(targets))
    errors: list[Exception] = []

    def wrap(target):
        def runner():
            barrier.wait()
            try:
                target()
            except Exception as e:
                errors.append(e)

        return runner

    threads = [threading.Thread(target=wrap(t)) for t in targets]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)
    assert not any(thread.is_alive() for thread in threads)
    return errors


def test_parallel_regenerations_and_bulk_insert_leave_one_copy_per_slot(clock):
    for _ in range(5):
        with tempfile.TemporaryDirectory() as tmpdir:
            events = JsonBookingEventRepository(tmpdir)
            events.save(make_event())
            exceptions = JsonScheduleExceptionRepository(tmpdir)
            slots = JsonTimeSlotRepository(tmpdir)
            use_case = RegenerateEventSlotsUseCase(events, exceptions, slots, clock, window_days=30)

            start = datetime(2026, 1, 5, tzinfo=UTC)
            batch = EventSlotGenerator().generate(make_event(), start, start + timedelta(days=30), [])
            results = []

            errors = run_concurrently(
                lambda: results.append(use_case.execute("evt-1")),
                lambda: results.append(use_case.execute("evt-1")),
                lambda: slots.bulk_create_slots(batch),
            )

            assert errors == []
            assert len(results) == 2
            assert len(batch) == EXPECTED_AVAILABLE

            raw = json.loads((Path(tmpdir) / "slots" / "evt-1.json").read_text(encoding="utf-8"))
            keys = Counter((item["startTime"], item["endTime"]) for item in raw)
            assert len(raw) == EXPECTED_AVAILABLE
            assert max(keys.values()) == 1
            assert len({item["id"] for item in raw}) == EXPECTED_AVAILABLE

            stored = JsonTimeSlotRepository(tmpdir).find_for_event("evt-1", status=SlotStatus.available)
            assert len(stored) == EXPECTED_AVAILABLE


def test_regeneration_during_bulk_insert_keeps_booked_slot(clock):
    with tempfile.TemporaryDirectory() as tmpdir:
        events = JsonBookingEventRepository(tmpdir)
        events.save(make_event())
        slots = JsonTimeSlotRepository(tmpdir)
        use_case = RegenerateEventSlotsUseCase(
            events, JsonScheduleExceptionRepository(tmpdir), slots, clock, window_days=30
        )
        use_case.execute("evt-1")
        booked = slots.set_status(slots.find_for_event("evt-1")[0].id, SlotStatus.booked, booking="bk-1")

        start = datetime(2026, 1, 5, tzinfo=UTC)
        batch = EventSlotGenerator().generate(make_event(), start, start + timedelta(days=30), [])

        errors = run_concurrently(
            lambda: use_case.execute("evt-1"),
            lambda: use_case.execute("evt-1"),
            lambda: slots.bulk_create_slots(batch),
        )

        assert errors == []
        stored = JsonTimeSlotRepository(tmpdir).find_for_event("evt-1")
        assert len(stored) == EXPECTED_AVAILABLE
        assert [s.id for s in stored if s.status == SlotStatus.booked] == [booked.id]
        assert sum(1 for s in stored if s.is_available) == EXPECTED_AVAILABLE - 1
