from __future__ import annotations

import asyncio
import tempfile
from datetime import date, datetime, time, timedelta, timezone

import pytest

from availability_engine.application.use_cases.slot_cleanup_job import CLEANUP_JOB_ID, SlotCleanupJob
from availability_engine.domain.entities.time_slot import SlotStatus, TimeSlot
from availability_engine.infrastructure.scheduler.job_scheduler import JobScheduler
from availability_engine.infrastructure.store.json_store import JsonTimeSlotRepository

UTC = timezone.utc


def make_slot(day: date, status: SlotStatus = SlotStatus.available, hour: int = 9, event: str = "evt-1") -> TimeSlot:
    start = datetime.combine(day, time(hour), tzinfo=UTC)
    return TimeSlot(
        owner="owner-1",
        event=event,
        start_time=start,
        end_time=start + timedelta(minutes=30),
        local_date=day,
        status=status,
    )


def remaining(repo) -> list[tuple[date, SlotStatus]]:
    return sorted((s.local_date, s.status) for s in repo.find_for_event("evt-1"))


def test_deletes_old_available_slots_by_local_date(slot_repo, clock):
    # clock is 2026-01-05, so the available cutoff is 2025-12-29
    slot_repo.bulk_create_slots(
        [
            make_slot(date(2025, 12, 28)),
            make_slot(date(2025, 12, 29)),
            make_slot(date(2025, 12, 30)),
            make_slot(date(2026, 1, 5)),
        ]
    )

    result = SlotCleanupJob(slot_repo, clock).run()

    assert result.available_cutoff == date(2025, 12, 29)
    assert result.available_deleted == 2
    assert remaining(slot_repo) == [
        (date(2025, 12, 30), SlotStatus.available),
        (date(2026, 1, 5), SlotStatus.available),
    ]


def test_cutoff_uses_provider_local_day_not_utc_start(slot_repo, clock):
    # 2025-12-29 20:00 in Los Angeles starts on 2025-12-30 in UTC
    late_evening = TimeSlot(
        owner="owner-1",
        event="evt-1",
        start_time=datetime(2025, 12, 30, 4, 0, tzinfo=UTC),
        end_time=datetime(2025, 12, 30, 4, 30, tzinfo=UTC),
        local_date=date(2025, 12, 29),
    )
    slot_repo.bulk_create_slots([late_evening])

    result = SlotCleanupJob(slot_repo, clock).run()

    assert result.available_deleted == 1
    assert slot_repo.find_for_event("evt-1") == []


def test_blocked_slots_kept_twice_as_long_and_booked_never_deleted(slot_repo, clock):
    slot_repo.bulk_create_slots(
        [
            make_slot(date(2025, 12, 20), SlotStatus.blocked, hour=9),
            make_slot(date(2025, 12, 25), SlotStatus.blocked, hour=9),
            make_slot(date(2025, 12, 1), SlotStatus.booked, hour=10),
            make_slot(date(2025, 12, 25), SlotStatus.available, hour=11),
        ]
    )

    result = SlotCleanupJob(slot_repo, clock).run()

    assert result.blocked_cutoff == date(2025, 12, 22)
    assert (result.available_deleted, result.blocked_deleted) == (1, 1)
    assert result.total_deleted == 2
    assert remaining(slot_repo) == [
        (date(2025, 12, 1), SlotStatus.booked),
        (date(2025, 12, 25), SlotStatus.blocked),
    ]


def test_explicit_blocked_retention(slot_repo, clock):
    slot_repo.bulk_create_slots([make_slot(date(2025, 12, 25), SlotStatus.blocked)])

    result = SlotCleanupJob(slot_repo, clock, available_retention_days=7, blocked_retention_days=3).run()

    assert result.blocked_cutoff == date(2026, 1, 2)
    assert result.blocked_deleted == 1


def test_today_follows_service_timezone(slot_repo, clock):
    # 2026-01-05 03:00 UTC is still 2026-01-04 in Los Angeles
    slot_repo.bulk_create_slots([make_slot(date(2025, 12, 29))])

    result = SlotCleanupJob(slot_repo, clock, service_timezone="America/Los_Angeles").run()

    assert result.available_cutoff == date(2025, 12, 28)
    assert result.available_deleted == 0


def test_statistics_match_next_run(slot_repo, clock):
    slot_repo.bulk_create_slots(
        [
            make_slot(date(2025, 12, 1), hour=9),
            make_slot(date(2025, 12, 2), hour=9),
            make_slot(date(2025, 12, 1), SlotStatus.blocked, hour=10),
            make_slot(date(2026, 1, 4), hour=9),
        ]
    )
    job = SlotCleanupJob(slot_repo, clock)

    stats = job.get_statistics()
    result = job.run()

    assert (stats.old_available, stats.old_blocked) == (2, 1)
    assert (result.available_deleted, result.blocked_deleted) == (2, 1)
    assert job.get_statistics().old_available == 0


def test_failure_propagates(slot_repo, clock, monkeypatch):
    def broken(status, cutoff):
        raise RuntimeError("store offline")

    monkeypatch.setattr(slot_repo, "delete_by_local_date", broken)

    with pytest.raises(RuntimeError, match="store offline"):
        SlotCleanupJob(slot_repo, clock).run()


def test_json_store_cleanup_across_events(clock):
    with tempfile.TemporaryDirectory() as tmpdir:
        repo = JsonTimeSlotRepository(tmpdir)
        repo.bulk_create_slots(
            [
                make_slot(date(2025, 12, 1)),
                make_slot(date(2025, 12, 1), SlotStatus.blocked, hour=10),
                make_slot(date(2025, 12, 30)),
                make_slot(date(2025, 12, 1), event="evt-2"),
            ]
        )

        result = SlotCleanupJob(repo, clock).run()

        reopened = JsonTimeSlotRepository(tmpdir)
        assert (result.available_deleted, result.blocked_deleted) == (2, 1)
        assert remaining(reopened) == [(date(2025, 12, 30), SlotStatus.available)]
        assert reopened.find_for_event("evt-2") == []


def test_scheduler_context_reaches_result(slot_repo, clock):
    scheduler = JobScheduler(clock=clock)
    scheduler.register_daily(CLEANUP_JOB_ID, 3, 0, SlotCleanupJob(slot_repo, clock))

    result = asyncio.run(scheduler.trigger(CLEANUP_JOB_ID))

    assert result.job_id == CLEANUP_JOB_ID
    assert result.run_id
    assert scheduler.get_health()["jobs"][CLEANUP_JOB_ID]["schedule"] == "03:00"
