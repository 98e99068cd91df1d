from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.ports.slot_repository import TimeSlotRepositoryPort
from availability_engine.application.utils.intervals import local_date, resolve_timezone
from availability_engine.domain.entities.time_slot import SlotStatus

CLEANUP_JOB_ID = "booking.slotCleanup"

DEFAULT_AVAILABLE_RETENTION_DAYS = 7


@dataclass(frozen=True)
class SlotCleanupResult:
    job_id: str
    available_cutoff: date
    blocked_cutoff: date
    run_id: str | None = None
    available_deleted: int = 0
    blocked_deleted: int = 0

    @property
    def total_deleted(self) -> int:
        return self.available_deleted + self.blocked_deleted


@dataclass(frozen=True)
class CleanupStatistics:
    available_cutoff: date
    blocked_cutoff: date
    old_available: int = 0
    old_blocked: int = 0


class SlotCleanupJob:
    """
    Daily removal of past slots nobody can book any more.

    Works at day granularity on the slot's provider-local day. Blocked slots
    are kept twice as long as available ones. Booked slots are never touched.
    A failure is logged and propagated so the scheduler records it.
    """

    def __init__(
        self,
        slots: TimeSlotRepositoryPort,
        clock: ClockPort,
        service_timezone: str = "UTC",
        available_retention_days: int = DEFAULT_AVAILABLE_RETENTION_DAYS,
        blocked_retention_days: int | None = None,
    ) -> None:
        self._slots = slots
        self._clock = clock
        self._service_timezone = service_timezone
        self._available_retention_days = available_retention_days
        self._blocked_retention_days = (
            blocked_retention_days if blocked_retention_days is not None else available_retention_days * 2
        )
        self._logger = logging.getLogger(__name__)

    def __call__(self, context) -> SlotCleanupResult:
        """Scheduler entry point."""
        return self.run(job_id=context.job_id, run_id=context.run_id)

    def _cutoffs(self) -> tuple[date, date]:
        today = local_date(self._clock.now(), resolve_timezone(self._service_timezone))
        return (
            today - timedelta(days=self._available_retention_days),
            today - timedelta(days=self._blocked_retention_days),
        )

    def run(self, job_id: str = CLEANUP_JOB_ID, run_id: str | None = None) -> SlotCleanupResult:
        available_cutoff, blocked_cutoff = self._cutoffs()
        self._logger.info(
            "Starting slot cleanup job",
            extra={"job_id": job_id, "run_id": run_id, "end": available_cutoff.isoformat()},
        )

        try:
            available_deleted = self._slots.delete_by_local_date(SlotStatus.available, available_cutoff)
            self._logger.info(
                f"Deleted {available_deleted} old available slots",
                extra={"job_id": job_id, "run_id": run_id, "deleted": available_deleted},
            )
            blocked_deleted = self._slots.delete_by_local_date(SlotStatus.blocked, blocked_cutoff)
            self._logger.info(
                f"Deleted {blocked_deleted} old blocked slots",
                extra={"job_id": job_id, "run_id": run_id, "deleted": blocked_deleted},
            )
        except Exception as e:
            self._logger.error("Slot cleanup job failed", extra={"job_id": job_id, "run_id": run_id, "error": str(e)})
            raise

        result = SlotCleanupResult(
            job_id=job_id,
            run_id=run_id,
            available_cutoff=available_cutoff,
            blocked_cutoff=blocked_cutoff,
            available_deleted=available_deleted,
            blocked_deleted=blocked_deleted,
        )
        self._logger.info(
            "Slot cleanup job completed",
            extra={"job_id": job_id, "run_id": run_id, "purged": result.total_deleted},
        )
        return result

    def get_statistics(self) -> CleanupStatistics:
        """Counts of what the next run would delete."""
        available_cutoff, blocked_cutoff = self._cutoffs()
        return CleanupStatistics(
            available_cutoff=available_cutoff,
            blocked_cutoff=blocked_cutoff,
            old_available=self._slots.count_by_local_date(SlotStatus.available, available_cutoff),
            old_blocked=self._slots.count_by_local_date(SlotStatus.blocked, blocked_cutoff),
        )
