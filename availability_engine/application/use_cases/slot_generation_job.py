from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from availability_engine.application.exceptions import JobEnumerationError
from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.ports.event_repository import BookingEventRepositoryPort
from availability_engine.application.ports.exception_repository import ScheduleExceptionRepositoryPort
from availability_engine.application.ports.slot_repository import BulkCreateResult, TimeSlotRepositoryPort
from availability_engine.application.use_cases.generate_event_slots import EventSlotGenerator
from availability_engine.application.utils.intervals import resolve_timezone, start_of_local_day
from availability_engine.domain.entities.booking_event import BookingEvent

JOB_ID = "booking.slotGenerator"

# Purging is skipped for short horizons.
MIN_HORIZON_FOR_PURGE = 7


@dataclass(frozen=True)
class EventOutcome:
    event_id: str
    generated: int = 0
    result: BulkCreateResult = BulkCreateResult()
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class BatchGenerationResult:
    job_id: str
    range_start: datetime
    range_end: datetime
    run_id: str | None = None
    total_events: int = 0
    total_generated: int = 0
    total_created: int = 0
    total_duplicates: int = 0
    total_errors: int = 0
    failed_events: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    purged: int | None = None

    @property
    def success_rate(self) -> float:
        if self.total_events == 0:
            return 100.0
        return (self.total_events - len(self.failed_events)) / self.total_events * 100


class SlotGenerationJob:
    """
    Materializes the rolling horizon of slots for every active event.

    One event failing is recorded and does not stop the run; only failing to
    enumerate the active events fails the job.
    """

    def __init__(
        self,
        events: BookingEventRepositoryPort,
        exceptions: ScheduleExceptionRepositoryPort,
        slots: TimeSlotRepositoryPort,
        clock: ClockPort,
        generator: EventSlotGenerator | None = None,
        service_timezone: str = "UTC",
        horizon_days: int = 30,
        batch_size: int = 10,
        retention_days: int = 30,
        purge_enabled: bool = True,
    ) -> None:
        self._events = events
        self._exceptions = exceptions
        self._slots = slots
        self._clock = clock
        self._generator = generator or EventSlotGenerator()
        self._service_timezone = service_timezone
        self._horizon_days = horizon_days
        self._batch_size = batch_size
        self._retention_days = retention_days
        self._purge_enabled = purge_enabled
        self._logger = logging.getLogger(__name__)

    def __call__(self, context) -> BatchGenerationResult:
        """Scheduler entry point."""
        return self.run(job_id=context.job_id, run_id=context.run_id)

    def run(
        self,
        horizon_days: int | None = None,
        batch_size: int | None = None,
        job_id: str = JOB_ID,
        run_id: str | None = None,
    ) -> BatchGenerationResult:
        horizon_days = self._horizon_days if horizon_days is None else horizon_days
        batch_size = max(1, batch_size or self._batch_size)

        now = self._clock.now()
        tz = resolve_timezone(self._service_timezone)
        range_start = start_of_local_day(now, tz)
        range_end = range_start + timedelta(days=horizon_days)

        self._logger.info(
            "Starting slot generation job",
            extra={
                "job_id": job_id,
                "run_id": run_id,
                "start": range_start.isoformat(),
                "end": range_end.isoformat(),
                "count": batch_size,
            },
        )

        try:
            active_events = self._events.find_active_in_range(
                range_start.astimezone(tz).date(),
                range_end.astimezone(tz).date(),
            )
        except Exception as e:
            self._logger.error(
                "Slot generation job failed", extra={"job_id": job_id, "run_id": run_id, "error": str(e)}
            )
            raise JobEnumerationError(f"Cannot load active booking events: {e}") from e

        if not active_events:
            self._logger.warning(
                "No active booking events found for slot generation",
                extra={"job_id": job_id, "run_id": run_id},
            )
        else:
            self._logger.info(
                f"Found {len(active_events)} active booking events",
                extra={"job_id": job_id, "run_id": run_id, "count": len(active_events)},
            )

        outcomes: list[EventOutcome] = []
        for offset in range(0, len(active_events), batch_size):
            batch = active_events[offset : offset + batch_size]
            with ThreadPoolExecutor(max_workers=len(batch)) as pool:
                outcomes.extend(pool.map(lambda ev: self._process_event(ev, range_start, range_end, run_id), batch))

        purged = self._purge(job_id, run_id) if self._purge_enabled and horizon_days > MIN_HORIZON_FOR_PURGE else None

        result = BatchGenerationResult(
            job_id=job_id,
            range_start=range_start,
            range_end=range_end,
            run_id=run_id,
            total_events=len(active_events),
            total_generated=sum(o.generated for o in outcomes),
            total_created=sum(o.result.created for o in outcomes),
            total_duplicates=sum(o.result.duplicates for o in outcomes),
            total_errors=sum(o.result.errors for o in outcomes),
            failed_events=[o.event_id for o in outcomes if o.failed],
            errors=[f"Event {o.event_id} failed: {o.error}" for o in outcomes if o.failed],
            purged=purged,
        )

        self._logger.info(
            f"Slot generation job completed ({result.success_rate:.2f}% succeeded)",
            extra={
                "job_id": job_id,
                "run_id": run_id,
                "count": result.total_events,
                "generated": result.total_generated,
                "inserted": result.total_created,
                "duplicates": result.total_duplicates,
                "errors": len(result.failed_events),
            },
        )
        if result.failed_events:
            self._logger.warning(
                f"Some events failed during slot generation: {', '.join(result.failed_events)}",
                extra={"job_id": job_id, "run_id": run_id, "errors": len(result.errors)},
            )
        return result

    def _process_event(
        self, event: BookingEvent, range_start: datetime, range_end: datetime, run_id: str | None = None
    ) -> EventOutcome:
        self._logger.debug(
            f"Processing booking event {event.id}",
            extra={"event_id": event.id, "run_id": run_id, "owner": event.owner, "status": event.status.value},
        )
        try:
            exceptions = self._exceptions.find_for_event(event.id, range_start, range_end)
            slots = self._generator.generate(event, range_start, range_end, exceptions)
            if not slots:
                self._logger.debug(
                    f"No slots generated for event {event.id}",
                    extra={"event_id": event.id, "owner": event.owner},
                )
                return EventOutcome(event_id=event.id)

            created = self._slots.bulk_create_slots(slots)
        except Exception as e:
            self._logger.error(
                "Event processing failed",
                extra={"event_id": event.id, "run_id": run_id, "owner": event.owner, "error": str(e)},
            )
            return EventOutcome(event_id=event.id, error=str(e) or type(e).__name__)

        self._logger.info(
            f"Completed slot generation for event {event.id}",
            extra={
                "event_id": event.id,
                "run_id": run_id,
                "owner": event.owner,
                "generated": len(slots),
                "inserted": created.created,
                "duplicates": created.duplicates,
                "errors": created.errors,
            },
        )
        return EventOutcome(event_id=event.id, generated=len(slots), result=created)

    def _purge(self, job_id: str, run_id: str | None) -> int | None:
        try:
            purged = self._slots.purge_old_available(self._retention_days, now=self._clock.now())
        except Exception as e:
            self._logger.warning(
                "Old slot cleanup failed but continuing",
                extra={"job_id": job_id, "run_id": run_id, "error": str(e)},
            )
            return None
        self._logger.info(
            f"Cleaned up {purged} old available slots",
            extra={"job_id": job_id, "run_id": run_id, "purged": purged},
        )
        return purged
