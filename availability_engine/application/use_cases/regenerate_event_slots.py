from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta

from availability_engine.application.exceptions import EventNotFoundError
from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.ports.event_repository import BookingEventRepositoryPort
from availability_engine.application.ports.exception_repository import ScheduleExceptionRepositoryPort
from availability_engine.application.ports.slot_repository import BulkCreateResult, TimeSlotRepositoryPort
from availability_engine.application.use_cases.generate_event_slots import EventSlotGenerator
from availability_engine.application.utils.intervals import resolve_timezone, start_of_local_day, to_utc


@dataclass(frozen=True)
class RegenerationResult:
    event_id: str
    skipped: bool = False
    reason: str | None = None
    range_start: datetime | None = None
    range_end: datetime | None = None
    deleted: int = 0
    generated: int = 0
    created: int = 0
    duplicates: int = 0
    errors: int = 0


class RegenerateEventSlotsUseCase:
    """
    Replaces one event's future available slots after a template change.

    Booked and blocked slots are never touched. Runs for the same event are
    serialized, and the delete and insert happen inside one atomic scope of
    the slot store. Errors propagate to the caller.
    """

    def __init__(
        self,
        events: BookingEventRepositoryPort,
        exceptions: ScheduleExceptionRepositoryPort,
        slots: TimeSlotRepositoryPort,
        clock: ClockPort,
        generator: EventSlotGenerator | None = None,
        window_days: int = 30,
    ) -> None:
        self._events = events
        self._exceptions = exceptions
        self._slots = slots
        self._clock = clock
        self._generator = generator or EventSlotGenerator()
        self._window_days = window_days
        self._locks: dict[str, threading.Lock] = {}
        self._lock_lock = threading.Lock()
        self._logger = logging.getLogger(__name__)

    def _get_lock(self, event_id: str) -> threading.Lock:
        with self._lock_lock:
            if event_id not in self._locks:
                self._locks[event_id] = threading.Lock()
            return self._locks[event_id]

    def execute(self, event_id: str, from_date: datetime | None = None) -> RegenerationResult:
        with self._get_lock(event_id):
            try:
                return self._regenerate(event_id, from_date)
            except Exception as e:
                self._logger.error(
                    f"Slot regeneration failed for event {event_id}",
                    extra={"event_id": event_id, "error": str(e)},
                )
                raise

    def _regenerate(self, event_id: str, from_date: datetime | None) -> RegenerationResult:
        event = self._events.find_by_id(event_id)
        if event is None:
            raise EventNotFoundError(f"Booking event {event_id} not found")

        if not event.is_active:
            self._logger.info(
                f"Skipping slot generation for non-active event {event_id}",
                extra={"event_id": event_id, "status": event.status.value},
            )
            return RegenerationResult(event_id=event_id, skipped=True, reason=f"status={event.status.value}")

        tz = resolve_timezone(event.timezone)
        # the cutoff is the provider's local midnight, not the server's
        start = to_utc(from_date, tz) if from_date is not None else start_of_local_day(self._clock.now(), tz)
        end = start + timedelta(days=self._window_days)

        self._logger.info(
            f"Regenerating slots for event {event_id}",
            extra={
                "event_id": event_id,
                "timezone": event.timezone,
                "start": start.isoformat(),
                "end": end.isoformat(),
            },
        )

        exceptions = self._exceptions.find_for_event(event_id, start, end)
        self._logger.info(
            f"Found {len(exceptions)} schedule exceptions for event {event_id}",
            extra={"event_id": event_id, "count": len(exceptions)},
        )

        slots = self._generator.generate(event, start, end, exceptions)

        with self._slots.atomic(event_id):
            deleted = self._slots.delete_available_slots_from(event_id, start)
            self._logger.info(
                f"Deleted {deleted} existing available slots for event {event_id}",
                extra={"event_id": event_id, "deleted": deleted},
            )
            created = self._slots.bulk_create_slots(slots) if slots else BulkCreateResult()

        self._logger.info(
            f"Slot regeneration completed for event {event_id}",
            extra={
                "event_id": event_id,
                "generated": len(slots),
                "inserted": created.created,
                "duplicates": created.duplicates,
                "errors": created.errors,
            },
        )
        return RegenerationResult(
            event_id=event_id,
            range_start=start,
            range_end=end,
            deleted=deleted,
            generated=len(slots),
            created=created.created,
            duplicates=created.duplicates,
            errors=created.errors,
        )
