from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone

from availability_engine.application.exceptions import DuplicateSlotError, SlotPersistenceError
from availability_engine.application.ports.event_repository import BookingEventRepositoryPort
from availability_engine.application.ports.exception_repository import ScheduleExceptionRepositoryPort
from availability_engine.application.ports.slot_repository import BulkCreateResult, TimeSlotRepositoryPort
from availability_engine.application.utils.intervals import to_utc
from availability_engine.application.utils.recurrence import may_block_range
from availability_engine.domain.entities.booking_event import BookingEvent, EventStatus
from availability_engine.domain.entities.schedule_exception import ScheduleException
from availability_engine.domain.entities.time_slot import SlotStatus, TimeSlot


class MemoryBookingEventRepository(BookingEventRepositoryPort):
    def __init__(self, events: list[BookingEvent] | None = None) -> None:
        self._events: dict[str, BookingEvent] = {event.id: event for event in events or []}

    def find_active_in_range(self, start: date, end: date) -> list[BookingEvent]:
        return [
            event
            for event in self._events.values()
            if event.status == EventStatus.active and event.overlaps_range(start, end)
        ]

    def find_by_id(self, event_id: str) -> BookingEvent | None:
        return self._events.get(event_id)

    def save(self, event: BookingEvent) -> None:
        self._events[event.id] = event


class MemoryScheduleExceptionRepository(ScheduleExceptionRepositoryPort):
    def __init__(self, exceptions: list[ScheduleException] | None = None) -> None:
        self._exceptions: dict[str, ScheduleException] = {exc.id: exc for exc in exceptions or []}

    def find_for_event(self, event_id: str, start: datetime, end: datetime) -> list[ScheduleException]:
        return [
            exc
            for exc in self._exceptions.values()
            if exc.event == event_id and may_block_range(exc, start, end)
        ]

    def save(self, exception: ScheduleException) -> None:
        self._exceptions[exception.id] = exception

    def delete(self, exception_id: str) -> bool:
        return self._exceptions.pop(exception_id, None) is not None


class MemoryTimeSlotRepository(TimeSlotRepositoryPort):
    def __init__(self) -> None:
        self._slots: dict[str, TimeSlot] = {}
        self._keys: dict[tuple[str, datetime, datetime], str] = {}
        self._lock = threading.RLock()
        self._logger = logging.getLogger(__name__)

    def bulk_create_slots(self, slots: list[TimeSlot]) -> BulkCreateResult:
        created = duplicates = errors = 0
        with self._lock:
            for slot in slots:
                try:
                    self._insert(slot)
                    created += 1
                except DuplicateSlotError:
                    duplicates += 1
                except Exception as e:
                    errors += 1
                    self._logger.error(
                        "Slot insert failed",
                        extra={"event_id": slot.event, "start": slot.start_time.isoformat(), "error": str(e)},
                    )

        self._logger.info(
            "Slots bulk created",
            extra={"count": len(slots), "inserted": created, "duplicates": duplicates, "errors": errors},
        )
        return BulkCreateResult(created=created, duplicates=duplicates, errors=errors)

    def _insert(self, slot: TimeSlot) -> TimeSlot:
        start, end = to_utc(slot.start_time), to_utc(slot.end_time)
        if start >= end:
            raise SlotPersistenceError(f"Slot start {start.isoformat()} is not before end {end.isoformat()}")
        key = (slot.event, start, end)
        if key in self._keys:
            raise DuplicateSlotError(f"Slot {key} already exists")

        stored = replace(slot, id=slot.id or str(uuid.uuid4()), start_time=start, end_time=end)
        self._slots[stored.id] = stored
        self._keys[key] = stored.id
        return stored

    def _remove(self, slot_ids: list[str]) -> int:
        for slot_id in slot_ids:
            slot = self._slots.pop(slot_id)
            self._keys.pop(slot.key, None)
        return len(slot_ids)

    def delete_available_slots_from(self, event_id: str, from_instant: datetime) -> int:
        cutoff = to_utc(from_instant)
        with self._lock:
            doomed = [
                slot.id
                for slot in self._slots.values()
                if slot.event == event_id and slot.is_available and slot.start_time >= cutoff
            ]
            return self._remove(doomed)

    def purge_old_available(self, retention_days: int, now: datetime | None = None) -> int:
        cutoff = to_utc(now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
        with self._lock:
            doomed = [slot.id for slot in self._slots.values() if slot.is_available and slot.start_time <= cutoff]
            return self._remove(doomed)

    def delete_by_local_date(self, status: SlotStatus, cutoff: date) -> int:
        with self._lock:
            doomed = [slot.id for slot in self._slots.values() if slot.status == status and slot.local_date <= cutoff]
            return self._remove(doomed)

    def count_by_local_date(self, status: SlotStatus, cutoff: date) -> int:
        with self._lock:
            return sum(1 for slot in self._slots.values() if slot.status == status and slot.local_date <= cutoff)

    def find_for_event(
        self,
        event_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        status: SlotStatus | None = None,
    ) -> list[TimeSlot]:
        with self._lock:
            found = [
                slot
                for slot in self._slots.values()
                if slot.event == event_id
                and (start is None or slot.start_time >= to_utc(start))
                and (end is None or slot.start_time <= to_utc(end))
                and (status is None or slot.status == status)
            ]
        return sorted(found, key=lambda s: s.start_time)

    def set_status(self, slot_id: str, status: SlotStatus, booking: str | None = None) -> TimeSlot:
        with self._lock:
            slot = self._slots.get(slot_id)
            if slot is None:
                raise SlotPersistenceError(f"Slot {slot_id} not found")
            updated = replace(slot, status=status, booking=booking)
            self._slots[slot_id] = updated
            return updated

    @contextmanager
    def atomic(self, event_id: str):
        with self._lock:
            snapshot = (dict(self._slots), dict(self._keys))
            try:
                yield
            except BaseException:
                self._slots, self._keys = snapshot
                raise
