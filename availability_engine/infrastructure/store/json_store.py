from __future__ import annotations

import json
import logging
import threading
import uuid
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from availability_engine.application.dto.schedule import BookingEventDTO, ScheduleExceptionDTO, TimeSlotDTO
from availability_engine.application.exceptions import DuplicateSlotError, SlotPersistenceError
from availability_engine.application.ports.event_repository import BookingEventRepositoryPort
from availability_engine.application.ports.exception_repository import ScheduleExceptionRepositoryPort
from availability_engine.application.ports.slot_repository import BulkCreateResult, TimeSlotRepositoryPort
from availability_engine.application.utils.intervals import to_utc
from availability_engine.application.utils.recurrence import may_block_range
from availability_engine.domain.entities.booking_event import BookingEvent, EventStatus
from availability_engine.domain.entities.schedule_exception import ScheduleException
from availability_engine.domain.entities.time_slot import SlotStatus, TimeSlot


class _JsonFileStore:
    """One JSON document per key under a directory, written atomically, one lock per key."""

    def __init__(self, data_dir: str | Path) -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._locks: dict[str, threading.RLock] = {}
        self._lock_lock = threading.Lock()  # Lock for managing locks dict

    def get_lock(self, key: str) -> threading.RLock:
        """Get or create a lock for a key."""
        with self._lock_lock:
            if key not in self._locks:
                self._locks[key] = threading.RLock()
            return self._locks[key]

    def path(self, key: str) -> Path:
        return self._data_dir / f"{key}.json"

    def keys(self) -> list[str]:
        return sorted(p.stem for p in self._data_dir.glob("*.json"))

    def load(self, key: str, default: Any) -> Any:
        file_path = self.path(key)
        if not file_path.exists():
            return default
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def save(self, key: str, data: Any) -> None:
        """Save data to JSON file atomically."""
        file_path = self.path(key)
        temp_path = file_path.with_suffix(".json.tmp")

        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            # Atomic rename
            temp_path.replace(file_path)
        except Exception:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise


class JsonBookingEventRepository(BookingEventRepositoryPort):
    def __init__(self, data_dir: str | Path = "./data/schedule") -> None:
        self._files = _JsonFileStore(Path(data_dir) / "events")

    def _load(self, event_id: str) -> BookingEvent | None:
        data = self._files.load(event_id, None)
        if data is None:
            return None
        return BookingEventDTO.model_validate(data).to_entity()

    def find_active_in_range(self, start: date, end: date) -> list[BookingEvent]:
        events = (self._load(key) for key in self._files.keys())
        return [
            event
            for event in events
            if event is not None and event.status == EventStatus.active and event.overlaps_range(start, end)
        ]

    def find_by_id(self, event_id: str) -> BookingEvent | None:
        return self._load(event_id)

    def save(self, event: BookingEvent) -> None:
        payload = BookingEventDTO.from_entity(event).model_dump(mode="json", by_alias=True)
        with self._files.get_lock(event.id):
            self._files.save(event.id, payload)


class JsonScheduleExceptionRepository(ScheduleExceptionRepositoryPort):
    """Exceptions are stored as one list per event."""

    def __init__(self, data_dir: str | Path = "./data/schedule") -> None:
        self._files = _JsonFileStore(Path(data_dir) / "exceptions")

    def _load_event(self, event_id: str) -> list[ScheduleException]:
        return [ScheduleExceptionDTO.model_validate(item).to_entity() for item in self._files.load(event_id, [])]

    def _save_event(self, event_id: str, exceptions: list[ScheduleException]) -> None:
        self._files.save(
            event_id,
            [ScheduleExceptionDTO.from_entity(exc).model_dump(mode="json", by_alias=True) for exc in exceptions],
        )

    def find_for_event(self, event_id: str, start: datetime, end: datetime) -> list[ScheduleException]:
        return [exc for exc in self._load_event(event_id) if may_block_range(exc, start, end)]

    def save(self, exception: ScheduleException) -> None:
        with self._files.get_lock(exception.event):
            existing = [exc for exc in self._load_event(exception.event) if exc.id != exception.id]
            self._save_event(exception.event, existing + [exception])

    def delete(self, exception_id: str) -> bool:
        for event_id in self._files.keys():
            with self._files.get_lock(event_id):
                existing = self._load_event(event_id)
                remaining = [exc for exc in existing if exc.id != exception_id]
                if len(remaining) != len(existing):
                    self._save_event(event_id, remaining)
                    return True
        return False


class JsonTimeSlotRepository(TimeSlotRepositoryPort):
    """
    Slots are stored as one file per event. Inside `atomic(event_id)` the
    event's slots are kept in memory and written once when the block exits
    cleanly; on error the file is left as it was.
    """

    def __init__(self, data_dir: str | Path = "./data/schedule") -> None:
        self._files = _JsonFileStore(Path(data_dir) / "slots")
        self._pending: dict[str, dict[tuple[datetime, datetime], TimeSlot]] = {}
        self._pending_owner: dict[str, int] = {}
        self._logger = logging.getLogger(__name__)

    def _read(self, event_id: str) -> dict[tuple[datetime, datetime], TimeSlot]:
        if event_id in self._pending and self._pending_owner.get(event_id) == threading.get_ident():
            return self._pending[event_id]
        slots = [TimeSlotDTO.model_validate(item).to_entity() for item in self._files.load(event_id, [])]
        return {(s.start_time, s.end_time): s for s in slots}

    def _write(self, event_id: str, slots: dict[tuple[datetime, datetime], TimeSlot]) -> None:
        if event_id in self._pending and self._pending_owner.get(event_id) == threading.get_ident():
            self._pending[event_id] = slots
            return
        ordered = sorted(slots.values(), key=lambda s: s.start_time)
        self._files.save(event_id, [TimeSlotDTO.from_entity(s).model_dump(mode="json", by_alias=True) for s in ordered])

    def bulk_create_slots(self, slots: list[TimeSlot]) -> BulkCreateResult:
        created = duplicates = errors = 0
        by_event: dict[str, list[TimeSlot]] = {}
        for slot in slots:
            by_event.setdefault(slot.event, []).append(slot)

        for event_id, candidates in by_event.items():
            with self._files.get_lock(event_id):
                stored = self._read(event_id)
                inserted = 0
                for slot in candidates:
                    try:
                        self._insert(stored, slot)
                        inserted += 1
                    except DuplicateSlotError:
                        duplicates += 1
                    except Exception as e:
                        errors += 1
                        self._logger.error(
                            "Slot insert failed",
                            extra={"event_id": event_id, "start": slot.start_time.isoformat(), "error": str(e)},
                        )
                try:
                    self._write(event_id, stored)
                except OSError as e:
                    self._logger.error("Slot file write failed", extra={"event_id": event_id, "error": str(e)})
                    errors += inserted
                    continue
                created += inserted

        self._logger.info(
            "Slots bulk created",
            extra={"count": len(slots), "inserted": created, "duplicates": duplicates, "errors": errors},
        )
        return BulkCreateResult(created=created, duplicates=duplicates, errors=errors)

    @staticmethod
    def _insert(stored: dict[tuple[datetime, datetime], TimeSlot], slot: TimeSlot) -> None:
        start, end = to_utc(slot.start_time), to_utc(slot.end_time)
        if start >= end:
            raise SlotPersistenceError(f"Slot start {start.isoformat()} is not before end {end.isoformat()}")
        if (start, end) in stored:
            raise DuplicateSlotError(f"Slot {slot.event} {start.isoformat()} already exists")
        stored[(start, end)] = replace(slot, id=slot.id or str(uuid.uuid4()), start_time=start, end_time=end)

    def _delete_where(self, event_id: str, predicate) -> int:
        with self._files.get_lock(event_id):
            stored = self._read(event_id)
            kept = {k: s for k, s in stored.items() if not predicate(s)}
            removed = len(stored) - len(kept)
            if removed:
                self._write(event_id, kept)
            return removed

    def delete_available_slots_from(self, event_id: str, from_instant: datetime) -> int:
        cutoff = to_utc(from_instant)
        return self._delete_where(event_id, lambda s: s.is_available and s.start_time >= cutoff)

    def purge_old_available(self, retention_days: int, now: datetime | None = None) -> int:
        cutoff = to_utc(now or datetime.now(timezone.utc)) - timedelta(days=retention_days)
        return sum(
            self._delete_where(event_id, lambda s: s.is_available and s.start_time <= cutoff)
            for event_id in self._files.keys()
        )

    def delete_by_local_date(self, status: SlotStatus, cutoff: date) -> int:
        return sum(
            self._delete_where(event_id, lambda s: s.status == status and s.local_date <= cutoff)
            for event_id in self._files.keys()
        )

    def count_by_local_date(self, status: SlotStatus, cutoff: date) -> int:
        total = 0
        for event_id in self._files.keys():
            with self._files.get_lock(event_id):
                total += sum(1 for s in self._read(event_id).values() if s.status == status and s.local_date <= cutoff)
        return total

    def find_for_event(
        self,
        event_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        status: SlotStatus | None = None,
    ) -> list[TimeSlot]:
        with self._files.get_lock(event_id):
            slots = list(self._read(event_id).values())
        found = [
            s
            for s in slots
            if (start is None or s.start_time >= to_utc(start))
            and (end is None or s.start_time <= to_utc(end))
            and (status is None or s.status == status)
        ]
        return sorted(found, key=lambda s: s.start_time)

    def set_status(self, slot_id: str, status: SlotStatus, booking: str | None = None) -> TimeSlot:
        for event_id in self._files.keys():
            with self._files.get_lock(event_id):
                stored = self._read(event_id)
                for key, slot in stored.items():
                    if slot.id == slot_id:
                        stored[key] = replace(slot, status=status, booking=booking)
                        self._write(event_id, stored)
                        return stored[key]
        raise SlotPersistenceError(f"Slot {slot_id} not found")

    @contextmanager
    def atomic(self, event_id: str):
        with self._files.get_lock(event_id):
            self._pending[event_id] = dict(self._read(event_id))
            self._pending_owner[event_id] = threading.get_ident()
            try:
                yield
            except BaseException:
                self._discard(event_id)
                raise
            slots = self._discard(event_id)
            self._write(event_id, slots)

    def _discard(self, event_id: str) -> dict[tuple[datetime, datetime], TimeSlot]:
        self._pending_owner.pop(event_id, None)
        return self._pending.pop(event_id, {})
