from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import date, datetime

from availability_engine.domain.entities.time_slot import SlotStatus, TimeSlot


@dataclass(frozen=True)
class BulkCreateResult:
    created: int = 0
    duplicates: int = 0
    errors: int = 0


class TimeSlotRepositoryPort(ABC):
    @abstractmethod
    def bulk_create_slots(self, slots: list[TimeSlot]) -> BulkCreateResult:
        """
        Insert every candidate slot. A collision on (event, start_time, end_time)
        counts as a duplicate; any other single-slot failure counts as an error.
        Never raises for individual slots.
        """
        raise NotImplementedError

    @abstractmethod
    def delete_available_slots_from(self, event_id: str, from_instant: datetime) -> int:
        """Delete the event's available slots starting at or after `from_instant`."""
        raise NotImplementedError

    @abstractmethod
    def purge_old_available(self, retention_days: int, now: datetime | None = None) -> int:
        """Delete available slots that started more than `retention_days` ago."""
        raise NotImplementedError

    @abstractmethod
    def delete_by_local_date(self, status: SlotStatus, cutoff: date) -> int:
        """Delete slots with `status` whose provider-local day is on or before `cutoff`."""
        raise NotImplementedError

    @abstractmethod
    def count_by_local_date(self, status: SlotStatus, cutoff: date) -> int:
        raise NotImplementedError

    @abstractmethod
    def find_for_event(
        self,
        event_id: str,
        start: datetime | None = None,
        end: datetime | None = None,
        status: SlotStatus | None = None,
    ) -> list[TimeSlot]:
        """Slots of an event ordered by start_time, optionally bounded by start_time range."""
        raise NotImplementedError

    @abstractmethod
    def set_status(self, slot_id: str, status: SlotStatus, booking: str | None = None) -> TimeSlot:
        """Used by the booking workflow; the generator never calls it."""
        raise NotImplementedError

    @abstractmethod
    def atomic(self, event_id: str) -> AbstractContextManager[None]:
        """
        Context manager scoping a delete-then-insert for one event: either every
        change inside it is kept, or none is.
        """
        raise NotImplementedError
