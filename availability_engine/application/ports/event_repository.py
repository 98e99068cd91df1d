from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from availability_engine.domain.entities.booking_event import BookingEvent


class BookingEventRepositoryPort(ABC):
    @abstractmethod
    def find_active_in_range(self, start: date, end: date) -> list[BookingEvent]:
        """Active events whose effective range intersects [start, end]."""
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, event_id: str) -> BookingEvent | None:
        raise NotImplementedError

    @abstractmethod
    def save(self, event: BookingEvent) -> None:
        """Insert or replace an event template."""
        raise NotImplementedError
