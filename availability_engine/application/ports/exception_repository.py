from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from availability_engine.domain.entities.schedule_exception import ScheduleException


class ScheduleExceptionRepositoryPort(ABC):
    @abstractmethod
    def find_for_event(self, event_id: str, start: datetime, end: datetime) -> list[ScheduleException]:
        """
        Exceptions of an event that can block time in [start, end]: those whose own
        interval overlaps the range, plus recurring ones that begin before `end`
        and whose pattern has not ended before `start`.
        """
        raise NotImplementedError

    @abstractmethod
    def save(self, exception: ScheduleException) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, exception_id: str) -> bool:
        raise NotImplementedError
