from __future__ import annotations

import logging
from datetime import datetime

from availability_engine.application.exceptions import InvalidTimeBlockError
from availability_engine.application.utils.intervals import Interval, iter_days, local_date, resolve_timezone, to_utc
from availability_engine.application.utils.recurrence import (
    DEFAULT_MAX_OCCURRENCES,
    HARD_MAX_OCCURRENCES,
    RecurrenceStepMode,
    expand_occurrences,
)
from availability_engine.application.utils.slot_builder import build_slots
from availability_engine.domain.entities.booking_event import BookingEvent
from availability_engine.domain.entities.schedule_exception import ScheduleException
from availability_engine.domain.entities.time_slot import SlotStatus, TimeSlot


class EventSlotGenerator:
    """Turns one event template into unpersisted available slots for a date range."""

    def __init__(
        self,
        step_mode: RecurrenceStepMode | str = RecurrenceStepMode.approximate,
        default_max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
        hard_max_occurrences: int = HARD_MAX_OCCURRENCES,
    ) -> None:
        self._step_mode = RecurrenceStepMode(step_mode)
        self._default_max_occurrences = default_max_occurrences
        self._hard_max_occurrences = hard_max_occurrences
        self._logger = logging.getLogger(__name__)

    def generate(
        self,
        event: BookingEvent,
        range_start: datetime,
        range_end: datetime,
        exceptions: list[ScheduleException] | None = None,
    ) -> list[TimeSlot]:
        """
        Walk the provider-local days covering [range_start, range_end], slice every
        enabled block of the weekday template, keep the slots lying wholly inside
        [range_start, range_end), then drop slots overlapping any expanded
        exception occurrence.

        Exceptions are only looked up and expanded up to range_end, so a slot past
        it is left for a later run rather than emitted unfiltered.
        """
        tz = resolve_timezone(event.timezone)
        range_start, range_end = to_utc(range_start), to_utc(range_end)
        self._logger.debug(
            "Generating slots from event",
            extra={
                "event_id": event.id,
                "owner": event.owner,
                "start": range_start.isoformat(),
                "end": range_end.isoformat(),
                "count": len(exceptions or []),
            },
        )

        slots: list[TimeSlot] = []
        for day in iter_days(local_date(range_start, tz), local_date(range_end, tz)):
            daily_config = event.config_for(day)
            if not daily_config or not daily_config.enabled or not daily_config.time_blocks:
                continue
            if not event.is_effective_on(day):
                continue

            for block in daily_config.time_blocks:
                try:
                    intervals = build_slots(event, day, block, tz)
                except InvalidTimeBlockError as e:
                    self._logger.warning(
                        "Skipping malformed time block",
                        extra={"event_id": event.id, "reason": str(e)},
                    )
                    continue
                slots.extend(
                    self._to_slot(event, day, interval)
                    for interval in intervals
                    if interval.start >= range_start and interval.end <= range_end
                )

        if exceptions:
            slots = self._filter_exceptions(event, slots, exceptions, range_end)

        self._logger.info(
            f"Generated {len(slots)} slots from event {event.id}",
            extra={"event_id": event.id, "owner": event.owner, "generated": len(slots)},
        )
        return slots

    def _filter_exceptions(
        self,
        event: BookingEvent,
        slots: list[TimeSlot],
        exceptions: list[ScheduleException],
        horizon: datetime,
    ) -> list[TimeSlot]:
        blocked: list[Interval] = []
        for exception in exceptions:
            blocked.extend(
                expand_occurrences(
                    exception,
                    horizon,
                    step_mode=self._step_mode,
                    default_max_occurrences=self._default_max_occurrences,
                    hard_max_occurrences=self._hard_max_occurrences,
                )
            )

        kept = [
            slot
            for slot in slots
            if not any(occurrence.overlaps(slot.start_time, slot.end_time) for occurrence in blocked)
        ]

        filtered = len(slots) - len(kept)
        if filtered > 0:
            self._logger.info(
                f"Filtered {filtered} slots due to schedule exceptions",
                extra={"event_id": event.id, "filtered": filtered, "count": len(exceptions)},
            )
        return kept

    @staticmethod
    def _to_slot(event: BookingEvent, day, interval: Interval) -> TimeSlot:
        return TimeSlot(
            owner=event.owner,
            event=event.id,
            start_time=interval.start,
            end_time=interval.end,
            local_date=day,
            location_types=tuple(event.location_types),
            status=SlotStatus.available,
            billing_override=dict(event.billing_config) if event.billing_config else None,
            context=event.context,
            created_by=event.owner,
            updated_by=event.owner,
        )
