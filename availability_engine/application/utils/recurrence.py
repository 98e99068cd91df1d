from __future__ import annotations

import calendar
from datetime import datetime, timedelta
from enum import Enum

from availability_engine.application.utils.intervals import (
    UTC,
    Interval,
    end_of_local_day,
    resolve_timezone,
    to_utc,
)
from availability_engine.domain.entities.schedule_exception import RecurrenceType, ScheduleException

DEFAULT_MAX_OCCURRENCES = 100
HARD_MAX_OCCURRENCES = 1000

# Approximate step lengths in days; calendar mode steps real months instead.
_APPROXIMATE_DAYS = {
    RecurrenceType.daily: 1,
    RecurrenceType.weekly: 7,
    RecurrenceType.monthly: 30,
    RecurrenceType.yearly: 365,
}


class RecurrenceStepMode(str, Enum):
    approximate = "approximate"
    calendar = "calendar"


def add_months(value: datetime, months: int) -> datetime:
    """Add calendar months keeping wall-clock time; the day clamps to the month's last day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def _nth_start(base: datetime, kind: RecurrenceType, steps: int, mode: RecurrenceStepMode) -> datetime:
    if mode == RecurrenceStepMode.calendar and kind == RecurrenceType.monthly:
        return add_months(base, steps)
    if mode == RecurrenceStepMode.calendar and kind == RecurrenceType.yearly:
        return add_months(base, 12 * steps)
    # aware + timedelta is wall-clock arithmetic in the value's own zone
    return base + timedelta(days=_APPROXIMATE_DAYS[kind] * steps)


def expand_occurrences(
    exception: ScheduleException,
    horizon: datetime,
    step_mode: RecurrenceStepMode | str = RecurrenceStepMode.approximate,
    default_max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    hard_max_occurrences: int = HARD_MAX_OCCURRENCES,
) -> list[Interval]:
    """
    Expand an exception into the concrete blocked intervals up to `horizon`.

    Non-recurring exceptions yield their single interval. Recurring ones step
    from `start_datetime` in the exception's own zone, so a 12:00 local
    blackout stays at 12:00 local across DST. Expansion stops when an
    occurrence starts after min(pattern end_date, horizon) or the occurrence
    cap is reached; the cap always applies so expansion terminates.
    """
    start = to_utc(exception.start_datetime)
    end = to_utc(exception.end_datetime)
    if not exception.is_recurring:
        return [Interval(start=start, end=end)]

    pattern = exception.recurrence_pattern
    mode = RecurrenceStepMode(step_mode)
    tz = resolve_timezone(exception.timezone)
    duration = end - start
    interval = max(1, pattern.interval or 1)

    limit = to_utc(horizon)
    if pattern.end_date is not None:
        limit = min(limit, end_of_local_day(pattern.end_date, tz))

    max_occurrences = pattern.max_occurrences or default_max_occurrences
    max_occurrences = min(max_occurrences, hard_max_occurrences)

    base = start.astimezone(tz)
    occurrences: list[Interval] = []
    steps = 0
    while len(occurrences) < max_occurrences:
        occurrence_start = _nth_start(base, pattern.type, steps, mode).astimezone(UTC)
        if occurrence_start > limit:
            break
        occurrences.append(Interval(start=occurrence_start, end=occurrence_start + duration))
        steps += interval

    return occurrences


def may_block_range(exception: ScheduleException, start: datetime, end: datetime) -> bool:
    """
    Whether an exception can produce an occurrence touching [start, end].
    Recurring exceptions created long before the range still apply.
    """
    exception_start = to_utc(exception.start_datetime)
    if not exception.is_recurring:
        return exception_start <= to_utc(end) and to_utc(exception.end_datetime) >= to_utc(start)

    if exception_start > to_utc(end):
        return False
    pattern_end = exception.recurrence_pattern.end_date
    if pattern_end is not None:
        tz = resolve_timezone(exception.timezone)
        if end_of_local_day(pattern_end, tz) < to_utc(start):
            return False
    return True
