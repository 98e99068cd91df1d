from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from availability_engine.application.exceptions import InvalidTimeBlockError, InvalidTimezoneError

UTC = timezone.utc
MINUTES_PER_DAY = 24 * 60

_CIVIL_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return overlaps(self.start, self.end, start, end)


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: touching intervals do not overlap."""
    return a_start < b_end and b_start < a_end


def parse_civil_time(value: str) -> int:
    """Parse "HH:MM" (or "HH:MM:SS") into minutes since local midnight. "24:00" is end of day."""
    match = _CIVIL_TIME_RE.match((value or "").strip())
    if not match:
        raise InvalidTimeBlockError(f"Invalid time of day: {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3) or 0)
    if hour == 24 and minute == 0 and second == 0:
        return MINUTES_PER_DAY
    if hour > 23 or minute > 59 or second > 59:
        raise InvalidTimeBlockError(f"Invalid time of day: {value!r}")
    return hour * 60 + minute


def resolve_timezone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(f"Unknown timezone: {name!r}") from e


def civil_to_utc(day: date, minutes: int, tz: ZoneInfo) -> datetime:
    """
    Convert a civil wall-clock time on `day` in `tz` to a UTC instant.
    Offsets follow the zone at that local instant (fold=0 for ambiguous/missing times).
    """
    day_offset, minute_of_day = divmod(minutes, MINUTES_PER_DAY)
    wall_day = day + timedelta(days=day_offset)
    wall = datetime.combine(wall_day, time(minute_of_day // 60, minute_of_day % 60), tzinfo=tz)
    return wall.astimezone(UTC)


def to_utc(value: datetime, default_tz: ZoneInfo | None = None) -> datetime:
    """Normalize an instant to UTC; naive values are read in `default_tz` (UTC if omitted)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=default_tz or UTC)
    return value.astimezone(UTC)


def local_date(instant: datetime, tz: ZoneInfo) -> date:
    return to_utc(instant).astimezone(tz).date()


def start_of_local_day(instant: datetime, tz: ZoneInfo) -> datetime:
    """UTC instant of local midnight of the civil day containing `instant` in `tz`."""
    return civil_to_utc(local_date(instant, tz), 0, tz)


def end_of_local_day(day: date, tz: ZoneInfo) -> datetime:
    """Last representable UTC instant of civil `day` in `tz`."""
    return civil_to_utc(day, MINUTES_PER_DAY, tz) - timedelta(microseconds=1)


def iter_days(start: date, end: date):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)
