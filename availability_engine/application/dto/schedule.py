from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator, model_validator

from availability_engine.application.utils.intervals import parse_civil_time, resolve_timezone, to_utc
from availability_engine.domain.entities.booking_event import (
    DEFAULT_BUFFER_TIME,
    DEFAULT_SLOT_DURATION,
    BookingEvent,
    DailyConfig,
    DayOfWeek,
    EventStatus,
    LocationType,
    TimeBlock,
)
from availability_engine.domain.entities.schedule_exception import (
    RecurrencePattern,
    RecurrenceType,
    ScheduleException,
)
from availability_engine.domain.entities.time_slot import SlotStatus, TimeSlot


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TimeBlockDTO(_CamelModel):
    start_time: str = Field(alias="startTime")
    end_time: str = Field(alias="endTime")
    slot_duration: int = Field(DEFAULT_SLOT_DURATION, alias="slotDuration", gt=0)
    buffer_time: int = Field(DEFAULT_BUFFER_TIME, alias="bufferTime", ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "TimeBlockDTO":
        if parse_civil_time(self.start_time) >= parse_civil_time(self.end_time):
            raise ValueError(f"startTime {self.start_time} must be before endTime {self.end_time}")
        return self

    def to_entity(self) -> TimeBlock:
        return TimeBlock(
            start_time=self.start_time,
            end_time=self.end_time,
            slot_duration=self.slot_duration,
            buffer_time=self.buffer_time,
        )


class DailyConfigDTO(_CamelModel):
    enabled: bool = False
    time_blocks: list[TimeBlockDTO] = Field(default_factory=list, alias="timeBlocks")

    def to_entity(self) -> DailyConfig:
        return DailyConfig(enabled=self.enabled, time_blocks=tuple(b.to_entity() for b in self.time_blocks))


class BookingEventDTO(_CamelModel):
    id: str
    owner: str
    timezone: str = "America/New_York"
    status: EventStatus = EventStatus.draft
    location_types: list[LocationType] = Field(
        default_factory=lambda: [LocationType.video, LocationType.phone, LocationType.in_person],
        alias="locationTypes",
    )
    billing_config: dict[str, Any] | None = Field(None, alias="billingConfig")
    effective_from: date = Field(alias="effectiveFrom")
    effective_to: date | None = Field(None, alias="effectiveTo")
    daily_configs: dict[DayOfWeek, DailyConfigDTO] = Field(default_factory=dict, alias="dailyConfigs")
    title: str | None = None
    context: str | None = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        resolve_timezone(v)
        return v

    @field_validator("effective_from", "effective_to", mode="before")
    @classmethod
    def instant_to_local_day(cls, v: Any, info: ValidationInfo) -> Any:
        """Effective bounds are whole days; full timestamps are reduced to the provider-local day."""
        if isinstance(v, str) and "T" in v:
            v = datetime.fromisoformat(v.replace("Z", "+00:00"))
        if isinstance(v, datetime):
            tz_name = info.data.get("timezone") or "UTC"
            if v.tzinfo is None:
                return v.date()
            return v.astimezone(resolve_timezone(tz_name)).date()
        return v

    @model_validator(mode="after")
    def check_effective_range(self) -> "BookingEventDTO":
        if self.effective_to is not None and self.effective_from > self.effective_to:
            raise ValueError("effectiveFrom must not be after effectiveTo")
        return self

    def to_entity(self) -> BookingEvent:
        return BookingEvent(
            id=self.id,
            owner=self.owner,
            timezone=self.timezone,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
            status=self.status,
            location_types=tuple(self.location_types),
            billing_config=self.billing_config,
            daily_configs={day: cfg.to_entity() for day, cfg in self.daily_configs.items()},
            title=self.title,
            context=self.context,
        )

    @classmethod
    def from_entity(cls, event: BookingEvent) -> "BookingEventDTO":
        return cls(
            id=event.id,
            owner=event.owner,
            timezone=event.timezone,
            status=event.status,
            location_types=list(event.location_types),
            billing_config=event.billing_config,
            effective_from=event.effective_from,
            effective_to=event.effective_to,
            daily_configs={
                day: DailyConfigDTO(
                    enabled=cfg.enabled,
                    time_blocks=[
                        TimeBlockDTO(
                            start_time=b.start_time,
                            end_time=b.end_time,
                            slot_duration=b.slot_duration,
                            buffer_time=b.buffer_time,
                        )
                        for b in cfg.time_blocks
                    ],
                )
                for day, cfg in event.daily_configs.items()
            },
            title=event.title,
            context=event.context,
        )


class RecurrencePatternDTO(_CamelModel):
    type: RecurrenceType
    interval: int = Field(1, ge=1)
    end_date: date | None = Field(None, alias="endDate")
    max_occurrences: int | None = Field(None, alias="maxOccurrences", gt=0)

    def to_entity(self) -> RecurrencePattern:
        return RecurrencePattern(
            type=self.type,
            interval=self.interval,
            end_date=self.end_date,
            max_occurrences=self.max_occurrences,
        )


class ScheduleExceptionDTO(_CamelModel):
    id: str
    event: str
    owner: str | None = None
    timezone: str = "UTC"
    start_datetime: datetime = Field(alias="startDatetime")
    end_datetime: datetime = Field(alias="endDatetime")
    recurring: bool = False
    recurrence_pattern: RecurrencePatternDTO | None = Field(None, alias="recurrencePattern")
    reason: str | None = None

    @field_validator("timezone")
    @classmethod
    def check_timezone(cls, v: str) -> str:
        resolve_timezone(v)
        return v

    @model_validator(mode="after")
    def check_interval(self) -> "ScheduleExceptionDTO":
        tz = resolve_timezone(self.timezone)
        # naive instants are read as wall-clock time in the exception's zone
        self.start_datetime = to_utc(self.start_datetime, tz)
        self.end_datetime = to_utc(self.end_datetime, tz)
        if self.start_datetime >= self.end_datetime:
            raise ValueError("startDatetime must be before endDatetime")
        if self.recurring and self.recurrence_pattern is None:
            raise ValueError("recurrencePattern is required for recurring exceptions")
        return self

    def to_entity(self) -> ScheduleException:
        return ScheduleException(
            id=self.id,
            event=self.event,
            owner=self.owner,
            timezone=self.timezone,
            start_datetime=self.start_datetime,
            end_datetime=self.end_datetime,
            recurring=self.recurring,
            recurrence_pattern=self.recurrence_pattern.to_entity() if self.recurrence_pattern else None,
            reason=self.reason,
        )

    @classmethod
    def from_entity(cls, exception: ScheduleException) -> "ScheduleExceptionDTO":
        pattern = exception.recurrence_pattern
        return cls(
            id=exception.id,
            event=exception.event,
            owner=exception.owner,
            timezone=exception.timezone,
            start_datetime=exception.start_datetime,
            end_datetime=exception.end_datetime,
            recurring=exception.recurring,
            recurrence_pattern=(
                RecurrencePatternDTO(
                    type=pattern.type,
                    interval=pattern.interval,
                    end_date=pattern.end_date,
                    max_occurrences=pattern.max_occurrences,
                )
                if pattern
                else None
            ),
            reason=exception.reason,
        )


class TimeSlotDTO(_CamelModel):
    id: str | None = None
    owner: str
    event: str
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")
    local_date: date = Field(alias="date")
    location_types: list[LocationType] = Field(default_factory=list, alias="locationTypes")
    status: SlotStatus = SlotStatus.available
    billing_override: dict[str, Any] | None = Field(None, alias="billingOverride")
    context: str | None = None
    booking: str | None = None
    created_by: str | None = Field(None, alias="createdBy")
    updated_by: str | None = Field(None, alias="updatedBy")

    def to_entity(self) -> TimeSlot:
        return TimeSlot(
            id=self.id,
            owner=self.owner,
            event=self.event,
            start_time=to_utc(self.start_time),
            end_time=to_utc(self.end_time),
            local_date=self.local_date,
            location_types=tuple(self.location_types),
            status=self.status,
            billing_override=self.billing_override,
            context=self.context,
            booking=self.booking,
            created_by=self.created_by,
            updated_by=self.updated_by,
        )

    @classmethod
    def from_entity(cls, slot: TimeSlot) -> "TimeSlotDTO":
        return cls(
            id=slot.id,
            owner=slot.owner,
            event=slot.event,
            start_time=slot.start_time,
            end_time=slot.end_time,
            local_date=slot.local_date,
            location_types=list(slot.location_types),
            status=slot.status,
            billing_override=slot.billing_override,
            context=slot.context,
            booking=slot.booking,
            created_by=slot.created_by,
            updated_by=slot.updated_by,
        )
