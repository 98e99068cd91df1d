import logging
from functools import lru_cache

from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.use_cases.generate_event_slots import EventSlotGenerator
from availability_engine.application.use_cases.regenerate_event_slots import RegenerateEventSlotsUseCase
from availability_engine.application.use_cases.slot_cleanup_job import CLEANUP_JOB_ID, SlotCleanupJob
from availability_engine.application.use_cases.slot_generation_job import JOB_ID, SlotGenerationJob
from availability_engine.core.config import settings
from availability_engine.infrastructure.clock.system_clock import SystemClock
from availability_engine.infrastructure.scheduler.job_scheduler import JobScheduler
from availability_engine.infrastructure.store.json_store import (
    JsonBookingEventRepository,
    JsonScheduleExceptionRepository,
    JsonTimeSlotRepository,
)
from availability_engine.infrastructure.store.memory_store import (
    MemoryBookingEventRepository,
    MemoryScheduleExceptionRepository,
    MemoryTimeSlotRepository,
)


def _store_provider() -> str:
    if settings.STORE_PROVIDER:
        return settings.STORE_PROVIDER.lower()
    if settings.ENV.lower() in {"dev", "local"}:
        return "json"
    return "memory"


@lru_cache
def get_stores():
    """Event, exception and slot repositories sharing one backend."""
    logger = logging.getLogger(__name__)
    provider = _store_provider()
    if provider == "json":
        logger.info("Using JSON schedule store at %s", settings.DATA_DIR)
        return (
            JsonBookingEventRepository(settings.DATA_DIR),
            JsonScheduleExceptionRepository(settings.DATA_DIR),
            JsonTimeSlotRepository(settings.DATA_DIR),
        )
    if provider == "memory":
        logger.info("Using in-memory schedule store")
        return (
            MemoryBookingEventRepository(),
            MemoryScheduleExceptionRepository(),
            MemoryTimeSlotRepository(),
        )
    raise ValueError(f"Unknown STORE_PROVIDER: {settings.STORE_PROVIDER}")


@lru_cache
def get_clock() -> ClockPort:
    return SystemClock()


def get_slot_generator() -> EventSlotGenerator:
    return EventSlotGenerator(
        step_mode=settings.RECURRENCE_STEP_MODE,
        default_max_occurrences=settings.RECURRENCE_MAX_OCCURRENCES,
        hard_max_occurrences=settings.RECURRENCE_HARD_CAP,
    )


@lru_cache
def get_slot_generation_job() -> SlotGenerationJob:
    events, exceptions, slots = get_stores()
    return SlotGenerationJob(
        events=events,
        exceptions=exceptions,
        slots=slots,
        clock=get_clock(),
        generator=get_slot_generator(),
        service_timezone=settings.SERVICE_TIMEZONE,
        horizon_days=settings.SLOT_HORIZON_DAYS,
        batch_size=settings.SLOT_BATCH_SIZE,
        retention_days=settings.SLOT_RETENTION_DAYS,
        purge_enabled=settings.SLOT_PURGE_ENABLED,
    )


@lru_cache
def get_regenerate_use_case() -> RegenerateEventSlotsUseCase:
    # cached so the per-event lock registry is shared by every request
    events, exceptions, slots = get_stores()
    return RegenerateEventSlotsUseCase(
        events=events,
        exceptions=exceptions,
        slots=slots,
        clock=get_clock(),
        generator=get_slot_generator(),
        window_days=settings.REGENERATION_WINDOW_DAYS,
    )


@lru_cache
def get_slot_cleanup_job() -> SlotCleanupJob:
    _, _, slots = get_stores()
    return SlotCleanupJob(
        slots=slots,
        clock=get_clock(),
        service_timezone=settings.SERVICE_TIMEZONE,
        available_retention_days=settings.SLOT_CLEANUP_RETENTION_DAYS,
    )


@lru_cache
def get_scheduler() -> JobScheduler:
    scheduler = JobScheduler(timezone=settings.SERVICE_TIMEZONE, clock=get_clock())
    scheduler.register_daily(
        JOB_ID,
        settings.SLOT_GENERATOR_CRON_HOUR,
        settings.SLOT_GENERATOR_CRON_MINUTE,
        get_slot_generation_job(),
    )
    if settings.SLOT_CLEANUP_ENABLED:
        scheduler.register_daily(
            CLEANUP_JOB_ID,
            settings.SLOT_CLEANUP_CRON_HOUR,
            settings.SLOT_CLEANUP_CRON_MINUTE,
            get_slot_cleanup_job(),
        )
    return scheduler
