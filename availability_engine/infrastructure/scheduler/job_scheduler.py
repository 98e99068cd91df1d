"""
Daily job scheduler.

Each registered job gets its own asyncio task that sleeps until the next
wall-clock run time in the service timezone and then runs the handler in
a worker thread. A failing run is logged and recorded; the loop keeps going.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Callable

from availability_engine.application.ports.clock import ClockPort
from availability_engine.application.utils.intervals import UTC, resolve_timezone, to_utc
from availability_engine.infrastructure.clock.system_clock import SystemClock

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JobContext:
    job_id: str
    run_id: str
    attempt: int
    started_at: datetime


@dataclass
class JobState:
    job_id: str
    hour: int
    minute: int
    handler: Callable[[JobContext], Any]
    runs: int = 0
    last_run_at: datetime | None = None
    last_finished_at: datetime | None = None
    last_error: str | None = None
    last_result: Any = None
    next_run_at: datetime | None = None
    running: bool = False


def next_run_at(hour: int, minute: int, now: datetime, tz: tzinfo) -> datetime:
    """
    Next UTC instant strictly after `now` whose wall-clock time in `tz` is hour:minute.

    A time skipped by a spring-forward transition resolves to the instant
    just after the gap; a repeated fall-back time runs once (first occurrence).
    """
    local_now = to_utc(now).astimezone(tz)
    day: date = local_now.date()
    for _ in range(3):
        candidate = datetime.combine(day, time(hour, minute), tzinfo=tz).astimezone(UTC)
        if candidate > to_utc(now):
            return candidate
        day += timedelta(days=1)
    # unreachable for valid hour/minute
    raise ValueError(f"Cannot compute next run for {hour:02d}:{minute:02d}")


class JobScheduler:
    def __init__(self, timezone: str = "UTC", clock: ClockPort | None = None) -> None:
        self._tz = resolve_timezone(timezone)
        self._clock = clock or SystemClock()
        self._jobs: dict[str, JobState] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._started = False

    @property
    def is_running(self) -> bool:
        return self._started

    def register_daily(self, job_id: str, hour: int, minute: int, handler: Callable[[JobContext], Any]) -> None:
        if not (0 <= hour <= 23 and 0 <= minute <= 59):
            raise ValueError(f"Invalid schedule {hour}:{minute} for job {job_id}")
        if job_id in self._jobs:
            raise ValueError(f"Job {job_id} is already registered")
        self._jobs[job_id] = JobState(job_id=job_id, hour=hour, minute=minute, handler=handler)
        logger.info(
            f"Registered daily job at {hour:02d}:{minute:02d}",
            extra={"job_id": job_id, "timezone": str(self._tz)},
        )

    def start(self) -> None:
        """Start one loop per registered job. Must be called from a running event loop."""
        if self._started:
            return
        self._started = True
        for job_id, state in self._jobs.items():
            self._tasks[job_id] = asyncio.create_task(self._loop(state), name=f"job:{job_id}")
        logger.info("Job scheduler started", extra={"count": len(self._tasks)})

    async def stop(self) -> None:
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._started = False
        logger.info("Job scheduler stopped")

    async def trigger(self, job_id: str) -> Any:
        """Run a registered job now. Errors from the handler are re-raised to the caller."""
        state = self._jobs.get(job_id)
        if state is None:
            raise KeyError(job_id)
        return await self._run(state, reraise=True)

    async def _loop(self, state: JobState) -> None:
        logger.info("Job loop started", extra={"job_id": state.job_id})
        try:
            while True:
                now = self._clock.now()
                state.next_run_at = next_run_at(state.hour, state.minute, now, self._tz)
                delay = (state.next_run_at - to_utc(now)).total_seconds()
                await asyncio.sleep(max(0.0, delay))
                await self._run(state, reraise=False)
        except asyncio.CancelledError:
            logger.info("Job loop cancelled", extra={"job_id": state.job_id})
            raise

    async def _run(self, state: JobState, reraise: bool) -> Any:
        state.runs += 1
        context = JobContext(
            job_id=state.job_id,
            run_id=str(uuid.uuid4()),
            attempt=state.runs,
            started_at=self._clock.now(),
        )
        state.running = True
        state.last_run_at = context.started_at
        logger.info("Job run started", extra={"job_id": context.job_id, "run_id": context.run_id})
        try:
            result = await asyncio.to_thread(state.handler, context)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            state.last_error = str(e) or type(e).__name__
            logger.exception("Job run failed", extra={"job_id": context.job_id, "run_id": context.run_id})
            if reraise:
                raise
            return None
        finally:
            state.running = False
            state.last_finished_at = self._clock.now()

        state.last_error = None
        state.last_result = result
        logger.info("Job run completed", extra={"job_id": context.job_id, "run_id": context.run_id})
        return result

    def get_health(self) -> dict[str, Any]:
        """
        healthy: scheduler running and every job's last run succeeded;
        degraded: running but some job's last run failed;
        unhealthy: not running.
        """
        jobs = {}
        for job_id, state in self._jobs.items():
            jobs[job_id] = {
                "schedule": f"{state.hour:02d}:{state.minute:02d}",
                "runs": state.runs,
                "running": state.running,
                "last_run_at": state.last_run_at.isoformat() if state.last_run_at else None,
                "next_run_at": state.next_run_at.isoformat() if state.next_run_at else None,
                "last_error": state.last_error,
            }

        if not self._started:
            status = "unhealthy"
        elif any(state.last_error for state in self._jobs.values()):
            status = "degraded"
        else:
            status = "healthy"
        return {"status": status, "timezone": str(self._tz), "jobs": jobs}
