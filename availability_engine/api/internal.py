from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass

from fastapi import APIRouter, Body, Depends, HTTPException

from availability_engine.api.schemas import (
    JobTriggerResponseSchema,
    RegenerateRequestSchema,
    RegenerationResponseSchema,
)
from availability_engine.application.exceptions import EventNotFoundError, SlotEngineError
from availability_engine.application.use_cases.regenerate_event_slots import RegenerateEventSlotsUseCase
from availability_engine.infrastructure.scheduler.job_scheduler import JobScheduler
from availability_engine.wiring.dependencies import get_regenerate_use_case, get_scheduler

router = APIRouter(prefix="/internal")
logger = logging.getLogger(__name__)


@router.post("/events/{event_id}/regenerate", response_model=RegenerationResponseSchema)
def regenerate_event_slots(
    event_id: str,
    payload: RegenerateRequestSchema | None = Body(None),
    use_case: RegenerateEventSlotsUseCase = Depends(get_regenerate_use_case),
) -> RegenerationResponseSchema:
    from_date = payload.from_date if payload else None
    try:
        result = use_case.execute(event_id, from_date=from_date)
    except EventNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except SlotEngineError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return RegenerationResponseSchema(**asdict(result))


@router.post("/jobs/{job_id}/trigger", response_model=JobTriggerResponseSchema)
async def trigger_job(
    job_id: str,
    scheduler: JobScheduler = Depends(get_scheduler),
) -> JobTriggerResponseSchema:
    try:
        result = await scheduler.trigger(job_id)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=f"Unknown job {job_id}") from e
    except Exception as e:
        logger.warning("Manual job trigger failed", extra={"job_id": job_id, "error": str(e)})
        raise HTTPException(status_code=500, detail=str(e)) from e

    payload = asdict(result) if is_dataclass(result) else {}
    for name in ("success_rate", "total_deleted"):
        if payload and hasattr(result, name):
            payload[name] = getattr(result, name)
    return JobTriggerResponseSchema(job_id=job_id, result=payload)
