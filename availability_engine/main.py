import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from availability_engine.api.internal import router as internal_router
from availability_engine.core.config import settings
from availability_engine.core.logging import configure_logging
from availability_engine.infrastructure.scheduler.job_scheduler import JobScheduler
from availability_engine.wiring.dependencies import get_scheduler

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = get_scheduler()
    if settings.SCHEDULER_ENABLED:
        scheduler.start()
    else:
        logger.info("Job scheduler disabled")
    yield
    if scheduler.is_running:
        await scheduler.stop()


app = FastAPI(title="Availability Engine", version="1.0.0", lifespan=lifespan)

app.include_router(internal_router, tags=["internal"])


@app.get("/health")
def health(job_scheduler: JobScheduler = Depends(get_scheduler)) -> dict[str, object]:
    scheduler = job_scheduler.get_health()
    status = "ok" if scheduler["status"] == "healthy" or not settings.SCHEDULER_ENABLED else scheduler["status"]
    return {"status": status, "scheduler": scheduler}
