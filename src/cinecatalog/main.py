"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI

from cinecatalog.api.routes import admin, health
from cinecatalog.config import settings
from cinecatalog.tasks.dedupe_job import run_dedupe_sweep
from cinecatalog.tasks.festival_job import run_festival_rescan
from cinecatalog.tasks.health_job import run_health_check

logger = logging.getLogger(__name__)


def create_scheduler() -> AsyncIOScheduler:
    """Register the catalogue maintenance jobs."""
    scheduler = AsyncIOScheduler(timezone=settings.timezone)
    scheduler.add_job(
        run_dedupe_sweep,
        trigger=CronTrigger(hour=4, minute=0),
        id="dedupe_sweep",
        name="Daily duplicate film sweep",
        replace_existing=True,
    )
    scheduler.add_job(
        run_festival_rescan,
        trigger=CronTrigger(hour=5, minute=0),
        id="festival_rescan",
        name="Daily festival reverse-tagging",
        replace_existing=True,
    )
    scheduler.add_job(
        run_health_check,
        trigger=CronTrigger(hour=7, minute=0),
        id="health_check",
        name="Daily scraper health check",
        replace_existing=True,
    )
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: configure and start the scheduler
    scheduler = create_scheduler()
    scheduler.start()
    logger.info(
        "Scheduler started: dedupe sweep 04:00, festival rescan 05:00, health check 07:00"
    )

    yield

    # Shutdown: stop the scheduler gracefully
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")


app = FastAPI(
    title="cinecatalog API",
    description="Catalogue pipeline for London cinema listings",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(admin.router, prefix="/api", tags=["admin"])
