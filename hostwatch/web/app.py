"""FastAPI web application."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hostwatch.scheduler.job_scheduler import shutdown_scheduler, start_scheduler
from hostwatch.version import __version__

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting hostwatch...")
    start_scheduler()

    yield

    logger.info("Shutting down hostwatch...")
    shutdown_scheduler()
    logger.info("Shutdown complete")


app = FastAPI(
    title="hostwatch",
    description="ICMP reachability monitor with retries and consolidated alerts",
    version=__version__,
    lifespan=lifespan,
)

# Import and include routers
from hostwatch.web.routes import api, health  # noqa: E402

app.include_router(api.router, prefix="/api", tags=["API"])
app.include_router(health.router, tags=["Health"])
