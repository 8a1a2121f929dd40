"""Health check routes."""

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel

from hostwatch.monitor.service import get_last_result
from hostwatch.scheduler.job_scheduler import get_scheduler
from hostwatch.version import __version__, get_version_info

router = APIRouter()


class HealthResponse(BaseModel):
    status: str
    scheduler_running: bool
    version: str
    last_cycle_at: Optional[str] = None
    message: str = "OK"


class VersionResponse(BaseModel):
    version: str
    build_date: Optional[str] = None
    git_commit: Optional[str] = None


def _scheduler_running() -> bool:
    scheduler = get_scheduler()
    return scheduler is not None and scheduler.running


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health of the monitor process itself, not of the monitored hosts."""
    scheduler_running = _scheduler_running()
    last = get_last_result()

    return HealthResponse(
        status="healthy" if scheduler_running else "degraded",
        scheduler_running=scheduler_running,
        version=__version__,
        last_cycle_at=last.finished_at.isoformat() if last is not None else None,
        message="OK" if scheduler_running else "Scheduler not running",
    )


@router.get("/version", response_model=VersionResponse)
async def version():
    """Get application version information."""
    return VersionResponse(**get_version_info())


@router.get("/ready")
async def readiness_check():
    """Ready once the scheduler runs."""
    if _scheduler_running():
        return {"ready": True}

    return {"ready": False, "reason": "Scheduler not running"}


@router.get("/live")
async def liveness_check():
    """Liveness check - always returns OK if app is running."""
    return {"alive": True}


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics in exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
