"""REST API routes."""

from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from hostwatch.config import settings, to_local_iso
from hostwatch.monitor.errors import ConfigurationError, CycleIncomplete
from hostwatch.monitor.models import HostVerdict
from hostwatch.monitor.service import get_last_result
from hostwatch.scheduler.job_scheduler import get_jobs_info, trigger_manual_check

router = APIRouter()


# Response models
class VerdictResponse(BaseModel):
    address: str
    label: str
    status: str
    attempts_made: int
    first_failure_at: Optional[str] = None
    last_attempt_at: Optional[str] = None
    reason: Optional[str] = None
    latency_ms: Optional[float] = None


class StatusResponse(BaseModel):
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    max_attempts: int
    retry_delay_seconds: float
    host_count: int
    down_count: int
    hosts: List[VerdictResponse] = []


class HostResponse(BaseModel):
    address: str
    label: str


class JobResponse(BaseModel):
    id: str
    name: str
    next_run: Optional[str] = None
    trigger: str


class TriggerResponse(BaseModel):
    message: str
    status: str = "queued"


def _verdict_response(verdict: HostVerdict) -> VerdictResponse:
    return VerdictResponse(
        address=verdict.host.address,
        label=verdict.host.label,
        status=verdict.status.value,
        attempts_made=verdict.attempts_made,
        first_failure_at=to_local_iso(verdict.first_failure_at),
        last_attempt_at=to_local_iso(verdict.last_attempt_at),
        reason=verdict.last_reason.value if verdict.last_reason else None,
        latency_ms=verdict.latency_ms,
    )


@router.get("/status", response_model=StatusResponse)
async def get_status():
    """Verdicts of the last completed cycle in this process."""
    result = get_last_result()
    if result is None:
        raise HTTPException(status_code=404, detail="No cycle has completed yet")

    return StatusResponse(
        started_at=to_local_iso(result.started_at),
        finished_at=to_local_iso(result.finished_at),
        max_attempts=result.max_attempts,
        retry_delay_seconds=result.retry_delay_seconds,
        host_count=len(result.verdicts),
        down_count=len(result.down),
        hosts=[_verdict_response(v) for v in result.verdicts],
    )


@router.get("/hosts", response_model=List[HostResponse])
async def list_hosts():
    """Configured hosts in check order."""
    try:
        hosts = settings.host_list
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=f"Invalid host configuration: {e}")
    return [HostResponse(address=h.address, label=h.label) for h in hosts]


@router.get("/jobs", response_model=List[JobResponse])
async def list_jobs():
    """Get scheduled jobs information."""
    return [JobResponse(**job) for job in get_jobs_info()]


@router.post("/check", response_model=TriggerResponse)
async def trigger_check():
    """Queue an immediate monitoring cycle.

    Without a running scheduler the cycle runs inline, so its errors are
    reported here.
    """
    try:
        message = await trigger_manual_check()
    except ConfigurationError as e:
        raise HTTPException(status_code=500, detail=f"Invalid host configuration: {e}")
    except CycleIncomplete as e:
        raise HTTPException(status_code=503, detail=f"Check incomplete: {e}")
    status = "queued" if "triggered" in message else "completed"
    return TriggerResponse(message=message, status=status)
