"""Job scheduler using APScheduler."""

import logging
from typing import Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED, JobExecutionEvent
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from hostwatch.config import settings
from hostwatch.monitor.service import run_monitor_cycle

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def _job_listener(event: JobExecutionEvent) -> None:
    """Listen for job execution events."""
    if event.exception:
        logger.error(
            "Job %s failed with exception: %s",
            event.job_id,
            event.exception,
        )
    else:
        logger.info("Job %s executed successfully", event.job_id)


async def monitor_job() -> None:
    """Scheduled cycle. Errors are reported through the job listener."""
    await run_monitor_cycle()


def create_scheduler() -> AsyncIOScheduler:
    """Create and configure the scheduler.

    Jobs live in memory only; nothing is carried over between runs.

    Returns:
        Configured AsyncIOScheduler instance.
    """
    job_defaults = {
        "coalesce": True,  # Combine missed runs into one
        "max_instances": 1,  # Never overlap two cycles
        "misfire_grace_time": 60,
    }

    return AsyncIOScheduler(
        job_defaults=job_defaults,
        timezone="UTC",
    )


def start_scheduler(interval_minutes: Optional[float] = None) -> None:
    """Start the scheduler with the monitoring job.

    Args:
        interval_minutes: Cycle interval. Defaults to the configured interval.
    """
    global scheduler

    if interval_minutes is None:
        interval_minutes = settings.check_interval_minutes

    scheduler = create_scheduler()

    # Add job execution listener
    scheduler.add_listener(_job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    scheduler.add_job(
        monitor_job,
        trigger=IntervalTrigger(minutes=interval_minutes),
        id="host_check",
        name="Host Reachability Check",
        replace_existing=True,
    )
    logger.info("Scheduled host check every %g minutes", interval_minutes)

    # Run the first cycle right after startup
    scheduler.add_job(
        monitor_job,
        trigger="date",
        id="initial_check",
        name="Initial Check on Startup",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started with %d jobs",
        len(scheduler.get_jobs()),
    )


def shutdown_scheduler() -> None:
    """Gracefully shutdown the scheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Scheduler shutdown complete")


def get_scheduler() -> Optional[AsyncIOScheduler]:
    """Get the current scheduler instance.

    Returns:
        The scheduler instance or None if not started.
    """
    return scheduler


def get_jobs_info() -> list:
    """Get information about scheduled jobs.

    Returns:
        List of job information dictionaries.
    """
    if not scheduler:
        return []

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger),
        })

    return jobs


async def trigger_manual_check() -> str:
    """Trigger an immediate check.

    Returns:
        Message indicating the check was triggered.
    """
    if scheduler:
        # Add a one-time job to run immediately
        scheduler.add_job(
            monitor_job,
            trigger="date",
            id="manual_check",
            name="Manual Check",
            replace_existing=True,
        )
        return "Manual check triggered"

    # Run directly if scheduler not available
    await monitor_job()
    return "Manual check completed"
