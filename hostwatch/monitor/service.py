"""Run one configured monitoring cycle and dispatch its alert."""

import asyncio
import logging
import time
from typing import Optional

from hostwatch.config import settings
from hostwatch.metrics import (
    cycle_duration_seconds,
    cycles_total,
    host_up,
    hosts_down,
    probe_attempts_total,
)
from hostwatch.monitor.aggregator import build_notification
from hostwatch.monitor.cycle import run_cycle
from hostwatch.monitor.errors import ConfigurationError, CycleIncomplete
from hostwatch.monitor.models import CycleResult, Host, NotificationPayload, ProbeOutcome
from hostwatch.monitor.prober import probe_host
from hostwatch.notifications.notifier import send_notification

logger = logging.getLogger(__name__)

# Last completed cycle of this process, served by the status API
_last_result: Optional[CycleResult] = None


def get_last_result() -> Optional[CycleResult]:
    """Get the most recent completed cycle, or None before the first one."""
    return _last_result


async def counted_probe(host: Host) -> ProbeOutcome:
    """Probe a host and count the attempt by result."""
    outcome = await probe_host(host, timeout=settings.ping_timeout_seconds)
    label = "reachable" if outcome.reachable else outcome.reason.value
    probe_attempts_total.labels(result=label).inc()
    return outcome


def _record_metrics(result: CycleResult) -> None:
    for verdict in result.verdicts:
        host_up.labels(
            address=verdict.host.address,
            label=verdict.host.label,
        ).set(1 if verdict.is_up else 0)


async def _dispatch(payload: Optional[NotificationPayload], notify: bool) -> None:
    if payload is None:
        return
    if not notify:
        logger.info("Notification disabled, alert not sent: %s", payload.subject)
        return

    await send_notification(payload)


async def run_monitor_cycle(
    notify: bool = True,
    cancel_event: Optional[asyncio.Event] = None,
) -> CycleResult:
    """Run one cycle over the configured hosts.

    Reads hosts and retry parameters from settings, runs the cycle, updates
    metrics and sends one alert if any host is down.

    When the cycle is incomplete, hosts that were confirmed down are still
    alerted before CycleIncomplete is re-raised.

    Args:
        notify: Deliver the alert through the notification channels.
        cancel_event: Optional event that stops the cycle early.

    Returns:
        The completed cycle result.

    Raises:
        ConfigurationError: If hosts or parameters are invalid.
        CycleIncomplete: If the cycle deadline passed or it was cancelled.
    """
    global _last_result

    try:
        hosts = settings.host_list
    except ConfigurationError:
        cycles_total.labels(outcome="error").inc()
        raise
    recipients = settings.recipient_list
    if notify and hosts and not recipients and not settings.webhook_configured:
        logger.warning("No notification recipients or webhook configured")

    started = time.monotonic()
    try:
        result = await run_cycle(
            hosts,
            settings.max_attempts,
            settings.retry_delay_seconds,
            deadline=settings.cycle_deadline,
            cancel_event=cancel_event,
            max_concurrency=settings.concurrency_limit,
            probe=counted_probe,
        )
    except ConfigurationError:
        cycles_total.labels(outcome="error").inc()
        raise
    except CycleIncomplete as e:
        cycles_total.labels(outcome="incomplete").inc()
        cycle_duration_seconds.observe(time.monotonic() - started)
        _record_metrics(e.partial)
        await _dispatch(build_notification(e.partial, recipients), notify)
        raise

    cycles_total.labels(outcome="complete").inc()
    cycle_duration_seconds.observe(time.monotonic() - started)
    # Drop series of hosts no longer configured
    host_up.clear()
    _record_metrics(result)
    hosts_down.set(len(result.down))
    _last_result = result

    await _dispatch(build_notification(result, recipients), notify)
    return result
