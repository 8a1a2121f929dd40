"""Bounded retry of a single host's probe."""

import asyncio
import logging
import numbers
from typing import Awaitable, Callable, Optional

from hostwatch.monitor.errors import ConfigurationError
from hostwatch.monitor.models import (
    Host,
    HostStatus,
    HostVerdict,
    ProbeOutcome,
    utcnow,
)
from hostwatch.monitor.prober import probe_host

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[Host], Awaitable[ProbeOutcome]]
SleepFunc = Callable[[float], Awaitable[None]]


def validate_policy(max_attempts: int, retry_delay: float) -> None:
    """Reject retry parameters before any probing starts.

    Raises:
        ConfigurationError: If max_attempts < 1 or retry_delay < 0.
    """
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, numbers.Integral):
        raise ConfigurationError(f"max_attempts must be an integer, got {max_attempts!r}")
    if max_attempts < 1:
        raise ConfigurationError(f"max_attempts must be at least 1, got {max_attempts}")
    if isinstance(retry_delay, bool) or not isinstance(retry_delay, numbers.Real):
        raise ConfigurationError(f"retry_delay must be a number, got {retry_delay!r}")
    if retry_delay < 0:
        raise ConfigurationError(f"retry_delay must not be negative, got {retry_delay}")


async def resolve_host(
    host: Host,
    max_attempts: int,
    retry_delay: float,
    *,
    probe: Optional[ProbeFunc] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> HostVerdict:
    """Probe a host until it answers or the attempt budget is spent.

    Stops on the first reachable outcome. Waits ``retry_delay`` seconds
    between attempts but never after the last one.

    Args:
        host: Host to check.
        max_attempts: Attempt budget, at least 1.
        retry_delay: Seconds between attempts, not negative.
        probe: Probe coroutine function. Defaults to the ICMP prober.
        sleep: Suspension used between attempts.

    Returns:
        Up verdict with the index of the successful attempt, or a Down
        verdict with ``attempts_made == max_attempts``.

    Raises:
        ConfigurationError: If the retry parameters are invalid.
    """
    validate_policy(max_attempts, retry_delay)
    if probe is None:
        probe = probe_host

    first_failure_at = None
    last_outcome: Optional[ProbeOutcome] = None

    for attempt in range(1, max_attempts + 1):
        outcome = await probe(host)
        last_outcome = outcome

        if outcome.reachable:
            if attempt > 1:
                logger.info("%s answered on attempt %d/%d", host, attempt, max_attempts)
            return HostVerdict(
                host=host,
                status=HostStatus.UP,
                attempts_made=attempt,
                first_failure_at=first_failure_at,
                last_attempt_at=outcome.timestamp,
                latency_ms=outcome.latency_ms,
            )

        if first_failure_at is None:
            first_failure_at = outcome.timestamp

        logger.debug(
            "%s attempt %d/%d failed: %s",
            host,
            attempt,
            max_attempts,
            outcome.reason.value if outcome.reason else "unknown",
        )

        if attempt < max_attempts:
            await sleep(retry_delay)

    logger.warning(
        "%s unreachable after %d attempts (%s)",
        host,
        max_attempts,
        last_outcome.detail or last_outcome.reason.value,
    )
    return HostVerdict(
        host=host,
        status=HostStatus.DOWN,
        attempts_made=max_attempts,
        first_failure_at=first_failure_at,
        last_attempt_at=last_outcome.timestamp if last_outcome else utcnow(),
        last_reason=last_outcome.reason,
    )
