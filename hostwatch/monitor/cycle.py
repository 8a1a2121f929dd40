"""One monitoring cycle: every host resolved concurrently, joined once."""

import asyncio
import logging
from typing import Iterable, List, Optional, Set

from hostwatch.monitor.errors import ConfigurationError, CycleIncomplete
from hostwatch.monitor.models import CycleResult, Host, HostVerdict, utcnow
from hostwatch.monitor.retry import ProbeFunc, SleepFunc, resolve_host, validate_policy

logger = logging.getLogger(__name__)


def _validate_hosts(hosts: Iterable[Host]) -> List[Host]:
    checked = []
    for host in hosts:
        if not isinstance(host, Host):
            raise ConfigurationError(f"expected Host, got {type(host).__name__}")
        if not host.address or not host.address.strip():
            raise ConfigurationError(f"host {host.label!r} has an empty address")
        checked.append(host)
    return checked


async def _join(
    tasks: List["asyncio.Task[HostVerdict]"],
    stop_waiter: Optional["asyncio.Task"],
    deadline: Optional[float],
) -> Optional[str]:
    """Wait for every host task.

    Returns:
        None when all tasks finished, otherwise why the wait stopped early.
    """
    loop = asyncio.get_running_loop()
    end = loop.time() + deadline if deadline is not None else None
    pending: Set[asyncio.Task] = set(tasks)

    while pending:
        watch = set(pending)
        if stop_waiter is not None:
            watch.add(stop_waiter)

        timeout = None if end is None else max(0.0, end - loop.time())
        done, _ = await asyncio.wait(
            watch,
            timeout=timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in done:
            if task is stop_waiter or task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                raise error
        pending -= done

        if stop_waiter is not None and stop_waiter.done():
            return "cycle cancelled"
        if pending and end is not None and loop.time() >= end:
            return f"cycle deadline of {deadline:g}s exceeded"

    return None


async def run_cycle(
    hosts: Iterable[Host],
    max_attempts: int,
    retry_delay: float,
    *,
    deadline: Optional[float] = None,
    cancel_event: Optional[asyncio.Event] = None,
    max_concurrency: Optional[int] = None,
    probe: Optional[ProbeFunc] = None,
    sleep: SleepFunc = asyncio.sleep,
) -> CycleResult:
    """Resolve every host once and collect the verdicts.

    Hosts are resolved as independent tasks so one slow or failing host
    never delays another; the cycle takes as long as the slowest host.

    Args:
        hosts: Hosts in configuration order.
        max_attempts: Attempt budget per host.
        retry_delay: Seconds between attempts for a host.
        deadline: Optional cycle time limit in seconds.
        cancel_event: Optional event that stops the cycle when set.
        max_concurrency: Optional cap on hosts resolved at the same time.
        probe: Probe coroutine function passed to the retry policy.
        sleep: Suspension passed to the retry policy.

    Returns:
        One verdict per host, in input order.

    Raises:
        ConfigurationError: If parameters or hosts are invalid. Raised
            before any probe is sent.
        CycleIncomplete: If the deadline passed or the cancel event was set
            before every host resolved.
    """
    validate_policy(max_attempts, retry_delay)
    host_list = _validate_hosts(hosts)
    if deadline is not None and deadline <= 0:
        raise ConfigurationError(f"cycle deadline must be positive, got {deadline}")
    if max_concurrency is not None and max_concurrency < 1:
        raise ConfigurationError(f"max_concurrency must be at least 1, got {max_concurrency}")

    started_at = utcnow()
    if not host_list:
        logger.info("No hosts configured, cycle is empty")
        return CycleResult(
            verdicts=(),
            max_attempts=max_attempts,
            retry_delay_seconds=retry_delay,
            started_at=started_at,
            finished_at=started_at,
        )

    semaphore = asyncio.Semaphore(max_concurrency) if max_concurrency else None

    async def _resolve(host: Host) -> HostVerdict:
        if semaphore is None:
            return await resolve_host(host, max_attempts, retry_delay, probe=probe, sleep=sleep)
        async with semaphore:
            return await resolve_host(host, max_attempts, retry_delay, probe=probe, sleep=sleep)

    logger.info(
        "Starting cycle for %d hosts (max_attempts=%d, retry_delay=%gs)",
        len(host_list),
        max_attempts,
        retry_delay,
    )

    tasks = [
        asyncio.create_task(_resolve(host), name=f"resolve-{host.address}")
        for host in host_list
    ]
    stop_waiter = (
        asyncio.create_task(cancel_event.wait(), name="cycle-cancel-event")
        if cancel_event is not None
        else None
    )

    try:
        stop_reason = await _join(tasks, stop_waiter, deadline)
    finally:
        if stop_waiter is not None:
            stop_waiter.cancel()
        leftovers = [task for task in tasks if not task.done()]
        for task in leftovers:
            task.cancel()
        if leftovers:
            await asyncio.gather(*leftovers, return_exceptions=True)

    verdicts = []
    missing = []
    for host, task in zip(host_list, tasks):
        if task.done() and not task.cancelled() and task.exception() is None:
            verdicts.append(task.result())
        else:
            missing.append(host)

    result = CycleResult(
        verdicts=tuple(verdicts),
        max_attempts=max_attempts,
        retry_delay_seconds=retry_delay,
        started_at=started_at,
        finished_at=utcnow(),
    )

    if stop_reason is not None and missing:
        logger.error(
            "%s: %d of %d hosts unresolved (%s)",
            stop_reason,
            len(missing),
            len(host_list),
            ", ".join(str(h) for h in missing),
        )
        raise CycleIncomplete(result, missing, stop_reason)

    logger.info(
        "Cycle complete in %.1fs: %d up, %d down",
        result.duration_seconds,
        len(result.up),
        len(result.down),
    )
    return result
