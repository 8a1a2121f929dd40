"""Reduce a cycle result to at most one notification payload."""

from typing import Iterable, Optional

from hostwatch.monitor.models import CycleResult, HostVerdict, NotificationPayload

ALERT_SUBJECT = "ALERT: hosts unreachable"


def format_verdict_line(verdict: HostVerdict, retry_delay: float) -> str:
    """One human-readable line for a Down verdict."""
    attempts = verdict.attempts_made
    line = (
        f"{verdict.host.label} ({verdict.host.address}) unreachable after "
        f"{attempts} attempt{'s' if attempts != 1 else ''} at {retry_delay:g}s interval; "
        f"last attempt {verdict.last_attempt_at.isoformat()}"
    )
    if verdict.last_reason is not None:
        line += f" [{verdict.last_reason.value}]"
    return line


def build_notification(
    result: CycleResult,
    recipients: Iterable[str],
) -> Optional[NotificationPayload]:
    """Build the alert for a cycle.

    Args:
        result: Verdicts of one cycle.
        recipients: Configured notification addresses.

    Returns:
        None if no host is down, otherwise a payload with one body line per
        down host in cycle order.
    """
    down = result.down
    if not down:
        return None

    return NotificationPayload(
        subject=ALERT_SUBJECT,
        body_lines=tuple(format_verdict_line(v, result.retry_delay_seconds) for v in down),
        recipients=frozenset(r.strip() for r in recipients if r and r.strip()),
        timestamp=result.finished_at.isoformat(),
    )
