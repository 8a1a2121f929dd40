"""Single-attempt ICMP reachability probe."""

import asyncio
import logging
import platform
import re
import shutil
import socket
import time
from typing import Optional

from hostwatch.config import settings
from hostwatch.monitor.errors import ProbeError
from hostwatch.monitor.models import Host, ProbeOutcome, UnreachableReason

logger = logging.getLogger(__name__)

# Extra time granted to the ping process on top of its own -W timeout
PROCESS_GRACE_SECONDS = 1.0

_RTT_PATTERN = re.compile(r"time[=<]\s*([\d.]+)\s*ms")
_PERMISSION_HINTS = ("permission denied", "operation not permitted")


async def resolve_address(address: str, timeout: float) -> str:
    """Resolve hostname to IP address.

    Args:
        address: Hostname or IP address.
        timeout: Resolution timeout in seconds.

    Returns:
        First resolved IP address.

    Raises:
        ProbeError: With reason RESOLUTION if the name does not resolve.
    """
    loop = asyncio.get_running_loop()
    try:
        result = await asyncio.wait_for(
            loop.getaddrinfo(
                address,
                None,
                family=socket.AF_UNSPEC,
                type=socket.SOCK_STREAM,
            ),
            timeout=timeout,
        )
    except socket.gaierror as e:
        raise ProbeError(UnreachableReason.RESOLUTION, f"DNS resolution failed: {e}") from e
    except asyncio.TimeoutError as e:
        raise ProbeError(UnreachableReason.RESOLUTION, "DNS resolution timed out") from e

    if not result:
        raise ProbeError(UnreachableReason.RESOLUTION, "DNS returned no addresses")

    ip = result[0][4][0]
    logger.debug("Resolved %s to %s", address, ip)
    return ip


def build_ping_command(ping_cmd: str, target: str, timeout: float) -> list:
    """Build a one-packet ping command line.

    Linux uses -W in seconds, macOS uses -W in milliseconds.
    """
    if platform.system() == "Darwin":
        return [ping_cmd, "-c", "1", "-W", str(int(timeout * 1000)), target]
    return [ping_cmd, "-c", "1", "-W", str(max(1, int(round(timeout)))), target]


def _classify_failure(returncode: int, stderr: str) -> UnreachableReason:
    """Map a non-zero ping exit to an unreachable reason."""
    lowered = stderr.lower()
    if any(hint in lowered for hint in _PERMISSION_HINTS):
        return UnreachableReason.PERMISSION
    # Linux: 1 = no reply. macOS: 2 = sent but no reply.
    if returncode == 1 or (returncode == 2 and platform.system() == "Darwin"):
        return UnreachableReason.TIMEOUT
    return UnreachableReason.TRANSPORT


def _parse_rtt(stdout: str) -> Optional[float]:
    match = _RTT_PATTERN.search(stdout)
    if match:
        try:
            return float(match.group(1))
        except ValueError:
            return None
    return None


async def send_echo(target: str, timeout: float) -> float:
    """Send one echo request using the system ping command.

    The system ping works unprivileged in Docker containers with NET_RAW
    capability, unlike raw sockets.

    Returns:
        Round-trip latency in milliseconds.

    Raises:
        ProbeError: If no reply arrives or ping cannot run.
    """
    ping_cmd = shutil.which("ping")
    if not ping_cmd:
        raise ProbeError(UnreachableReason.TRANSPORT, "ping command not found in PATH")

    cmd = build_ping_command(ping_cmd, target, timeout)
    started = time.monotonic()

    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except PermissionError as e:
        raise ProbeError(UnreachableReason.PERMISSION, f"cannot execute ping: {e}") from e
    except OSError as e:
        raise ProbeError(UnreachableReason.TRANSPORT, f"cannot execute ping: {e}") from e

    try:
        stdout, stderr = await asyncio.wait_for(
            proc.communicate(),
            timeout=timeout + PROCESS_GRACE_SECONDS,
        )
    except asyncio.TimeoutError as e:
        raise ProbeError(
            UnreachableReason.TIMEOUT,
            f"no reply within {timeout:g}s",
        ) from e
    finally:
        # Reap the child on timeout and on cancellation
        if proc.returncode is None:
            try:
                proc.kill()
                await proc.wait()
            except ProcessLookupError:
                pass

    elapsed_ms = (time.monotonic() - started) * 1000
    out_text = (stdout or b"").decode("utf-8", errors="replace")
    err_text = (stderr or b"").decode("utf-8", errors="replace").strip()

    if proc.returncode == 0:
        rtt = _parse_rtt(out_text)
        return rtt if rtt is not None else elapsed_ms

    reason = _classify_failure(proc.returncode, err_text)
    detail = err_text or f"ping exited with code {proc.returncode}"
    raise ProbeError(reason, detail)


async def probe_host(host: Host, timeout: Optional[float] = None) -> ProbeOutcome:
    """Probe a host once.

    Never raises for network failures: every failure is returned as an
    unreachable outcome. Cancellation still propagates.

    Args:
        host: Host to probe.
        timeout: Reply timeout in seconds. Defaults to the configured ping timeout.

    Returns:
        Reachable outcome with latency, or unreachable outcome with a reason.
    """
    if timeout is None:
        timeout = settings.ping_timeout_seconds

    try:
        ip = await resolve_address(host.address, timeout)
        latency_ms = await send_echo(ip, timeout)
    except ProbeError as e:
        logger.debug("Probe of %s failed (%s): %s", host, e.reason.value, e.detail)
        return ProbeOutcome.failed(e.reason, e.detail)
    except Exception as e:
        logger.error("Unexpected error probing %s: %s", host, e)
        return ProbeOutcome.failed(UnreachableReason.TRANSPORT, str(e))

    logger.debug("Probe of %s successful (%.1f ms)", host, latency_ms)
    return ProbeOutcome.ok(latency_ms=latency_ms)
