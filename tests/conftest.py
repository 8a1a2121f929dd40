"""Shared pytest fixtures."""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Set test environment before importing app modules
os.environ.setdefault("HOSTS", "")
os.environ.setdefault(
    "DATA_DIR",
    str(Path(__file__).resolve().parents[1] / "data" / "test_data"),
)

from hostwatch.monitor.models import (  # noqa: E402
    CycleResult,
    Host,
    HostStatus,
    HostVerdict,
    ProbeOutcome,
    UnreachableReason,
)

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class ScriptedProbe:
    """Probe double that replays outcomes per host address.

    Each address maps to a list of booleans (True = reachable). The last
    value repeats once the script runs out. Unknown addresses always fail.
    """

    def __init__(self, scripts=None, latency=0.0):
        self.scripts = {k: list(v) for k, v in (scripts or {}).items()}
        self.latency = latency
        self.calls = []

    async def __call__(self, host):
        self.calls.append(host.address)
        if self.latency:
            await asyncio.sleep(self.latency)
        script = self.scripts.get(host.address, [False])
        reachable = script.pop(0) if len(script) > 1 else script[0]
        if reachable:
            return ProbeOutcome.ok(latency_ms=1.5)
        return ProbeOutcome.failed(UnreachableReason.TIMEOUT, "no reply")

    def count(self, address):
        return self.calls.count(address)


class RecordingSleep:
    """Sleep double that records delays without waiting."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_probe():
    return ScriptedProbe


def make_verdict(address, label=None, status=HostStatus.UP, attempts=1, reason=None):
    failed = status == HostStatus.DOWN
    return HostVerdict(
        host=Host(address=address, label=label or ""),
        status=status,
        attempts_made=attempts,
        first_failure_at=T0 if failed else None,
        last_attempt_at=T0 + timedelta(seconds=attempts),
        last_reason=reason or (UnreachableReason.TIMEOUT if failed else None),
    )


@pytest.fixture
def sample_result():
    """Cycle with one down host between two up hosts."""
    return CycleResult(
        verdicts=(
            make_verdict("10.0.0.1", "Router"),
            make_verdict("10.0.0.2", "NAS", HostStatus.DOWN, attempts=3),
            make_verdict("printer.lan", "Printer", attempts=2),
        ),
        max_attempts=3,
        retry_delay_seconds=5,
        started_at=T0,
        finished_at=T0 + timedelta(seconds=12),
    )
