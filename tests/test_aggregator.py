"""Tests for building the consolidated alert."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from conftest import T0, make_verdict
from hostwatch.monitor.aggregator import ALERT_SUBJECT, build_notification, format_verdict_line
from hostwatch.monitor.models import (
    CycleResult,
    Host,
    HostStatus,
    ProbeOutcome,
    UnreachableReason,
)


def _result(*verdicts, delay=5):
    return CycleResult(
        verdicts=verdicts,
        max_attempts=3,
        retry_delay_seconds=delay,
        started_at=T0,
        finished_at=T0,
    )


def test_no_payload_when_all_up():
    result = _result(make_verdict("10.0.0.1"), make_verdict("10.0.0.2", attempts=2))
    assert build_notification(result, ["ops@example.com"]) is None


def test_no_payload_for_empty_result():
    assert build_notification(_result(), ["ops@example.com"]) is None


def test_one_line_per_down_host(sample_result):
    payload = build_notification(sample_result, ["ops@example.com", "noc@example.com"])

    assert payload is not None
    assert payload.subject == ALERT_SUBJECT
    assert len(payload.body_lines) == len(sample_result.down) == 1
    assert payload.recipients == frozenset({"ops@example.com", "noc@example.com"})
    assert payload.timestamp == sample_result.finished_at.isoformat()


def test_line_contains_operator_context():
    verdict = make_verdict("10.0.0.2", "NAS", HostStatus.DOWN, attempts=3)

    line = format_verdict_line(verdict, 5)

    assert line.startswith("NAS (10.0.0.2) unreachable after 3 attempts at 5s interval")
    assert verdict.last_attempt_at.isoformat() in line
    assert line.endswith("[timeout]")


def test_line_singular_attempt():
    verdict = make_verdict("10.0.0.2", "NAS", HostStatus.DOWN, attempts=1, reason=UnreachableReason.RESOLUTION)

    line = format_verdict_line(verdict, 0.5)

    assert "after 1 attempt at 0.5s interval" in line
    assert line.endswith("[resolution]")


def test_body_follows_cycle_order():
    result = _result(
        make_verdict("10.0.0.3", "C", HostStatus.DOWN, attempts=3),
        make_verdict("10.0.0.1", "A"),
        make_verdict("10.0.0.2", "B", HostStatus.DOWN, attempts=3),
    )

    payload = build_notification(result, ["ops@example.com"])

    assert [line.split(" ", 1)[0] for line in payload.body_lines] == ["C", "B"]


def test_recipients_deduplicated_and_blank_dropped():
    result = _result(make_verdict("10.0.0.1", status=HostStatus.DOWN, attempts=3))

    payload = build_notification(result, ["a@example.com", " a@example.com ", "", "b@example.com"])

    assert payload.recipients == frozenset({"a@example.com", "b@example.com"})


def test_build_is_repeatable(sample_result):
    assert build_notification(sample_result, ["x@example.com"]) == build_notification(
        sample_result, ["x@example.com"]
    )


class TestModels:
    """Invariants of the core data types."""

    def test_host_label_defaults_to_address(self):
        host = Host(address="10.0.0.1")
        assert host.label == "10.0.0.1"
        assert str(host) == "10.0.0.1"
        assert str(Host(address="10.0.0.1", label="Router")) == "Router (10.0.0.1)"

    def test_host_is_immutable(self):
        host = Host(address="10.0.0.1")
        with pytest.raises(ValidationError):
            host.address = "10.0.0.2"

    def test_reachable_outcome_cannot_have_reason(self):
        with pytest.raises(ValidationError):
            ProbeOutcome(reachable=True, reason=UnreachableReason.TIMEOUT)

    def test_unreachable_outcome_requires_reason(self):
        with pytest.raises(ValidationError):
            ProbeOutcome(reachable=False)

    def test_outcome_constructors(self):
        ok = ProbeOutcome.ok(latency_ms=4.0)
        failed = ProbeOutcome.failed(UnreachableReason.PERMISSION, "not permitted")

        assert ok.reachable and ok.latency_ms == 4.0
        assert not failed.reachable and failed.reason == UnreachableReason.PERMISSION
        assert failed.timestamp.tzinfo is not None

    def test_cycle_result_partitions(self, sample_result):
        assert [v.host.label for v in sample_result.up] == ["Router", "Printer"]
        assert [v.host.label for v in sample_result.down] == ["NAS"]
        assert sample_result.has_down is True
        assert sample_result.duration_seconds == 12
