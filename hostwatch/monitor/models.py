"""Data types shared by the prober, retry policy, cycle runner and aggregator."""

from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class UnreachableReason(str, Enum):
    """Why a probe attempt did not get a reply."""

    TIMEOUT = "timeout"
    RESOLUTION = "resolution"
    PERMISSION = "permission"
    TRANSPORT = "transport"


class HostStatus(str, Enum):
    UP = "up"
    DOWN = "down"


class Host(BaseModel):
    """A monitored host, identified by its address."""

    model_config = ConfigDict(frozen=True)

    address: str
    label: str = ""

    @model_validator(mode="before")
    @classmethod
    def _default_label(cls, data):
        if isinstance(data, dict) and not data.get("label"):
            data = {**data, "label": data.get("address", "")}
        return data

    def __str__(self) -> str:
        if self.label == self.address:
            return self.address
        return f"{self.label} ({self.address})"


class ProbeOutcome(BaseModel):
    """Result of a single echo request."""

    model_config = ConfigDict(frozen=True)

    reachable: bool
    reason: Optional[UnreachableReason] = None
    detail: str = ""
    latency_ms: Optional[float] = None
    timestamp: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_reason(self) -> "ProbeOutcome":
        if self.reachable and self.reason is not None:
            raise ValueError("reachable outcome cannot carry a reason")
        if not self.reachable and self.reason is None:
            raise ValueError("unreachable outcome requires a reason")
        return self

    @classmethod
    def ok(cls, latency_ms: Optional[float] = None, detail: str = "") -> "ProbeOutcome":
        return cls(reachable=True, latency_ms=latency_ms, detail=detail)

    @classmethod
    def failed(cls, reason: UnreachableReason, detail: str = "") -> "ProbeOutcome":
        return cls(reachable=False, reason=reason, detail=detail)


class HostVerdict(BaseModel):
    """Final state of one host for one cycle."""

    model_config = ConfigDict(frozen=True)

    host: Host
    status: HostStatus
    attempts_made: int
    first_failure_at: Optional[datetime] = None
    last_attempt_at: datetime
    last_reason: Optional[UnreachableReason] = None
    latency_ms: Optional[float] = None

    @property
    def is_up(self) -> bool:
        return self.status == HostStatus.UP

    @property
    def is_down(self) -> bool:
        return self.status == HostStatus.DOWN


class CycleResult(BaseModel):
    """Verdicts for one monitoring cycle, in configuration order."""

    model_config = ConfigDict(frozen=True)

    verdicts: Tuple[HostVerdict, ...] = ()
    max_attempts: int
    retry_delay_seconds: float
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: datetime = Field(default_factory=utcnow)

    @property
    def down(self) -> List[HostVerdict]:
        return [v for v in self.verdicts if v.is_down]

    @property
    def up(self) -> List[HostVerdict]:
        return [v for v in self.verdicts if v.is_up]

    @property
    def has_down(self) -> bool:
        return any(v.is_down for v in self.verdicts)

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    def __len__(self) -> int:
        return len(self.verdicts)


class NotificationPayload(BaseModel):
    """Pre-delivery representation of an alert."""

    model_config = ConfigDict(frozen=True)

    subject: str
    body_lines: Tuple[str, ...]
    recipients: FrozenSet[str]
    timestamp: str

    @property
    def body(self) -> str:
        return "\n".join(self.body_lines)
