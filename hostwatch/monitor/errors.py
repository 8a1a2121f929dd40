"""Exception types raised by the monitoring core."""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from hostwatch.monitor.models import CycleResult, Host, UnreachableReason


class MonitorError(Exception):
    """Base class for monitoring errors."""


class ConfigurationError(MonitorError, ValueError):
    """Host, recipient or retry parameters are invalid.

    Raised before any probe is sent.
    """


class ProbeError(MonitorError):
    """A single probe attempt failed at the network level.

    Only used inside the prober, which folds it into an unreachable outcome.
    """

    def __init__(self, reason: "UnreachableReason", detail: str = ""):
        super().__init__(detail or reason.value)
        self.reason = reason
        self.detail = detail


class CycleIncomplete(MonitorError):
    """A cycle ended (deadline or cancellation) before every host resolved.

    Attributes:
        partial: Result holding only the verdicts that did complete.
        missing: Hosts that have no verdict.
    """

    def __init__(
        self,
        partial: "CycleResult",
        missing: "List[Host]",
        reason: Optional[str] = None,
    ):
        self.partial = partial
        self.missing = list(missing)
        self.reason = reason or "cycle incomplete"
        super().__init__(
            f"{self.reason}: {len(self.missing)} of "
            f"{len(self.missing) + len(partial.verdicts)} hosts unresolved"
        )
