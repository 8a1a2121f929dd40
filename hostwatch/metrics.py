"""Prometheus metrics for hostwatch."""

from prometheus_client import Counter, Gauge, Histogram, Info

from hostwatch.version import __version__

# Application info
app_info = Info("hostwatch", "Application information")
app_info.info({
    "version": __version__,
    "service": "hostwatch",
})

# Cycle metrics
cycles_total = Counter(
    "hostwatch_cycles_total",
    "Total number of monitoring cycles",
    ["outcome"],
)

cycle_duration_seconds = Histogram(
    "hostwatch_cycle_duration_seconds",
    "Duration of monitoring cycles in seconds",
    buckets=[1, 5, 10, 30, 60, 120, 300, 600],
)

# Probe metrics
probe_attempts_total = Counter(
    "hostwatch_probe_attempts_total",
    "Total number of probe attempts",
    ["result"],
)

# Host status
host_up = Gauge(
    "hostwatch_host_up",
    "Host reachability after retries (1=up, 0=down)",
    ["address", "label"],
)

hosts_down = Gauge(
    "hostwatch_hosts_down",
    "Number of hosts down in the last completed cycle",
)

# Notification metrics
notifications_sent_total = Counter(
    "hostwatch_notifications_sent_total",
    "Total number of notifications sent",
    ["channel"],
)

notifications_failed_total = Counter(
    "hostwatch_notifications_failed_total",
    "Total number of failed notification attempts",
    ["channel"],
)
