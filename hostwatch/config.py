"""Application configuration from environment variables."""

import ipaddress
import os
import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings

from hostwatch.monitor.errors import ConfigurationError
from hostwatch.monitor.models import Host

# RFC 1123 hostname pattern (allows digits at start)
HOSTNAME_PATTERN = re.compile(
    r'^[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?(\.[a-zA-Z0-9]([a-zA-Z0-9\-]{0,61}[a-zA-Z0-9])?)*$'
)
IPV4_PATTERN = re.compile(r'^(\d{1,3}\.){3}\d{1,3}$')
DANGEROUS_CHARS = set(';&|`$(){}[]<>\\\'\"!#*?~')


def validate_address(address: str) -> str:
    """Validate a hostname/IP before it is handed to the ping command.

    Accepts IPv4 and IPv6 literals and RFC 1123 hostnames. Shell
    metacharacters are rejected.

    Raises:
        ConfigurationError: If the address is empty or malformed.
    """
    address = address.strip()
    if not address:
        raise ConfigurationError("host address cannot be empty")
    if len(address) > 253:
        raise ConfigurationError(f"hostname too long (max 253 chars): {address[:20]}...")
    if any(c in address for c in DANGEROUS_CHARS):
        raise ConfigurationError(f"hostname contains invalid characters: {address!r}")
    try:
        ipaddress.ip_address(address)
        return address
    except ValueError:
        pass
    if IPV4_PATTERN.match(address):
        if any(int(octet) > 255 for octet in address.split(".")):
            raise ConfigurationError(f"invalid IPv4 address: {address}")
        return address
    if not HOSTNAME_PATTERN.match(address):
        raise ConfigurationError(f"invalid hostname format: {address!r}")
    return address


def parse_host_entry(entry: str) -> Optional[Host]:
    """Parse one host entry.

    Accepted forms: ``address``, ``address=Label``, ``address,Label`` and
    ``address Label``. Blank entries and ``#`` comments yield None.
    """
    entry = entry.strip()
    if not entry or entry.startswith("#"):
        return None

    for sep in ("=", ","):
        if sep in entry:
            address, label = entry.split(sep, 1)
            break
    else:
        parts = entry.split(None, 1)
        address = parts[0]
        label = parts[1] if len(parts) > 1 else ""

    return Host(address=validate_address(address), label=label.strip())


def read_hosts_file(path: Path) -> List[Host]:
    """Read hosts from a file, one entry per line."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"cannot read hosts file {path}: {e}") from e

    hosts = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        try:
            host = parse_host_entry(line)
        except ConfigurationError as e:
            raise ConfigurationError(f"{path}:{lineno}: {e}") from e
        if host is not None:
            hosts.append(host)
    return hosts


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Hosts: "10.0.0.1=Router,nas.lan=NAS,10.0.0.3"
    hosts: str = ""
    hosts_file: Optional[Path] = None

    # Retry policy
    max_attempts: int = 3
    retry_delay_seconds: float = 10.0
    ping_timeout_seconds: float = 2.0

    # Cycle limits
    cycle_timeout_seconds: float = 0  # 0 disables the deadline
    max_concurrent_hosts: int = 64    # 0 means one task per host, unbounded
    check_interval_minutes: int = 15

    # Notification recipients (comma-separated), merged with smtp_to
    notify_recipients: Optional[str] = None

    # SMTP settings
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_from: Optional[str] = None
    smtp_to: Optional[str] = None
    smtp_starttls: bool = True

    # Webhook settings
    webhook_url: Optional[str] = None

    # Web server
    web_host: str = "0.0.0.0"
    web_port: int = 8080

    # Data storage (logs only)
    data_dir: Path = Path("./data")

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # "text" or "json"

    # Timezone for display (reads from TZ env var, defaults to UTC)
    display_timezone: str = os.getenv("TZ", "UTC")

    @property
    def tz(self) -> ZoneInfo:
        """Get timezone object for configured display timezone."""
        try:
            return ZoneInfo(self.display_timezone)
        except Exception:
            return ZoneInfo("UTC")

    @property
    def host_list(self) -> List[Host]:
        """Parse configured hosts, in configuration order.

        Entries from HOSTS come first, then HOSTS_FILE. Duplicate addresses
        keep their first occurrence.

        Raises:
            ConfigurationError: If an entry is malformed or the file is unreadable.
        """
        hosts: List[Host] = []
        for entry in self.hosts.split(","):
            host = parse_host_entry(entry)
            if host is not None:
                hosts.append(host)

        if self.hosts_file:
            hosts.extend(read_hosts_file(Path(self.hosts_file)))

        seen = set()
        unique = []
        for host in hosts:
            if host.address in seen:
                continue
            seen.add(host.address)
            unique.append(host)
        return unique

    @property
    def recipient_list(self) -> List[str]:
        """Union of NOTIFY_RECIPIENTS and SMTP_TO, first occurrence order."""
        recipients: List[str] = []
        for raw in (self.notify_recipients, self.smtp_to):
            if not raw:
                continue
            for address in raw.split(","):
                address = address.strip()
                if address and address not in recipients:
                    recipients.append(address)
        return recipients

    @property
    def cycle_deadline(self) -> Optional[float]:
        """Cycle deadline in seconds, or None when disabled."""
        if self.cycle_timeout_seconds and self.cycle_timeout_seconds > 0:
            return self.cycle_timeout_seconds
        return None

    @property
    def concurrency_limit(self) -> Optional[int]:
        if self.max_concurrent_hosts and self.max_concurrent_hosts > 0:
            return self.max_concurrent_hosts
        return None

    @property
    def smtp_configured(self) -> bool:
        """Check if SMTP is properly configured."""
        return all([
            self.smtp_host,
            self.smtp_from,
            self.recipient_list,
        ])

    @property
    def webhook_configured(self) -> bool:
        """Check if webhook is configured."""
        return bool(self.webhook_url)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore unknown environment variables


# Global settings instance
settings = Settings()


def to_local_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert UTC datetime to configured timezone ISO string.

    Args:
        dt: Datetime object (assumed UTC if naive).

    Returns:
        ISO format string with timezone offset, or None if input is None.
    """
    if dt is None:
        return None

    # Assume naive datetime is UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo("UTC"))

    # Convert to configured timezone
    local_dt = dt.astimezone(settings.tz)
    return local_dt.isoformat()
