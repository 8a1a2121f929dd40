"""Main entry point for hostwatch."""

import argparse
import asyncio
import logging
import signal
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from hostwatch.config import settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_HOSTS_DOWN = 1
EXIT_CONFIG_ERROR = 2
EXIT_INCOMPLETE = 3


def configure_logging(level: Optional[str] = None) -> None:
    """Configure logging based on settings.

    Logs are written to both stdout (for container logs) and a rotating
    log file.
    """
    log_level = getattr(logging, (level or settings.log_level).upper())

    log_dir = settings.data_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "app.log"

    stdout_handler = logging.StreamHandler(sys.stdout)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=3,
        encoding="utf-8",
    )

    if settings.log_format == "json":
        from pythonjsonlogger import jsonlogger

        class CustomJsonFormatter(jsonlogger.JsonFormatter):
            """JSON formatter with service fields."""

            def add_fields(self, log_record, record, message_dict):
                super().add_fields(log_record, record, message_dict)
                log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
                log_record["level"] = record.levelname
                log_record["logger"] = record.name
                log_record["service"] = "hostwatch"

        formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s"
        )
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
    stdout_handler.setFormatter(formatter)
    file_handler.setFormatter(formatter)

    logging.root.handlers = []
    logging.root.addHandler(stdout_handler)
    logging.root.addHandler(file_handler)
    logging.root.setLevel(log_level)

    # Reduce noise from third-party loggers
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("aiosmtplib").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def _log_startup() -> None:
    from hostwatch.version import __version__

    logger.info("Starting hostwatch v%s", __version__)
    logger.info(
        "Retry policy: %d attempts, %gs apart, %gs ping timeout",
        settings.max_attempts,
        settings.retry_delay_seconds,
        settings.ping_timeout_seconds,
    )
    logger.info("SMTP configured: %s", settings.smtp_configured)
    logger.info("Webhook configured: %s", settings.webhook_configured)
    logger.info("Log format: %s", settings.log_format)


def run_once(notify: bool = True) -> int:
    """Run a single cycle.

    Returns:
        Process exit code.
    """
    from hostwatch.monitor.aggregator import build_notification
    from hostwatch.monitor.errors import ConfigurationError, CycleIncomplete
    from hostwatch.monitor.service import run_monitor_cycle

    try:
        result = asyncio.run(run_monitor_cycle(notify=notify))
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG_ERROR
    except CycleIncomplete as e:
        logger.error("%s", e)
        return EXIT_INCOMPLETE

    for verdict in result.verdicts:
        print(f"{verdict.status.value.upper():5} {verdict.host} (attempts: {verdict.attempts_made})")

    if not notify:
        payload = build_notification(result, settings.recipient_list)
        if payload is not None:
            print()
            print(payload.subject)
            for line in payload.body_lines:
                print(f"  {line}")

    return EXIT_HOSTS_DOWN if result.has_down else EXIT_OK


async def _run_forever(interval_minutes: float) -> None:
    from hostwatch.scheduler.job_scheduler import shutdown_scheduler, start_scheduler

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    start_scheduler(interval_minutes)
    try:
        await stop.wait()
    finally:
        shutdown_scheduler()


def run_forever(interval_minutes: Optional[float] = None) -> int:
    """Run a cycle every interval until interrupted."""
    from hostwatch.monitor.errors import ConfigurationError

    # Fail fast on bad host configuration instead of inside every job
    try:
        hosts = settings.host_list
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_CONFIG_ERROR

    interval = interval_minutes if interval_minutes is not None else settings.check_interval_minutes
    if interval <= 0:
        logger.error("Configuration error: interval must be positive, got %g", interval)
        return EXIT_CONFIG_ERROR

    logger.info("Monitoring %d hosts every %g minutes", len(hosts), interval)
    try:
        asyncio.run(_run_forever(interval))
    except KeyboardInterrupt:
        pass
    logger.info("Stopped")
    return EXIT_OK


def serve() -> int:
    """Run the scheduler behind the FastAPI health and status API."""
    import uvicorn

    from hostwatch.web.app import app

    uvicorn.run(
        app,
        host=settings.web_host,
        port=settings.web_port,
        log_level=settings.log_level.lower(),
    )
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hostwatch",
        description="Ping a fixed set of hosts, retry failures, alert once per cycle.",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    once = sub.add_parser("once", help="Run a single monitoring cycle")
    once.add_argument(
        "--no-notify",
        action="store_true",
        help="Print the alert instead of sending it",
    )

    forever = sub.add_parser("forever", help="Run a cycle every interval")
    forever.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Minutes between cycles (default: CHECK_INTERVAL_MINUTES)",
    )

    sub.add_parser("serve", help="Run the scheduler with the HTTP health/status API")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the application."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    _log_startup()

    if args.command == "once":
        return run_once(notify=not args.no_notify)
    if args.command == "forever":
        return run_forever(args.interval)
    return serve()


if __name__ == "__main__":
    sys.exit(main())
