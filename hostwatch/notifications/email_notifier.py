"""Email notifications via SMTP."""

import html
import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from hostwatch.config import settings
from hostwatch.monitor.models import NotificationPayload

logger = logging.getLogger(__name__)


def _build_text_body(payload: NotificationPayload) -> str:
    """Plain-text alternative of the alert."""
    lines = [
        "The following hosts did not answer ICMP echo after all retries:",
        "",
    ]
    lines.extend(f"  - {line}" for line in payload.body_lines)
    lines.extend(["", f"Cycle finished: {payload.timestamp}"])
    return "\n".join(lines)


def _build_html_body(payload: NotificationPayload) -> str:
    """HTML version of the alert."""
    items = "".join(
        f"<li style='padding: 5px 0;'>{html.escape(line)}</li>"
        for line in payload.body_lines
    )
    count = len(payload.body_lines)

    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="utf-8">
    </head>
    <body style='font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;'>
        <div style='background-color: #e74c3c; color: white; padding: 20px; border-radius: 5px 5px 0 0;'>
            <h1 style='margin: 0;'>Hosts Unreachable</h1>
        </div>

        <div style='background-color: #f9f9f9; padding: 20px; border: 1px solid #ddd;'>
            <p style='font-size: 18px;'>
                {count} host{'s' if count != 1 else ''} did not answer ICMP echo after all retries:
            </p>

            <ul style='padding-left: 20px;'>
                {items}
            </ul>

            <p style='color: #7f8c8d; font-size: 12px; margin-top: 20px;'>
                Cycle finished: {html.escape(payload.timestamp)}
            </p>
        </div>

        <div style='background-color: #ecf0f1; padding: 10px; text-align: center; border-radius: 0 0 5px 5px;'>
            <p style='margin: 0; color: #7f8c8d; font-size: 12px;'>
                hostwatch - Automated Reachability Monitoring
            </p>
        </div>
    </body>
    </html>
    """


def build_message(payload: NotificationPayload) -> MIMEMultipart:
    """Build the MIME message for a payload."""
    message = MIMEMultipart("alternative")
    message["Subject"] = payload.subject
    message["From"] = settings.smtp_from
    message["To"] = ", ".join(sorted(payload.recipients))
    message.attach(MIMEText(_build_text_body(payload), "plain"))
    message.attach(MIMEText(_build_html_body(payload), "html"))
    return message


async def send_email_notification(payload: NotificationPayload) -> bool:
    """Send an alert email.

    Args:
        payload: Alert to deliver.

    Returns:
        True if email sent successfully, False otherwise.
    """
    if not settings.smtp_configured:
        logger.debug("SMTP not configured, skipping email notification")
        return False

    if not payload.recipients:
        logger.warning("Alert has no recipients, skipping email notification")
        return False

    message = build_message(payload)

    try:
        await aiosmtplib.send(
            message,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            start_tls=settings.smtp_starttls,
        )
    except Exception as e:
        logger.error("Failed to send alert email: %s", e)
        return False

    logger.info("Alert email sent to %s", message["To"])
    return True
