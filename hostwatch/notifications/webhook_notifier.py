"""Webhook notifications for Discord and Slack."""

import logging
from typing import Dict

import httpx

from hostwatch.config import settings
from hostwatch.monitor.models import NotificationPayload

logger = logging.getLogger(__name__)

# Discord rejects embed field values over 1024 characters
MAX_FIELD_LINES = 15


def _host_lines(payload: NotificationPayload) -> str:
    lines = list(payload.body_lines[:MAX_FIELD_LINES])
    hidden = len(payload.body_lines) - len(lines)
    if hidden > 0:
        lines.append(f"... and {hidden} more")
    return "\n".join(lines)


def _build_discord_embed(payload: NotificationPayload) -> Dict:
    """Build Discord embed format."""
    return {
        "embeds": [{
            "title": payload.subject,
            "description": f"**{len(payload.body_lines)}** host(s) unreachable after retries.",
            "color": 16711680,  # Red
            "timestamp": payload.timestamp,
            "fields": [
                {
                    "name": "Unreachable Hosts",
                    "value": _host_lines(payload)[:1024],
                    "inline": False,
                },
            ],
        }],
    }


def _build_slack_payload(payload: NotificationPayload) -> Dict:
    """Build Slack message format."""
    return {
        "attachments": [{
            "color": "#FF0000",
            "title": payload.subject,
            "text": _host_lines(payload),
            "fields": [
                {
                    "title": "Hosts Down",
                    "value": str(len(payload.body_lines)),
                    "short": True,
                },
            ],
            "footer": f"Cycle finished: {payload.timestamp}",
        }],
    }


def _is_slack_webhook(url: str) -> bool:
    """Detect if webhook URL is for Slack."""
    return "slack.com" in url or "hooks.slack" in url


async def send_webhook_notification(payload: NotificationPayload) -> bool:
    """Send webhook alert (Discord/Slack compatible).

    Args:
        payload: Alert to deliver.

    Returns:
        True if webhook sent successfully, False otherwise.
    """
    if not settings.webhook_configured:
        logger.debug("Webhook not configured, skipping notification")
        return False

    webhook_url = settings.webhook_url

    # Build payload based on webhook type
    if _is_slack_webhook(webhook_url):
        body = _build_slack_payload(payload)
    else:
        # Default to Discord format
        body = _build_discord_embed(payload)

    try:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                webhook_url,
                json=body,
                timeout=10.0,
            )
            response.raise_for_status()

    except httpx.HTTPStatusError as e:
        logger.error("Webhook HTTP error: %s - %s", e.response.status_code, e.response.text[:200])
        return False

    except Exception as e:
        logger.error("Failed to send webhook: %s", e)
        return False

    logger.info(
        "Webhook alert sent to %s",
        "Slack" if _is_slack_webhook(webhook_url) else "Discord",
    )
    return True
