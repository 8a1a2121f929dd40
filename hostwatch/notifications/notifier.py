"""Main notification orchestrator."""

import logging
from typing import Dict

from hostwatch.metrics import notifications_failed_total, notifications_sent_total
from hostwatch.monitor.models import NotificationPayload
from hostwatch.notifications.email_notifier import send_email_notification
from hostwatch.notifications.webhook_notifier import send_webhook_notification

logger = logging.getLogger(__name__)


async def send_notification(payload: NotificationPayload) -> Dict[str, bool]:
    """Send an alert through all configured channels.

    Delivery failures are logged and counted, never raised.

    Args:
        payload: Alert built for a cycle.

    Returns:
        Mapping of channel name to delivery success.
    """
    results = {
        "email": await send_email_notification(payload),
        "webhook": await send_webhook_notification(payload),
    }

    sent = [name for name, success in results.items() if success]
    failed = [name for name, success in results.items() if not success]

    for name, success in results.items():
        if success:
            notifications_sent_total.labels(channel=name).inc()
        else:
            notifications_failed_total.labels(channel=name).inc()

    if sent:
        logger.info("Notifications sent via: %s", ", ".join(sent))
    if failed:
        logger.warning("Notifications failed/skipped: %s", ", ".join(failed))
    if not sent:
        logger.error("Alert was not delivered by any channel: %s", payload.subject)

    return results
