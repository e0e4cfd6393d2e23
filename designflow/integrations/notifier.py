"""
Notification delivery for new high-priority attention items.

Notifications are posted to a chat webhook (Discord-compatible JSON payload)
when NOTIFICATION_WEBHOOK_URL is set, and logged otherwise. Delivery is
fire-and-forget: failures are logged and never reach the sync pipeline.
"""

import logging
from typing import Optional, Tuple

import aiohttp

from config import settings
from ..utils.background_tasks import create_safe_task
from ..utils.retry import with_webhook_retry, RetryExhausted

logger = logging.getLogger(__name__)

EMBED_COLOR = 0xE67E22


class Notifier:
    """Formats and dispatches attention notifications."""

    def __init__(self, webhook_url: Optional[str] = None):
        self.webhook_url = settings.notification_webhook_url if webhook_url is None else webhook_url

    @staticmethod
    def should_notify(priority: int, threshold: int) -> bool:
        return priority >= threshold

    @staticmethod
    def format_notification(title: str, project_name: str) -> Tuple[str, str]:
        """Returns (title, message)."""
        return f"{settings.app_name}: {project_name}", title

    @with_webhook_retry
    async def _post_webhook(self, payload: dict) -> int:
        async with aiohttp.ClientSession() as session:
            async with session.post(self.webhook_url, json=payload) as response:
                if response.status >= 400:
                    error = await response.text()
                    logger.error(f"Notification webhook error: {response.status} - {error}")
                return response.status

    async def send(self, title: str, message: str, url: Optional[str] = None) -> bool:
        """
        Deliver one notification.

        Returns:
            True if the webhook accepted it; False when unconfigured or failed
        """
        if not self.webhook_url:
            logger.info(f"Notification (no webhook configured): {title} - {message}")
            return False

        embed = {"title": title, "description": message, "color": EMBED_COLOR}
        if url:
            embed["url"] = url

        try:
            status = await self._post_webhook({"embeds": [embed]})
        except (aiohttp.ClientError, RetryExhausted) as e:
            logger.error(f"Error sending notification '{title}': {e}")
            return False

        return status < 400

    def dispatch(self, title: str, message: str, url: Optional[str] = None) -> None:
        """Send in the background without awaiting delivery."""
        create_safe_task(self.send(title, message, url), f"notify: {message[:60]}")


# Singleton
_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Get the notifier singleton."""
    global _notifier
    if _notifier is None:
        _notifier = Notifier()
    return _notifier
