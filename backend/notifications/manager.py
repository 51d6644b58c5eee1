"""Notification Manager — central dispatcher for delivery channels."""

import logging
from typing import Optional

from notifications.channels import (
    BaseChannel,
    DeliveryResult,
    EmailChannel,
    HttpEmailChannel,
    Notification,
    NotificationChannel,
    WebhookChannel,
)

logger = logging.getLogger(__name__)


class NotificationManager:
    """Routes notifications to the registered channel for their type.

    Singleton in the API process — use get_notification_manager().
    """

    def __init__(self):
        self._channels: dict[NotificationChannel, BaseChannel] = {}
        self._initialized = False

    def register_channel(self, channel: BaseChannel) -> None:
        """Register a channel, replacing any channel of the same type."""
        self._channels[channel.channel_type] = channel
        logger.info(f"Notification channel registered: {channel.channel_type.value} ({type(channel).__name__})")

    def configure_from_settings(self, settings) -> None:
        """Register channels described by the application settings."""
        if settings.EMAIL_DELIVERY == "smtp":
            self.register_channel(EmailChannel({
                "smtp_host": settings.SMTP_HOST,
                "smtp_port": settings.SMTP_PORT,
                "smtp_user": settings.SMTP_USERNAME,
                "smtp_password": settings.SMTP_PASSWORD,
                "from_address": settings.EMAIL_FROM_ADDRESS,
                "use_tls": settings.SMTP_USE_TLS,
            }))
        else:
            self.register_channel(HttpEmailChannel({
                "url": settings.EMAIL_SERVICE_URL,
                "token": settings.EMAIL_SERVICE_TOKEN,
                "from_address": f"{settings.EMAIL_FROM_NAME} <{settings.EMAIL_FROM_ADDRESS}>",
            }))
        if settings.INTERNAL_ALERT_WEBHOOK_URL:
            self.register_channel(WebhookChannel({"url": settings.INTERNAL_ALERT_WEBHOOK_URL}))
        self._initialized = True

    async def send(self, notification: Notification) -> DeliveryResult:
        """Send a notification through its channel.

        Returns:
            DeliveryResult; a missing channel is a failed delivery, not an exception
        """
        channel = self._channels.get(notification.channel)
        if not channel:
            return DeliveryResult(
                success=False,
                channel=notification.channel,
                recipient=notification.recipient,
                error=f"Channel not configured: {notification.channel.value}",
            )

        result = await channel.send(notification)

        if result.success:
            logger.info(f"Notification sent via {notification.channel.value} to {notification.recipient}")
        else:
            logger.warning(f"Notification failed via {notification.channel.value}: {result.error}")

        return result

    async def send_email(self, to: str, subject: str, text: str, html: Optional[str] = None, **metadata) -> DeliveryResult:
        return await self.send(Notification(
            title=subject,
            message=text,
            html=html,
            channel=NotificationChannel.EMAIL,
            recipient=to,
            metadata=metadata,
        ))

    def get_status(self) -> dict:
        return {
            "initialized": self._initialized,
            "channels": [ch.value for ch in self._channels.keys()],
        }


# ─── Singleton ─────────────────────────────────────────────────

_manager: Optional[NotificationManager] = None


def get_notification_manager() -> NotificationManager:
    """Get or create the singleton NotificationManager."""
    global _manager
    if _manager is None:
        _manager = NotificationManager()
    return _manager
