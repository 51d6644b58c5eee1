"""Notification channel implementations.

Each channel handles delivery for one transport. Both email channels
register under NotificationChannel.EMAIL; which one is used is decided
by the EMAIL_DELIVERY setting.
"""

import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from enum import Enum
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


# ─── Data Types ────────────────────────────────────────────────

class NotificationChannel(str, Enum):
    EMAIL = "email"
    WEBHOOK = "webhook"


@dataclass
class Notification:
    """A message to be delivered."""
    title: str
    message: str
    channel: NotificationChannel = NotificationChannel.EMAIL
    recipient: str = ""  # email address or webhook URL
    html: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


@dataclass
class DeliveryResult:
    """Result of a delivery attempt."""
    success: bool
    channel: NotificationChannel
    recipient: str
    message: str = ""
    error: Optional[str] = None
    delivered_at: Optional[str] = None


# ─── Base Channel ──────────────────────────────────────────────

class BaseChannel(ABC):
    """Abstract base for notification channels."""

    channel_type: NotificationChannel

    @abstractmethod
    async def send(self, notification: Notification) -> DeliveryResult:
        """Send a notification through this channel."""
        ...

    def _ok(self, recipient: str, message: str) -> DeliveryResult:
        return DeliveryResult(
            success=True,
            channel=self.channel_type,
            recipient=recipient,
            message=message,
            delivered_at=datetime.now(timezone.utc).isoformat(),
        )

    def _failed(self, recipient: str, error: str) -> DeliveryResult:
        return DeliveryResult(success=False, channel=self.channel_type, recipient=recipient, error=error)


def _default_html(notification: Notification) -> str:
    body = notification.message.replace("\n", "<br>")
    return (
        '<div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">'
        f'<h2 style="color: #333;">{notification.title}</h2>'
        f'<div style="color: #555; line-height: 1.6;">{body}</div>'
        "</div>"
    )


# ─── SMTP Email Channel ────────────────────────────────────────

class EmailChannel(BaseChannel):
    """Send email via SMTP.

    Config:
        smtp_host, smtp_port, smtp_user, smtp_password,
        from_address, use_tls
    """

    channel_type = NotificationChannel.EMAIL

    def __init__(self, config: dict = None):
        self.config = config or {}

    async def send(self, notification: Notification) -> DeliveryResult:
        try:
            from_addr = self.config.get("from_address", "noreply@localhost")

            msg = MIMEMultipart("alternative")
            msg["Subject"] = notification.title
            msg["From"] = from_addr
            msg["To"] = notification.recipient
            msg.attach(MIMEText(notification.message, "plain"))
            msg.attach(MIMEText(notification.html or _default_html(notification), "html"))

            # smtplib is blocking
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._send_smtp, from_addr, notification.recipient, msg)
            return self._ok(notification.recipient, "Email sent")

        except Exception as e:
            logger.error(f"Email send failed: {e}")
            return self._failed(notification.recipient, str(e))

    def _send_smtp(self, from_addr, to_addr, msg):
        """Synchronous SMTP send."""
        with smtplib.SMTP(self.config.get("smtp_host", "localhost"), self.config.get("smtp_port", 587)) as server:
            if self.config.get("use_tls", True):
                server.starttls()
            user = self.config.get("smtp_user")
            password = self.config.get("smtp_password")
            if user and password:
                server.login(user, password)
            server.sendmail(from_addr, to_addr, msg.as_string())


# ─── HTTP Email Channel ────────────────────────────────────────

class HttpEmailChannel(BaseChannel):
    """Send email through an HTTP email service.

    POSTs {"to", "subject", "html", "text", "from"} as JSON.

    Config:
        url: Service endpoint
        token: Optional bearer token
        from_address: Sender address
    """

    channel_type = NotificationChannel.EMAIL

    def __init__(self, config: dict = None, transport: httpx.AsyncBaseTransport = None):
        self.config = config or {}
        self._transport = transport

    async def send(self, notification: Notification) -> DeliveryResult:
        url = self.config.get("url")
        if not url:
            return self._failed(notification.recipient, "No email service URL configured")

        headers = {"Content-Type": "application/json"}
        if self.config.get("token"):
            headers["Authorization"] = f"Bearer {self.config['token']}"

        payload = {
            "to": notification.recipient,
            "from": self.config.get("from_address"),
            "subject": notification.title,
            "html": notification.html or _default_html(notification),
            "text": notification.message,
        }

        try:
            async with httpx.AsyncClient(timeout=15, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Email service rejected message: HTTP {e.response.status_code}")
            return self._failed(notification.recipient, f"Email service returned HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            logger.error(f"Email service unreachable: {e}")
            return self._failed(notification.recipient, f"Email service connection error: {e}")

        return self._ok(notification.recipient, f"Email accepted (HTTP {response.status_code})")


# ─── Webhook Channel ──────────────────────────────────────────

class WebhookChannel(BaseChannel):
    """Post internal alerts to an HTTP endpoint.

    Config:
        url: Target URL (used when the notification has no recipient)
        headers: Additional headers
    """

    channel_type = NotificationChannel.WEBHOOK

    def __init__(self, config: dict = None, transport: httpx.AsyncBaseTransport = None):
        self.config = config or {}
        self._transport = transport

    async def send(self, notification: Notification) -> DeliveryResult:
        url = notification.recipient or self.config.get("url")
        if not url:
            return self._failed("", "No webhook URL")

        payload = {
            "title": notification.title,
            "message": notification.message,
            "metadata": notification.metadata,
            "timestamp": notification.created_at,
        }
        headers = {"Content-Type": "application/json", **self.config.get("headers", {})}

        try:
            async with httpx.AsyncClient(timeout=15, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Webhook send failed: {e}")
            return self._failed(url, str(e))

        return self._ok(url, f"Webhook delivered (HTTP {response.status_code})")
