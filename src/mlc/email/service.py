"""
Email service with provider abstraction.

Supports console logging (default), SMTP, Resend API, and AWS SES.
Provider is selected via configuration.

Two kinds of mail leave the service:

- transactional (welcome): always sent when the address is known.
- notification (streak reminders, achievement unlocks): opt-out mail. These
  carry a ``List-Unsubscribe`` link to the learner's notification settings
  and are tagged so bounces and complaints can be told apart per provider.
"""

from __future__ import annotations

import hashlib
import ssl
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import TYPE_CHECKING, Any

import structlog

from mlc.config import get_settings
from mlc.email.templates import (
    achievement_unlocked,
    streak_reminder,
    welcome_email,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from redis.asyncio import Redis

logger = structlog.get_logger()

TRANSACTIONAL = "transactional"
NOTIFICATION = "notification"

# Template registry: name -> (function taking keyword context plus app_url, category)
_TEMPLATE_REGISTRY: dict[str, tuple[Callable[..., tuple[str, str, str]], str]] = {
    "welcome": (welcome_email, TRANSACTIONAL),
    "streak_reminder": (streak_reminder, NOTIFICATION),
    "achievement_unlocked": (achievement_unlocked, NOTIFICATION),
}

NOTIFICATION_SETTINGS_PATH = "/profile#notifications"

# Most recent messages kept by the console provider.
CONSOLE_OUTBOX_LIMIT = 100


@dataclass(frozen=True)
class OutgoingEmail:
    """A rendered message ready for a provider."""

    to: str
    subject: str
    html_body: str
    text_body: str
    category: str = TRANSACTIONAL
    template: str = "custom"
    unsubscribe_url: str | None = None

    @property
    def headers(self) -> dict[str, str]:
        if not self.unsubscribe_url:
            return {}
        return {"List-Unsubscribe": f"<{self.unsubscribe_url}>"}

    @property
    def tags(self) -> dict[str, str]:
        return {"category": self.category, "template": self.template}


class BaseEmailProvider(ABC):
    """Abstract base class for email delivery providers."""

    name = "base"

    def __init__(self, from_address: str = "", from_name: str = "") -> None:
        self.from_address = from_address
        self.from_name = from_name

    @property
    def sender(self) -> str:
        return formataddr((self.from_name, self.from_address))

    @abstractmethod
    async def deliver(self, message: OutgoingEmail) -> None:
        """Hand the message to the transport. Raises on failure."""
        ...

    async def send(self, message: OutgoingEmail) -> bool:
        """Deliver `message`. Returns True on success; failures are logged, never raised."""
        try:
            await self.deliver(message)
        except Exception:
            logger.exception("email_send_failed", to=message.to, template=message.template, provider=self.name)
            return False
        logger.info("email_sent", to=message.to, template=message.template, provider=self.name)
        return True


class ConsoleProvider(BaseEmailProvider):
    """Log emails instead of delivering them (local development and tests).

    Only the last `outbox_limit` messages are kept in memory.
    """

    name = "console"

    def __init__(self, outbox_limit: int = CONSOLE_OUTBOX_LIMIT) -> None:
        super().__init__()
        self.outbox: deque[dict[str, Any]] = deque(maxlen=outbox_limit)

    async def deliver(self, message: OutgoingEmail) -> None:
        logger.info(
            "email_logged",
            to=message.to,
            subject=message.subject,
            category=message.category,
            text=message.text_body,
        )
        self.outbox.append(
            {
                "to": message.to,
                "subject": message.subject,
                "html": message.html_body,
                "text": message.text_body,
                "category": message.category,
                "headers": message.headers,
            }
        )


class SMTPProvider(BaseEmailProvider):
    """Send emails via SMTP using aiosmtplib."""

    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        from_address: str,
        from_name: str,
        use_tls: bool = True,
    ) -> None:
        super().__init__(from_address, from_name)
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls

    def build_mime(self, message: OutgoingEmail) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = message.to
        msg["Subject"] = message.subject
        msg["X-MLC-Category"] = message.category
        for name, value in message.headers.items():
            msg[name] = value
        msg.attach(MIMEText(message.text_body, "plain", "utf-8"))
        msg.attach(MIMEText(message.html_body, "html", "utf-8"))
        return msg

    async def deliver(self, message: OutgoingEmail) -> None:
        import aiosmtplib

        tls_context = ssl.create_default_context() if self.use_tls else None
        await aiosmtplib.send(
            self.build_mime(message),
            hostname=self.host,
            port=self.port,
            username=self.username or None,
            password=self.password or None,
            start_tls=self.use_tls,
            tls_context=tls_context,
        )


class ResendProvider(BaseEmailProvider):
    """Send emails via Resend API."""

    name = "resend"
    API_URL = "https://api.resend.com/emails"

    def __init__(self, api_key: str, from_address: str, from_name: str) -> None:
        super().__init__(from_address, from_name)
        self.api_key = api_key

    def build_payload(self, message: OutgoingEmail) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "from": self.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html_body,
            "text": message.text_body,
            "tags": [{"name": k, "value": v} for k, v in message.tags.items()],
        }
        if message.headers:
            payload["headers"] = message.headers
        return payload

    async def deliver(self, message: OutgoingEmail) -> None:
        import httpx

        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json=self.build_payload(message),
                timeout=10.0,
            )
            response.raise_for_status()


class SESProvider(BaseEmailProvider):
    """Send emails via AWS SES.

    SES ``SendEmail`` cannot set custom headers, so the unsubscribe link only
    lives in the message body here; tags are still attached.
    """

    name = "ses"

    def __init__(self, region: str, from_address: str, from_name: str) -> None:
        super().__init__(from_address, from_name)
        self.region = region

    async def deliver(self, message: OutgoingEmail) -> None:
        import aioboto3

        session = aioboto3.Session()
        async with session.client("ses", region_name=self.region) as ses:
            await ses.send_email(
                Source=self.sender,
                Destination={"ToAddresses": [message.to]},
                Message={
                    "Subject": {"Data": message.subject, "Charset": "UTF-8"},
                    "Body": {
                        "Text": {"Data": message.text_body, "Charset": "UTF-8"},
                        "Html": {"Data": message.html_body, "Charset": "UTF-8"},
                    },
                },
                Tags=[{"Name": k, "Value": v} for k, v in message.tags.items()],
            )


def _create_provider() -> BaseEmailProvider:
    """Create email provider based on configuration."""
    settings = get_settings()
    provider_name = settings.email_provider.lower()

    if provider_name == "console":
        return ConsoleProvider()
    if provider_name == "smtp":
        return SMTPProvider(
            host=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username,
            password=settings.smtp_password,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            use_tls=settings.smtp_use_tls,
        )
    if provider_name == "resend":
        return ResendProvider(
            api_key=settings.resend_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )
    if provider_name == "ses":
        return SESProvider(
            region=settings.ses_region,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
        )
    msg = f"Unsupported email provider: {provider_name}"
    raise ValueError(msg)


class EmailService:
    """
    High-level email service for Microlearning Coach.

    Renders templates, attaches unsubscribe links to notification mail and
    rate limits per recipient.
    """

    RATE_LIMIT_WINDOW = 3600

    def __init__(
        self,
        provider: BaseEmailProvider | None = None,
        redis: Redis | None = None,
        rate_limit_max: int | None = None,
        app_url: str | None = None,
    ) -> None:
        settings = get_settings()
        self.provider = provider or _create_provider()
        self._redis = redis
        self.rate_limit_max = rate_limit_max or settings.email_rate_limit_per_hour
        self.app_url = (app_url or settings.frontend_base_url).rstrip("/")

    async def _check_rate_limit(self, email: str) -> bool:
        """Check if we can send another email to this address."""
        if self._redis is None:
            return True
        key = f"email_rate:{hashlib.sha256(email.lower().encode()).hexdigest()}"
        count = await self._redis.incr(key)
        if count == 1:
            await self._redis.expire(key, self.RATE_LIMIT_WINDOW)
        return count <= self.rate_limit_max

    async def send_email(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str,
        *,
        category: str = TRANSACTIONAL,
        template: str = "custom",
    ) -> bool:
        """
        Send an email with rate limiting.

        Returns True if sent, False if skipped, rate limited or failed.
        """
        if not to:
            logger.warning("email_skipped_no_recipient", subject=subject)
            return False
        if not await self._check_rate_limit(to):
            logger.warning("email_rate_limited", to=to, subject=subject)
            return False
        message = OutgoingEmail(
            to=to,
            subject=subject,
            html_body=html_body,
            text_body=text_body,
            category=category,
            template=template,
            unsubscribe_url=f"{self.app_url}{NOTIFICATION_SETTINGS_PATH}" if category == NOTIFICATION else None,
        )
        return await self.provider.send(message)

    async def send_template(
        self,
        to: str,
        template_name: str,
        context: dict[str, Any],
    ) -> bool:
        """
        Render a template and send.

        Args:
            to: Recipient email.
            template_name: Template name (welcome, streak_reminder, achievement_unlocked).
            context: Keyword arguments for the template function; app_url is filled in.

        Raises:
            ValueError: If the template name is unknown or the context does not fit it.
        """
        entry = _TEMPLATE_REGISTRY.get(template_name)
        if entry is None:
            msg = f"Unknown template: {template_name}"
            raise ValueError(msg)
        template_func, category = entry

        try:
            subject, html_body, text_body = template_func(**{"app_url": self.app_url, **context})
        except TypeError as exc:
            msg = f"Invalid context for template {template_name}: {exc}"
            raise ValueError(msg) from exc

        return await self.send_email(
            to, subject, html_body, text_body, category=category, template=template_name
        )


# Module-level singleton
_email_service: EmailService | None = None


def get_email_service(redis: Redis | None = None) -> EmailService:
    """Get or create the email service singleton."""
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService(redis=redis)
    return _email_service


def reset_email_service() -> None:
    """Reset the email service singleton (for testing)."""
    global _email_service  # noqa: PLW0603
    _email_service = None
