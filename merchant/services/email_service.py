"""Transactional email delivery over SMTP with per-client credentials."""

import logging
from dataclasses import dataclass
from email.message import EmailMessage
from pathlib import Path
from typing import Any

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, TemplateNotFound

from merchant.core.config import Settings, get_settings
from merchant.core.errors import DeliveryError, NotificationError

logger = logging.getLogger(__name__)

# Jinja2 template environment
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates" / "email"
_jinja_env = Environment(loader=FileSystemLoader(str(TEMPLATE_DIR)), autoescape=True)

SUBJECTS: dict[str, str] = {
    "verification": "Please verify your email address",
    "order_processed": "Your order is on its way",
    "order_confirmed": "Order confirmation",
}


@dataclass(frozen=True)
class SenderCredentials:
    """The mailbox an email is sent from: the client's business account."""

    email: str
    password: str
    display_name: str | None = None

    @property
    def from_address(self) -> str:
        if self.display_name:
            return f"{self.display_name} <{self.email}>"
        return self.email


class EmailService:
    """Renders and sends the storefront's customer emails."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def render(self, kind: str, data: dict[str, Any]) -> tuple[str, str]:
        """Return ``(subject, html)`` for a notification kind."""
        subject = SUBJECTS.get(kind)
        if subject is None:
            raise NotificationError(f"Unknown notification kind: {kind}")
        try:
            template = _jinja_env.get_template(f"{kind}.html")
        except TemplateNotFound as e:
            raise NotificationError(f"Missing template for {kind}") from e
        return subject, template.render(**data)

    async def send(
        self,
        kind: str,
        recipient: str,
        data: dict[str, Any],
        sender: SenderCredentials,
    ) -> None:
        """Send one email.

        Raises:
            NotificationError: the email could not be rendered.
            DeliveryError: the SMTP server refused or was unreachable.
        """
        subject, html = self.render(kind, data)

        message = EmailMessage()
        message["From"] = sender.from_address
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content("This email requires an HTML-capable mail client.")
        message.add_alternative(html, subtype="html")

        try:
            await aiosmtplib.send(
                message,
                hostname=self.settings.smtp_host,
                port=self.settings.smtp_port,
                username=sender.email,
                password=sender.password,
                use_tls=self.settings.smtp_use_tls,
                timeout=15,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("SMTP send failed: kind=%s to=%s error=%s", kind, recipient, e)
            raise DeliveryError(f"Failed to send {kind} email") from e

        logger.info("Email sent: kind=%s to=%s from=%s", kind, recipient, sender.email)
