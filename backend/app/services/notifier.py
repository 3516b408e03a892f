"""
Notifier — outbound side effects of the onboarding flows.

- Invitation emails go through SMTP (blocking ``smtplib`` in a worker thread).
  Email failure is reported in the returned ``DeliveryResult``; the invitation
  row exists whether or not the email left.
- Intake payloads are POSTed to the configured webhook with a bounded
  timeout. Non-2xx, timeout and network errors raise
  ``UpstreamDeliveryFailure``.

Callers invoke the notifier only after their state transition is committed.
Nothing here retries.
"""

from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from functools import lru_cache
from typing import Any, Optional

import httpx

from app.config import Settings, get_settings
from app.errors import UpstreamDeliveryFailure

logger = logging.getLogger(__name__)


@dataclass
class DeliveryResult:
    delivered: bool
    error: Optional[str] = None


class Notifier:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    # ------------------------------------------------------------------
    # Email
    # ------------------------------------------------------------------

    @property
    def smtp_configured(self) -> bool:
        s = self.settings
        return bool(s.SMTP_HOST and s.SMTP_USER and s.SMTP_PASSWORD)

    def _send_smtp(self, message: EmailMessage) -> None:
        s = self.settings
        if s.SMTP_USE_SSL:
            with smtplib.SMTP_SSL(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_SECONDS) as smtp:
                smtp.login(s.SMTP_USER, s.SMTP_PASSWORD)
                smtp.send_message(message)
            return

        if not s.SMTP_USE_TLS:
            # credentials never go over an unencrypted connection
            raise smtplib.SMTPException("SMTP_USE_SSL or SMTP_USE_TLS must be enabled")
        with smtplib.SMTP(s.SMTP_HOST, s.SMTP_PORT, timeout=s.SMTP_TIMEOUT_SECONDS) as smtp:
            smtp.starttls()
            smtp.login(s.SMTP_USER, s.SMTP_PASSWORD)
            smtp.send_message(message)

    async def send_invitation_email(self, email: str, link: str) -> DeliveryResult:
        if not self.smtp_configured:
            return DeliveryResult(False, "SMTP is not configured")

        message = EmailMessage()
        message["Subject"] = "You have been invited to a workspace"
        message["From"] = self.settings.SMTP_FROM or self.settings.SMTP_USER
        message["To"] = email
        message.set_content(
            "You have been invited to join a workspace.\n\n"
            f"Accept the invitation: {link}\n"
        )
        message.add_alternative(
            "<p>You have been invited to join a workspace.</p>"
            f'<p><a href="{link}">Accept invitation</a></p>'
            "<p>If the link does not work, copy and paste this URL:</p>"
            f"<p>{link}</p>",
            subtype="html",
        )

        try:
            await asyncio.to_thread(self._send_smtp, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"Invitation email to {email} failed: {e}")
            return DeliveryResult(False, str(e)[:400] or "Failed to send invitation email")
        logger.info(f"Invitation email sent to {email}")
        return DeliveryResult(True)

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    @property
    def webhook_url(self) -> Optional[str]:
        return self.settings.INTAKE_WEBHOOK_URL or None

    async def post_intake_webhook(self, payload: dict[str, Any]) -> None:
        url = self.webhook_url
        if not url:
            raise UpstreamDeliveryFailure("Intake webhook is not configured")

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.WEBHOOK_TIMEOUT_SECONDS),
                transport=self._transport,
            ) as client:
                resp = await client.post(url, json=payload)
        except httpx.TimeoutException:
            logger.error("Intake webhook timed out after %ss", self.settings.WEBHOOK_TIMEOUT_SECONDS)
            raise UpstreamDeliveryFailure("Webhook delivery timed out")
        except httpx.HTTPError as e:
            logger.error("Intake webhook request failed: %s", e)
            raise UpstreamDeliveryFailure("Webhook delivery failed")

        if not resp.is_success:
            logger.error("Intake webhook returned %s", resp.status_code)
            raise UpstreamDeliveryFailure(f"Webhook responded with status {resp.status_code}")


@lru_cache()
def get_notifier() -> Notifier:
    return Notifier()
