"""Outbound notification email.

Email is a side channel: callers write the in-app notification first and
treat the email as best-effort.  Every sender therefore reports success
as a bool and never raises for delivery problems.

ResendEmailSender posts to a Resend-compatible HTTP API with httpx.
DisabledEmailSender is wired when RESEND_API_KEY is unset (local dev,
tests) and reports every message as not sent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from bizsuite.core.config import SETTINGS
from bizsuite.core.metrics import EMAILS_SENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EmailRecipient:
    email: str
    name: str | None = None

    def formatted(self) -> str:
        return f"{self.name} <{self.email}>" if self.name else self.email


class EmailSender(Protocol):
    async def send(
        self, recipients: list[EmailRecipient], subject: str, body: str
    ) -> bool: ...


class DisabledEmailSender:
    async def send(
        self, recipients: list[EmailRecipient], subject: str, body: str
    ) -> bool:
        EMAILS_SENT.labels(result="disabled").inc()
        logger.warning(
            "Email not configured, skipping subject=%r recipients=%d",
            subject,
            len(recipients),
        )
        return False


class ResendEmailSender:
    def __init__(
        self,
        api_key: str,
        *,
        sender: str,
        api_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._api_url = api_url
        self._timeout = timeout
        self._transport = transport

    async def send(
        self, recipients: list[EmailRecipient], subject: str, body: str
    ) -> bool:
        if not recipients:
            return False
        payload = {
            "from": self._sender,
            "to": [r.formatted() for r in recipients],
            "subject": subject,
            "text": body,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self._api_url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
        except httpx.HTTPError as exc:
            EMAILS_SENT.labels(result="failed").inc()
            logger.warning("Email send failed subject=%r error=%s", subject, exc)
            return False

        if resp.status_code >= 400:
            EMAILS_SENT.labels(result="failed").inc()
            logger.warning(
                "Email API rejected subject=%r status=%d body=%s",
                subject,
                resp.status_code,
                resp.text[:200],
            )
            return False

        EMAILS_SENT.labels(result="sent").inc()
        logger.info("Email sent subject=%r recipients=%d", subject, len(recipients))
        return True


def build_email_sender() -> EmailSender:
    if SETTINGS.resend_api_key:
        return ResendEmailSender(
            SETTINGS.resend_api_key,
            sender=SETTINGS.email_sender,
            api_url=SETTINGS.email_api_url,
        )
    return DisabledEmailSender()
