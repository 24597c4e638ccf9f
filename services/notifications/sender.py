from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

import httpx

from core.errors import NotificationError, RateLimitedError
from services.notifications.status_email import StatusEmailRequest, render_status_email

logger = logging.getLogger(__name__)


class StatusNotifier(Protocol):
    def send(self, req: StatusEmailRequest) -> str:
        """Send one status email; returns the provider message id."""


class ResendStatusNotifier:
    """Status emails through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        url: str = "https://api.resend.com/emails",
        timezone_name: str = "Asia/Kolkata",
        timeout_s: int = 15,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.sender = sender
        self.url = url
        self.timezone_name = timezone_name
        self.timeout_s = timeout_s
        self.transport = transport

    def send(self, req: StatusEmailRequest) -> str:
        if not self.api_key:
            raise NotificationError("email provider not configured: RESEND_API_KEY missing")

        subject, html = render_status_email(
            req, datetime.now(timezone.utc), tz=self.timezone_name
        )
        payload = {"from": self.sender, "to": [req.student_email], "subject": subject, "html": html}
        logger.info("sending %s email for %s", req.status.value, req.application_number)
        try:
            with httpx.Client(timeout=self.timeout_s, transport=self.transport) as client:
                r = client.post(
                    self.url, json=payload, headers={"Authorization": f"Bearer {self.api_key}"}
                )
        except httpx.HTTPError as e:
            raise NotificationError(f"email provider unreachable: {e}") from e

        if r.status_code == 429:
            raise RateLimitedError("Email provider is rate limiting. Try again shortly.")
        if r.is_error:
            raise NotificationError(f"Failed to send email: {r.status_code} {r.text[:200]}")
        message_id = (r.json() or {}).get("id")
        if not message_id:
            raise NotificationError("email provider returned no message id")
        return message_id
