"""Email sender interface + concrete senders.

Services depend only on the EmailSender protocol. The concrete sender is
selected by the get_email_sender dependency so tests can swap in a recording
fake.
"""

from __future__ import annotations

import html as html_module
import logging
from datetime import datetime, timezone
from typing import Protocol

import httpx

from admissions.core.config import settings

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"


class EmailSendError(Exception):
    """Raised when a provider rejects or fails to accept a message."""


class EmailSender(Protocol):
    key: str

    def send(self, to_email: str, subject: str, message: str) -> None:
        """Deliver a plain-text message. Raises EmailSendError on failure."""


def render_announcement_html(subject: str, message: str, brand: str | None = None) -> str:
    """Wrap a plain-text message in the branded announcement layout."""
    brand = brand or settings.EMAIL_BRAND_NAME
    safe_subject = html_module.escape(subject)
    paragraphs = "".join(
        f"<p>{html_module.escape(line)}</p>" for line in message.split("\n")
    )
    year = datetime.now(timezone.utc).year
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width,initial-scale=1" />
  <title>{safe_subject}</title>
  <style>
    body {{ margin:0; padding:0; background:#f2f4f6; font-family:Arial,sans-serif; }}
    .container {{ max-width:600px; margin:40px auto; background:#fff; border-radius:8px; overflow:hidden; }}
    .header {{ background:#4A90E2; padding:20px; text-align:center; color:#fff; }}
    .header h1 {{ margin:0; font-size:24px; }}
    .content {{ padding:30px; color:#333; font-size:16px; line-height:1.5; }}
    .footer {{ background:#e8ebee; padding:20px; text-align:center; font-size:12px; color:#777; }}
  </style>
</head>
<body>
  <div class="container">
    <div class="header"><h1>{safe_subject}</h1></div>
    <div class="content">{paragraphs}</div>
    <div class="footer">
      This is an automated announcement from your {html_module.escape(brand)} platform.<br/>
      &copy; {year} {html_module.escape(brand)}. All rights reserved.
    </div>
  </div>
</body>
</html>"""


class ResendEmailSender:
    """Sends through the Resend HTTP API."""

    key = "resend"

    def __init__(
        self,
        api_key: str,
        from_email: str,
        *,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.from_email = from_email
        self.timeout = timeout
        self.transport = transport

    def send(self, to_email: str, subject: str, message: str) -> None:
        payload: dict[str, object] = {
            "from": self.from_email,
            "to": [to_email],
            "subject": subject,
            "html": render_announcement_html(subject, message),
            "text": message,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(RESEND_SEND_URL, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise EmailSendError(f"Resend request failed: {exc.__class__.__name__}") from exc

        if not 200 <= response.status_code < 300:
            raise EmailSendError(f"Resend rejected message (status {response.status_code})")

        logger.info("Email accepted by Resend id=%s", response.json().get("id"))


class LoggingEmailSender:
    """Development sender: logs the envelope, never delivers."""

    key = "log"

    def send(self, to_email: str, subject: str, message: str) -> None:
        logger.info("Email not sent (delivery disabled) subject=%r", subject)


def build_email_sender() -> EmailSender:
    if settings.email_delivery_enabled:
        return ResendEmailSender(
            settings.RESEND_API_KEY,
            settings.EMAIL_FROM,
            timeout=settings.EMAIL_TIMEOUT_SECONDS,
        )
    return LoggingEmailSender()
