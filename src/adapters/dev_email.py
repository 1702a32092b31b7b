"""
Dev email provider.

Keeps every message in memory and logs a one-line summary instead of
delivering it. Used by tests and for running the API locally without a
Postmark token or SMTP relay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SentEmail:
    id: str
    recipient: str
    sender: str
    subject: str
    body_html: str
    body_text: str
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """EmailProviderPort that records instead of sending."""

    name: str = "dev"
    sent_emails: list[SentEmail] = field(default_factory=list)
    # Include the start of the text body in the log line (useful to grab invite links)
    log_body: bool = False
    preview_chars: int = 200

    def send_email(
        self,
        to: str,
        from_: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> None:
        email = SentEmail(
            id=f"dev-{uuid4().hex[:12]}",
            recipient=to,
            sender=from_,
            subject=subject,
            body_html=html_body,
            body_text=text_body,
            logged_at=datetime.now(UTC),
        )
        self.sent_emails.append(email)

        if self.log_body:
            logger.info(
                "EMAIL (dev) %s to=%s subject=%r body=%r",
                email.id, to, subject, text_body[: self.preview_chars],
            )
        else:
            logger.info("EMAIL (dev) %s to=%s subject=%r", email.id, to, subject)

    # --- Test helpers ---

    def get_last_email(self) -> SentEmail | None:
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        return len(self.sent_emails)
