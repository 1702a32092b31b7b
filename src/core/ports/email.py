"""
Email Provider Interface.

Protocol-based interface for delivering transactional email.
Used by the email delivery component to send board invitations.

Implementation strategies:
1. PostmarkProvider: Sends via the Postmark HTTP API
2. SMTPProvider: Sends via SMTP (implicit TLS or STARTTLS)
3. DevEmailAdapter: Logs emails and keeps them in memory (dev/test)

All strategies implement the same EmailProviderPort interface. The concrete
provider is chosen once when the delivery service is built, never per call.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from src.domain.errors import EmailNotConfiguredError, ProviderError


@dataclass(frozen=True)
class EmailAddress:
    """
    Email address with optional display name.

    Examples:
        EmailAddress("boards@example.com")
        EmailAddress("boards@example.com", "Boards")
    """

    email: str
    name: str | None = None

    def __str__(self) -> str:
        """Format as RFC 5322 address."""
        if self.name:
            # Escape quotes in name
            safe_name = self.name.replace('"', '\\"')
            return f'"{safe_name}" <{self.email}>'
        return self.email


class EmailProviderPort(Protocol):
    """
    Mail transport interface.

    Implementations raise ProviderError on any transport failure and
    bound every network call with a timeout.
    """

    name: str

    def send_email(
        self,
        to: str,
        from_: str,
        subject: str,
        html_body: str,
        text_body: str,
    ) -> None:
        """
        Deliver one message.

        Args:
            to: Recipient address
            from_: Formatted sender ("Name" <address>)
            subject: Subject line
            html_body: HTML alternative
            text_body: Plain text alternative

        Raises:
            ProviderError: transport or API failure
        """
        ...


__all__ = [
    "EmailAddress",
    "EmailNotConfiguredError",
    "EmailProviderPort",
    "ProviderError",
]
