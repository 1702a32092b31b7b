"""
Email delivery component models.

Configuration and rendering values for the board-invitation email.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.rules.models import EmailRules

DEFAULT_SERVER_ROOT = "http://localhost:8000"
DEFAULT_TEMPLATES_PATH = "./templates/email"
DEFAULT_MESSAGE_TAG = "board-invitation"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class EmailConfig:
    """
    Email delivery configuration.

    A Postmark token takes priority over an SMTP server when both are set.
    """

    from_email: str = ""
    from_name: str = ""
    templates_path: str = DEFAULT_TEMPLATES_PATH
    message_tag: str = DEFAULT_MESSAGE_TAG

    postmark_api_token: str = ""
    postmark_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    smtp_server: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = False
    smtp_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def from_rules(cls, rules: EmailRules) -> EmailConfig:
        return cls(
            from_email=rules.from_email,
            from_name=rules.from_name,
            templates_path=rules.templates_path,
            message_tag=rules.message_tag,
            postmark_api_token=rules.postmark.api_token,
            postmark_timeout_seconds=rules.postmark.timeout_seconds,
            smtp_server=rules.smtp.server,
            smtp_port=rules.smtp.port,
            smtp_username=rules.smtp.username,
            smtp_password=rules.smtp.password,
            smtp_use_tls=rules.smtp.use_tls,
            smtp_timeout_seconds=rules.smtp.timeout_seconds,
        )


@dataclass(frozen=True)
class InvitationData:
    """Values substituted into the invitation templates."""

    board_title: str
    inviter_name: str
    invite_url: str
    from_name: str

    def as_dict(self) -> dict[str, str]:
        return {
            "board_title": self.board_title,
            "inviter_name": self.inviter_name,
            "invite_url": self.invite_url,
            "from_name": self.from_name,
        }


@dataclass(frozen=True)
class RenderedEmail:
    """A fully rendered invitation message."""

    subject: str
    html_body: str
    text_body: str
