"""
Email delivery component.

Renders the board-invitation message and hands it to the configured
provider. The provider is bound once at construction; there is no
per-call switching.

Key behaviors:
- Invite URL = server root (trailing slash stripped) + "/invite/" + token
- Sender formatted as "From Name" <from_email>
- is_configured() is the pre-flight guard used before any send
"""

from __future__ import annotations

import logging

from src.components.email.models import (
    DEFAULT_SERVER_ROOT,
    EmailConfig,
    InvitationData,
    RenderedEmail,
)
from src.components.email.templates import EmailTemplates
from src.core.ports.email import EmailAddress, EmailProviderPort
from src.domain.errors import EmailNotConfiguredError

logger = logging.getLogger(__name__)


def build_invite_url(server_root: str, token: str) -> str:
    root = (server_root or DEFAULT_SERVER_ROOT).rstrip("/")
    return f"{root}/invite/{token}"


class EmailService:
    """Invitation email delivery bound to a single provider."""

    def __init__(
        self,
        provider: EmailProviderPort | None,
        config: EmailConfig,
        templates: EmailTemplates | None = None,
        server_root: str = DEFAULT_SERVER_ROOT,
    ) -> None:
        self.provider = provider
        self.config = config
        self.templates = templates or EmailTemplates()
        self.server_root = server_root

    @property
    def provider_name(self) -> str | None:
        return self.provider.name if self.provider is not None else None

    def is_configured(self) -> bool:
        return self.provider is not None and bool(self.config.from_email)

    def sender(self) -> str:
        return str(EmailAddress(self.config.from_email, self.config.from_name or None))

    def render_invitation(
        self,
        board_title: str,
        inviter_name: str,
        token: str,
    ) -> RenderedEmail:
        data = InvitationData(
            board_title=board_title,
            inviter_name=inviter_name,
            invite_url=build_invite_url(self.server_root, token),
            from_name=self.config.from_name or self.config.from_email,
        )
        return self.templates.render(data)

    def send_invitation(
        self,
        to_email: str,
        board_title: str,
        inviter_name: str,
        token: str,
    ) -> None:
        """
        Render and deliver a board invitation.

        Raises:
            EmailNotConfiguredError: no provider or sender address
            ProviderError: the transport rejected or failed the send
        """
        if not self.is_configured() or self.provider is None:
            raise EmailNotConfiguredError()

        rendered = self.render_invitation(board_title, inviter_name, token)
        self.provider.send_email(
            to=to_email,
            from_=self.sender(),
            subject=rendered.subject,
            html_body=rendered.html_body,
            text_body=rendered.text_body,
        )
        logger.info("Invitation email sent to %s via %s", to_email, self.provider.name)


def create_email_service(
    config: EmailConfig,
    provider: EmailProviderPort,
    server_root: str = DEFAULT_SERVER_ROOT,
    templates: EmailTemplates | None = None,
) -> EmailService:
    """Build the service, loading templates from the configured directory once."""
    if templates is None:
        templates = EmailTemplates.load(config.templates_path)
    return EmailService(
        provider=provider,
        config=config,
        templates=templates,
        server_root=server_root,
    )
