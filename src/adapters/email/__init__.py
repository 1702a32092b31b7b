"""
Email provider adapters and provider selection.
"""

from __future__ import annotations

from src.adapters.email.postmark import POSTMARK_API_URL, PostmarkProvider
from src.adapters.email.smtp import SMTPProvider
from src.components.email.component import EmailService, create_email_service
from src.components.email.models import DEFAULT_SERVER_ROOT, EmailConfig
from src.core.ports.email import EmailProviderPort
from src.domain.errors import EmailNotConfiguredError


def select_provider(config: EmailConfig) -> EmailProviderPort:
    """
    Pick the mail transport for this process.

    Priority: Postmark token, then SMTP server. Having neither is a
    construction-time failure.

    Raises:
        EmailNotConfiguredError: no provider is configured
    """
    if config.postmark_api_token:
        return PostmarkProvider(
            api_token=config.postmark_api_token,
            timeout_seconds=config.postmark_timeout_seconds,
            message_tag=config.message_tag,
        )

    if config.smtp_server:
        return SMTPProvider(
            server=config.smtp_server,
            port=config.smtp_port,
            from_email=config.from_email,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            timeout_seconds=config.smtp_timeout_seconds,
        )

    raise EmailNotConfiguredError(
        "no email provider configured (set a Postmark API token or an SMTP server)"
    )


def build_email_service(
    config: EmailConfig,
    server_root: str = DEFAULT_SERVER_ROOT,
) -> EmailService:
    """
    Select the provider and build the delivery service.

    Raises:
        EmailNotConfiguredError: no provider is configured
    """
    return create_email_service(config, select_provider(config), server_root=server_root)


__all__ = [
    "POSTMARK_API_URL",
    "PostmarkProvider",
    "SMTPProvider",
    "build_email_service",
    "select_provider",
]
