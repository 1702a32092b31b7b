"""
Email component - board-invitation rendering and provider-bound delivery.
"""

from .component import (
    EmailService,
    build_invite_url,
    create_email_service,
)
from .models import (
    DEFAULT_SERVER_ROOT,
    EmailConfig,
    InvitationData,
    RenderedEmail,
)
from .templates import (
    DEFAULT_HTML,
    DEFAULT_SUBJECT,
    DEFAULT_TEXT,
    EmailTemplates,
    TemplateError,
    check_template,
    render_template,
)

__all__ = [
    # Service
    "EmailService",
    "build_invite_url",
    "create_email_service",
    # Models
    "DEFAULT_SERVER_ROOT",
    "EmailConfig",
    "InvitationData",
    "RenderedEmail",
    # Templates
    "DEFAULT_HTML",
    "DEFAULT_SUBJECT",
    "DEFAULT_TEXT",
    "EmailTemplates",
    "TemplateError",
    "check_template",
    "render_template",
]
