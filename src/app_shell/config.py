import logging
from urllib.parse import urlparse

from src.rules.models import Rules

logger = logging.getLogger(__name__)


def validate_email_rules(rules: Rules) -> list[str]:
    """
    Validate operational requirements before startup.

    Returns a list of problems; an empty list means the rules are usable.
    A missing provider is not a problem here: invitations then fail fast
    with "email service not configured" at request time.
    """
    problems: list[str] = []

    # 1. Server root must produce absolute invite links
    parsed = urlparse(rules.server.server_root)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        problems.append(f"server.server_root must be an http(s) URL: {rules.server.server_root!r}")

    # 2. Provider settings
    email = rules.email
    if not 1 <= email.smtp.port <= 65535:
        problems.append(f"email.smtp.port out of range: {email.smtp.port}")
    if email.smtp.timeout_seconds <= 0:
        problems.append("email.smtp.timeout_seconds must be positive")
    if email.postmark.timeout_seconds <= 0:
        problems.append("email.postmark.timeout_seconds must be positive")

    # 3. Warn about half-configured delivery
    has_provider = bool(email.postmark.api_token or email.smtp.server)
    if has_provider and not email.from_email:
        logger.warning("Email provider configured but email.from_email is empty")
    if not has_provider:
        logger.warning("No email provider configured; invitation emails are disabled")

    return problems
