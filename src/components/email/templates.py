"""
Invitation email templates.

Three templates make up the message: an HTML body, a plain text body and a
subject line. Each is read once from the templates directory:

- invitation.html
- invitation.txt
- invitation_subject.txt

A file that is missing or unusable is replaced by the built-in default and a
warning is logged. Loading never fails.

Placeholders use {{name}} syntax. Recognised names: board_title,
inviter_name, invite_url, from_name. Values are HTML-escaped when rendering
the HTML body.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from pathlib import Path

from src.components.email.models import InvitationData, RenderedEmail

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")
PLACEHOLDERS = frozenset({"board_title", "inviter_name", "invite_url", "from_name"})

HTML_FILE = "invitation.html"
TEXT_FILE = "invitation.txt"
SUBJECT_FILE = "invitation_subject.txt"

DEFAULT_SUBJECT = 'You\'ve been invited to join "{{board_title}}"'

DEFAULT_HTML = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Board invitation</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; color: #333; line-height: 1.5;">
  <div style="max-width: 600px; margin: 0 auto; padding: 24px;">
    <h2 style="margin-top: 0;">You've been invited to a board</h2>
    <p><strong>{{inviter_name}}</strong> has invited you to collaborate on the board <strong>"{{board_title}}"</strong>.</p>
    <p style="margin: 32px 0;">
      <a href="{{invite_url}}" style="background: #1e6fd9; color: #fff; padding: 12px 24px; border-radius: 4px; text-decoration: none;">Accept Invitation</a>
    </p>
    <p>Or copy this link into your browser:<br><a href="{{invite_url}}">{{invite_url}}</a></p>
    <hr style="border: none; border-top: 1px solid #eee; margin: 32px 0;">
    <p style="font-size: 12px; color: #888;">This invitation was sent by {{from_name}}. It expires in 7 days. If you were not expecting it, you can ignore this email.</p>
  </div>
</body>
</html>
"""

DEFAULT_TEXT = """You've been invited to a board

{{inviter_name}} has invited you to collaborate on the board "{{board_title}}".

Accept the invitation by opening this link:
{{invite_url}}

This invitation was sent by {{from_name}}. It expires in 7 days.
If you were not expecting it, you can ignore this email.
"""


class TemplateError(ValueError):
    """Template source cannot be used."""


def check_template(source: str, require_link: bool) -> None:
    """
    Validate a template source.

    Raises:
        TemplateError: empty, unknown placeholder, or missing invite link
    """
    if not source.strip():
        raise TemplateError("template is empty")

    names = set(PLACEHOLDER_RE.findall(source))
    unknown = names - PLACEHOLDERS
    if unknown:
        raise TemplateError(f"unknown placeholders: {', '.join(sorted(unknown))}")

    if require_link and "invite_url" not in names:
        raise TemplateError("template does not contain {{invite_url}}")


def render_template(source: str, values: dict[str, str], escape: bool = False) -> str:
    def substitute(match: re.Match[str]) -> str:
        value = values.get(match.group(1), "")
        return html.escape(value) if escape else value

    return PLACEHOLDER_RE.sub(substitute, source)


def _load_one(directory: Path, filename: str, default: str, require_link: bool) -> str:
    path = directory / filename
    if not path.is_file():
        logger.warning("Email template %s not found, using built-in default", path)
        return default

    try:
        source = path.read_bytes().decode("utf-8")
        check_template(source, require_link)
    except (OSError, UnicodeDecodeError, TemplateError) as e:
        logger.warning("Email template %s unusable (%s), using built-in default", path, e)
        return default

    return source


@dataclass(frozen=True)
class EmailTemplates:
    """Immutable set of loaded invitation templates."""

    html: str = DEFAULT_HTML
    text: str = DEFAULT_TEXT
    subject: str = DEFAULT_SUBJECT

    @classmethod
    def load(cls, directory: str | Path | None) -> EmailTemplates:
        if not directory:
            return cls()

        base = Path(directory)
        if not base.is_dir():
            logger.warning("Email templates directory %s not found, using built-in defaults", base)
            return cls()

        return cls(
            html=_load_one(base, HTML_FILE, DEFAULT_HTML, require_link=True),
            text=_load_one(base, TEXT_FILE, DEFAULT_TEXT, require_link=True),
            subject=_load_one(base, SUBJECT_FILE, DEFAULT_SUBJECT, require_link=False),
        )

    def render(self, data: InvitationData) -> RenderedEmail:
        values = data.as_dict()
        subject = render_template(self.subject, values)
        # Subject is a single header line
        subject = " ".join(subject.split())
        return RenderedEmail(
            subject=subject,
            html_body=render_template(self.html, values, escape=True),
            text_body=render_template(self.text, values),
        )
