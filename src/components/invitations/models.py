"""
Invitations component models.

Read-side views of a board invitation. The raw token never appears in a
view: it is only delivered through the emailed link.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from src.domain.entities import BoardInvitation
from src.domain.errors import ValidationError
from src.domain.state import current_state, resend_cooldown

# --- Email Validation Regex (RFC 5322 simplified) ---

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)
MAX_EMAIL_LENGTH = 254


def validate_email(email: str) -> str:
    """
    Check email syntax and return it with surrounding whitespace removed.

    Case is preserved: acceptance compares addresses exactly.

    Raises:
        ValidationError: empty, too long, or malformed
    """
    cleaned = email.strip() if email else ""
    if not cleaned:
        raise ValidationError("email is required", field="email")
    if len(cleaned) > MAX_EMAIL_LENGTH:
        raise ValidationError("email address is too long", field="email")
    if not EMAIL_REGEX.match(cleaned):
        raise ValidationError("invalid email address", field="email")
    return cleaned


@dataclass(frozen=True)
class InvitationView:
    """Invitation as shown to board managers."""

    id: str
    board_id: str
    email: str
    role: str
    created_by: str
    created_at: int
    expires_at: int
    used_at: int | None
    used_by: str | None
    last_sent_at: int | None
    status: str
    resend_cooldown_seconds: int

    @classmethod
    def from_invitation(cls, invitation: BoardInvitation, now: int) -> InvitationView:
        return cls(
            id=invitation.id,
            board_id=invitation.board_id,
            email=invitation.email,
            role=invitation.role,
            created_by=invitation.created_by,
            created_at=invitation.created_at,
            expires_at=invitation.expires_at,
            used_at=invitation.used_at,
            used_by=invitation.used_by,
            last_sent_at=invitation.last_sent_at,
            status=current_state(invitation, now).value,
            resend_cooldown_seconds=resend_cooldown(invitation, now),
        )


@dataclass(frozen=True)
class InvitationSummary:
    """Public view of a still-valid invitation, looked up by token."""

    board_id: str
    board_title: str
    email: str
    role: str
    valid: bool = True


@dataclass(frozen=True)
class CleanupResult:
    """Outcome of an expiry sweep."""

    deleted: int
    failed: int
