"""
Invitation state machine.

Pure predicates over an invitation snapshot and the current time.

States:
- pending → used (acceptance, terminal)
- pending → expired (time based, detected on read, terminal)
- pending → pending (resend, once the cooldown has elapsed)
"""

from __future__ import annotations

from enum import Enum

from src.domain.entities import DEFAULT_ROLE, INVITATION_ROLES, BoardInvitation, BoardMember
from src.domain.errors import ConflictError

INVITE_TTL_SECONDS = 7 * 24 * 60 * 60
RESEND_COOLDOWN_SECONDS = 60


class InvitationState(Enum):
    PENDING = "pending"
    USED = "used"
    EXPIRED = "expired"


def compute_expires_at(created_at: int) -> int:
    return created_at + INVITE_TTL_SECONDS


def is_expired(invitation: BoardInvitation, now: int) -> bool:
    return now > invitation.expires_at


def is_used(invitation: BoardInvitation) -> bool:
    return invitation.used_at is not None


def resend_cooldown(invitation: BoardInvitation, now: int) -> int:
    """Seconds left before the invitation may be sent again (0 when free)."""
    if invitation.last_sent_at is None:
        return 0
    return max(0, RESEND_COOLDOWN_SECONDS - (now - invitation.last_sent_at))


def can_resend(invitation: BoardInvitation, now: int) -> bool:
    return resend_cooldown(invitation, now) == 0


def current_state(invitation: BoardInvitation, now: int) -> InvitationState:
    # Acceptance is the stronger terminal: a used invitation stays used after expiry.
    if is_used(invitation):
        return InvitationState.USED
    if is_expired(invitation, now):
        return InvitationState.EXPIRED
    return InvitationState.PENDING


def ensure_pending(invitation: BoardInvitation, now: int) -> None:
    """Raise ConflictError unless the invitation is still pending."""
    state = current_state(invitation, now)
    if state is InvitationState.USED:
        raise ConflictError("used")
    if state is InvitationState.EXPIRED:
        raise ConflictError("expired")


def ensure_resendable(invitation: BoardInvitation, now: int) -> None:
    ensure_pending(invitation, now)
    remaining = resend_cooldown(invitation, now)
    if remaining > 0:
        raise ConflictError("cooldown", cooldown_remaining=remaining)


def normalize_role(role: str | None) -> str:
    return role or DEFAULT_ROLE


def is_known_role(role: str) -> bool:
    return role in INVITATION_ROLES


def member_from_role(board_id: str, user_id: str, role: str | None) -> BoardMember:
    """
    Build the membership granted by an accepted invitation.

    Unrecognised or empty roles fall back to viewer.
    """
    member = BoardMember(board_id=board_id, user_id=user_id)
    if role == "admin":
        member.scheme_admin = True
    elif role == "editor":
        member.scheme_editor = True
    elif role == "commenter":
        member.scheme_commenter = True
    else:
        member.scheme_viewer = True
    return member
