"""
Invitations component ports.

Protocol interfaces for the orchestrator's collaborators.
"""

from __future__ import annotations

from typing import Protocol

from src.core.ports.time import TimePort
from src.domain.entities import Board, BoardInvitation, BoardMember, User


class InvitationRepoPort(Protocol):
    """
    Invitation store.

    Implementations raise PersistenceError on store failure and return None
    (or False) for records that do not exist.
    """

    def create(self, invitation: BoardInvitation) -> None:
        ...

    def get_by_id(self, invitation_id: str) -> BoardInvitation | None:
        ...

    def get_by_token(self, token: str) -> BoardInvitation | None:
        ...

    def list_for_board(self, board_id: str) -> list[BoardInvitation]:
        """Newest first."""
        ...

    def update(self, invitation: BoardInvitation) -> bool:
        """
        Persist email, role and expires_at; used_at, used_by and
        last_sent_at only when set on the given invitation.
        """
        ...

    def mark_used(self, invitation_id: str, user_id: str, used_at: int) -> bool:
        """
        Conditional update: set used_at/used_by only if currently unused.

        Returns True for exactly one caller per invitation.
        """
        ...

    def release_use(self, invitation_id: str, user_id: str) -> bool:
        """Clear a claim previously made by user_id."""
        ...

    def delete(self, invitation_id: str) -> bool:
        ...

    def delete_if_unused(self, invitation_id: str) -> bool:
        """Delete unless the invitation has been claimed."""
        ...

    def list_expired_unused(self, now: int) -> list[BoardInvitation]:
        """Invitations with expires_at < now and used_at unset."""
        ...


class BoardRepoPort(Protocol):
    def get_by_id(self, board_id: str) -> Board | None:
        ...


class BoardMemberRepoPort(Protocol):
    def get(self, board_id: str, user_id: str) -> BoardMember | None:
        ...

    def add_member(self, member: BoardMember) -> BoardMember:
        """Grant (or overwrite) the member's role flags."""
        ...


class UserRepoPort(Protocol):
    def get_by_id(self, user_id: str) -> User | None:
        ...


class InvitationMailerPort(Protocol):
    """Delivery capability needed by the orchestrator (EmailService)."""

    def is_configured(self) -> bool:
        ...

    def send_invitation(
        self,
        to_email: str,
        board_title: str,
        inviter_name: str,
        token: str,
    ) -> None:
        """Raises ProviderError on delivery failure."""
        ...


class TokenGeneratorPort(Protocol):
    def generate(self) -> str:
        ...


__all__ = [
    "BoardMemberRepoPort",
    "BoardRepoPort",
    "InvitationMailerPort",
    "InvitationRepoPort",
    "TimePort",
    "TokenGeneratorPort",
    "UserRepoPort",
]
