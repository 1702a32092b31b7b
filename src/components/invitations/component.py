"""
InvitationService component.

Coordinates the token generator, state machine, delivery service and store
to run the board-invitation lifecycle: send, resend, accept, revoke and the
expiry sweep.

Consistency rules:
- A record whose first delivery fails is deleted before the delivery error
  is raised. If that delete fails too, both errors are logged and the
  delivery error is what the caller sees.
- last_sent_at is bookkeeping: once the email is out, failing to persist it
  is logged and the call still succeeds.
- Acceptance claims the invitation with a conditional "mark used" before
  granting membership, so of two concurrent accepts only one grants. The
  membership grant is authoritative: if the claim cannot be persisted at all
  the grant still goes ahead, and if the grant fails the claim is released.
"""

from __future__ import annotations

import logging

from src.components.invitations.models import (
    CleanupResult,
    InvitationSummary,
    InvitationView,
    validate_email,
)
from src.components.invitations.ports import (
    BoardMemberRepoPort,
    BoardRepoPort,
    InvitationMailerPort,
    InvitationRepoPort,
    TimePort,
    TokenGeneratorPort,
    UserRepoPort,
)
from src.components.tokens import SecureTokenGenerator
from src.domain.entities import Board, BoardInvitation, BoardMember, User
from src.domain.errors import (
    ConflictError,
    EmailNotConfiguredError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ValidationError,
)
from src.domain.policy import PolicyEngine
from src.domain.state import (
    compute_expires_at,
    ensure_pending,
    ensure_resendable,
    is_known_role,
    member_from_role,
    normalize_role,
)

logger = logging.getLogger(__name__)


def merge_membership(existing: BoardMember | None, granted: BoardMember) -> BoardMember:
    """Combine a new grant with an existing membership; flags are never removed."""
    if existing is None:
        return granted
    return BoardMember(
        board_id=granted.board_id,
        user_id=granted.user_id,
        scheme_admin=existing.scheme_admin or granted.scheme_admin,
        scheme_editor=existing.scheme_editor or granted.scheme_editor,
        scheme_commenter=existing.scheme_commenter or granted.scheme_commenter,
        scheme_viewer=existing.scheme_viewer or granted.scheme_viewer,
    )


class InvitationService:
    """Board invitation orchestrator."""

    def __init__(
        self,
        repo: InvitationRepoPort,
        boards: BoardRepoPort,
        members: BoardMemberRepoPort,
        users: UserRepoPort,
        mailer: InvitationMailerPort | None,
        clock: TimePort,
        tokens: TokenGeneratorPort | None = None,
        policy: PolicyEngine | None = None,
    ) -> None:
        self.repo = repo
        self.boards = boards
        self.members = members
        self.users = users
        self.mailer = mailer
        self.clock = clock
        self.tokens = tokens or SecureTokenGenerator()
        self.policy = policy or PolicyEngine()

    # --- Guards ---

    def is_email_configured(self) -> bool:
        return self.mailer is not None and self.mailer.is_configured()

    def _require_mailer(self) -> InvitationMailerPort:
        if self.mailer is None or not self.mailer.is_configured():
            raise EmailNotConfiguredError()
        return self.mailer

    def _get_board(self, board_id: str) -> Board:
        board = self.boards.get_by_id(board_id)
        if board is None:
            raise NotFoundError("board", board_id)
        return board

    def _get_invitation(self, invitation_id: str) -> BoardInvitation:
        invitation = self.repo.get_by_id(invitation_id)
        if invitation is None:
            raise NotFoundError("invitation", invitation_id)
        return invitation

    def ensure_can_manage(self, actor: User, board: Board) -> None:
        member = self.members.get(board.id, actor.id)
        if not self.policy.can_manage_board(actor, board, member):
            raise PermissionDeniedError("access denied to manage board invitations")

    def _check_actor(self, actor: User | None, board: Board) -> None:
        # actor=None is a trusted internal caller (CLI, sweeper)
        if actor is not None:
            self.ensure_can_manage(actor, board)

    # --- Send ---

    def send_invitation(
        self,
        board_id: str,
        email: str,
        role: str | None,
        inviter: User,
    ) -> BoardInvitation:
        """
        Create a pending invitation and email its link.

        Raises:
            ValidationError: malformed email or unknown role
            NotFoundError: board missing
            PermissionDeniedError: inviter cannot manage the board
            EmailNotConfiguredError: delivery unavailable
            PersistenceError: the record could not be created
            ProviderError: delivery failed (record rolled back)
        """
        address = validate_email(email)
        role = normalize_role(role)
        if not is_known_role(role):
            raise ValidationError(f"invalid role: {role}", field="role")

        board = self._get_board(board_id)
        self.ensure_can_manage(inviter, board)
        mailer = self._require_mailer()

        now = self.clock.now_unix()
        invitation = BoardInvitation(
            board_id=board.id,
            email=address,
            token=self.tokens.generate(),
            role=role,
            created_by=inviter.id,
            created_at=now,
            expires_at=compute_expires_at(now),
        )
        self.repo.create(invitation)

        try:
            mailer.send_invitation(
                to_email=invitation.email,
                board_title=board.title,
                inviter_name=inviter.display_name,
                token=invitation.token,
            )
        except Exception as e:
            logger.error(
                "Delivery of invitation %s to %s failed: %s", invitation.id, invitation.email, e
            )
            self._rollback(invitation)
            raise

        self._record_sent(invitation, now)
        logger.info(
            "Invitation %s sent for board %s to %s (role=%s)",
            invitation.id,
            board.id,
            invitation.email,
            invitation.role,
        )
        return invitation

    def _rollback(self, invitation: BoardInvitation) -> None:
        try:
            self.repo.delete(invitation.id)
        except PersistenceError as e:
            logger.error("Rollback delete of invitation %s failed: %s", invitation.id, e)

    def _record_sent(self, invitation: BoardInvitation, sent_at: int) -> None:
        previous = invitation.last_sent_at
        invitation.last_sent_at = sent_at if previous is None else max(previous, sent_at)
        try:
            if not self.repo.update(invitation):
                logger.warning(
                    "Invitation %s disappeared before last_sent_at was recorded", invitation.id
                )
        except PersistenceError as e:
            logger.warning("Failed to record last_sent_at for invitation %s: %s", invitation.id, e)

    # --- Resend ---

    def resend_invitation(self, invitation_id: str, actor: User | None = None) -> BoardInvitation:
        """
        Email the original link again.

        Raises:
            NotFoundError: invitation, board or inviter missing
            PermissionDeniedError: actor cannot manage the board
            ConflictError: used, expired, or still in cooldown
            EmailNotConfiguredError / ProviderError: delivery problems
        """
        invitation = self._get_invitation(invitation_id)
        board = self._get_board(invitation.board_id)
        self._check_actor(actor, board)

        now = self.clock.now_unix()
        ensure_resendable(invitation, now)
        mailer = self._require_mailer()

        inviter = self.users.get_by_id(invitation.created_by)
        if inviter is None:
            raise NotFoundError("user", invitation.created_by)

        mailer.send_invitation(
            to_email=invitation.email,
            board_title=board.title,
            inviter_name=inviter.display_name,
            token=invitation.token,
        )
        self._record_sent(invitation, now)
        logger.info("Invitation %s resent to %s", invitation.id, invitation.email)
        return invitation

    # --- Accept ---

    def accept_invitation(self, token: str, user: User) -> BoardMember:
        """
        Redeem a token into board membership.

        Raises:
            NotFoundError: unknown token (or swept mid-flight)
            ConflictError: used or expired
            ValidationError: user's email differs from the invited address
        """
        invitation = self.repo.get_by_token(token)
        if invitation is None:
            raise NotFoundError("invitation")

        now = self.clock.now_unix()
        ensure_pending(invitation, now)

        # Exact, case-sensitive comparison
        if user.email != invitation.email:
            raise ValidationError("invitation email does not match your account", field="email")

        claimed = self._claim(invitation, user, now)
        if claimed is False:
            if self.repo.get_by_token(token) is None:
                raise NotFoundError("invitation")
            raise ConflictError("used")

        granted = member_from_role(invitation.board_id, user.id, invitation.role)
        try:
            member = self.members.add_member(
                merge_membership(self.members.get(invitation.board_id, user.id), granted)
            )
        except Exception:
            if claimed:
                self._release(invitation, user)
            raise

        invitation.used_at = now
        invitation.used_by = user.id
        logger.info(
            "Invitation %s accepted: user %s joined board %s as %s",
            invitation.id,
            user.id,
            invitation.board_id,
            normalize_role(invitation.role),
        )
        return member

    def _claim(self, invitation: BoardInvitation, user: User, now: int) -> bool | None:
        """True: claimed. False: someone else holds it. None: store failed."""
        try:
            return self.repo.mark_used(invitation.id, user.id, now)
        except PersistenceError as e:
            logger.warning(
                "Failed to mark invitation %s used by %s, granting membership anyway: %s",
                invitation.id,
                user.id,
                e,
            )
            return None

    def _release(self, invitation: BoardInvitation, user: User) -> None:
        try:
            self.repo.release_use(invitation.id, user.id)
        except PersistenceError as e:
            logger.error("Failed to release claim on invitation %s: %s", invitation.id, e)

    # --- Revoke / Sweep ---

    def revoke_invitation(self, invitation_id: str, actor: User | None = None) -> None:
        """Delete the invitation whatever its state."""
        invitation = self._get_invitation(invitation_id)
        if actor is not None:
            self.ensure_can_manage(actor, self._get_board(invitation.board_id))

        if not self.repo.delete(invitation.id):
            raise NotFoundError("invitation", invitation_id)
        logger.info("Invitation %s revoked", invitation.id)

    def cleanup_expired(self) -> CleanupResult:
        """Delete unused invitations whose expiry has passed."""
        now = self.clock.now_unix()
        expired = self.repo.list_expired_unused(now)

        deleted = 0
        failed = 0
        for invitation in expired:
            try:
                if self.repo.delete_if_unused(invitation.id):
                    deleted += 1
                else:
                    logger.debug("Invitation %s claimed or removed before sweep", invitation.id)
            except PersistenceError:
                failed += 1
                logger.exception("Failed to delete expired invitation %s", invitation.id)

        if expired:
            logger.info("Expired invitation sweep: deleted=%d failed=%d", deleted, failed)
        return CleanupResult(deleted=deleted, failed=failed)

    # --- Queries ---

    def list_invitations(self, board_id: str, actor: User | None = None) -> list[InvitationView]:
        board = self._get_board(board_id)
        self._check_actor(actor, board)
        now = self.clock.now_unix()
        return [InvitationView.from_invitation(inv, now) for inv in self.repo.list_for_board(board.id)]

    def describe_invitation(self, token: str) -> InvitationSummary:
        """Public lookup used by the invite landing page."""
        invitation = self.repo.get_by_token(token)
        if invitation is None:
            raise NotFoundError("invitation")

        ensure_pending(invitation, self.clock.now_unix())
        board = self._get_board(invitation.board_id)
        return InvitationSummary(
            board_id=board.id,
            board_title=board.title,
            email=invitation.email,
            role=normalize_role(invitation.role),
        )
