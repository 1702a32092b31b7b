"""
Invitations component unit tests.

Covers the orchestrator's consistency rules:
- delivery failure rolls back the freshly created record
- last_sent_at bookkeeping failures never fail the call
- acceptance is use-once, including under a lost claim race
- the expiry sweep only removes unused, expired records
"""

from __future__ import annotations

import logging

import pytest

from src.adapters.clock import FixedClock
from src.components.invitations import InvitationService, InvitationView, merge_membership
from src.domain.entities import Board, BoardInvitation, BoardMember, User
from src.domain.errors import (
    ConflictError,
    EmailNotConfiguredError,
    NotFoundError,
    PermissionDeniedError,
    PersistenceError,
    ProviderError,
    ValidationError,
)
from src.domain.state import INVITE_TTL_SECONDS

# --- Mock Repositories ---


class MockInvitationRepo:
    """In-memory invitation store with injectable failures."""

    def __init__(self) -> None:
        self._items: dict[str, BoardInvitation] = {}
        self.fail_ops: set[str] = set()
        self.fail_delete_ids: set[str] = set()
        self.update_calls = 0

    def _check(self, op: str) -> None:
        if op in self.fail_ops:
            raise PersistenceError(f"{op} failed")

    def create(self, invitation: BoardInvitation) -> None:
        self._check("create")
        self._items[invitation.id] = invitation.model_copy()

    def get_by_id(self, invitation_id: str) -> BoardInvitation | None:
        item = self._items.get(invitation_id)
        return item.model_copy() if item else None

    def get_by_token(self, token: str) -> BoardInvitation | None:
        for item in self._items.values():
            if item.token == token:
                return item.model_copy()
        return None

    def list_for_board(self, board_id: str) -> list[BoardInvitation]:
        items = [i for i in self._items.values() if i.board_id == board_id]
        return [i.model_copy() for i in sorted(items, key=lambda i: i.created_at, reverse=True)]

    def update(self, invitation: BoardInvitation) -> bool:
        self.update_calls += 1
        self._check("update")
        stored = self._items.get(invitation.id)
        if stored is None:
            return False
        stored.email = invitation.email
        stored.role = invitation.role
        stored.expires_at = invitation.expires_at
        if invitation.used_at is not None:
            stored.used_at = invitation.used_at
        if invitation.used_by is not None:
            stored.used_by = invitation.used_by
        if invitation.last_sent_at is not None:
            stored.last_sent_at = invitation.last_sent_at
        return True

    def mark_used(self, invitation_id: str, user_id: str, used_at: int) -> bool:
        self._check("mark_used")
        stored = self._items.get(invitation_id)
        if stored is None or stored.used_at is not None:
            return False
        stored.used_at = used_at
        stored.used_by = user_id
        return True

    def release_use(self, invitation_id: str, user_id: str) -> bool:
        self._check("release_use")
        stored = self._items.get(invitation_id)
        if stored is None or stored.used_by != user_id:
            return False
        stored.used_at = None
        stored.used_by = None
        return True

    def delete(self, invitation_id: str) -> bool:
        self._check("delete")
        if invitation_id in self.fail_delete_ids:
            raise PersistenceError(f"delete {invitation_id} failed")
        return self._items.pop(invitation_id, None) is not None

    def delete_if_unused(self, invitation_id: str) -> bool:
        self._check("delete")
        if invitation_id in self.fail_delete_ids:
            raise PersistenceError(f"delete {invitation_id} failed")
        item = self._items.get(invitation_id)
        if item is None or item.used_at is not None:
            return False
        del self._items[invitation_id]
        return True

    def list_expired_unused(self, now: int) -> list[BoardInvitation]:
        return [
            i.model_copy()
            for i in self._items.values()
            if i.expires_at < now and i.used_at is None
        ]

    # --- Test helpers ---

    def add(self, invitation: BoardInvitation) -> BoardInvitation:
        self._items[invitation.id] = invitation.model_copy()
        return invitation

    def stored(self, invitation_id: str) -> BoardInvitation | None:
        return self._items.get(invitation_id)

    @property
    def count(self) -> int:
        return len(self._items)


class MockBoardRepo:
    def __init__(self, *boards: Board) -> None:
        self._boards = {b.id: b for b in boards}

    def get_by_id(self, board_id: str) -> Board | None:
        return self._boards.get(board_id)


class MockMemberRepo:
    def __init__(self) -> None:
        self._members: dict[tuple[str, str], BoardMember] = {}
        self.add_calls = 0
        self.fail_add = False

    def get(self, board_id: str, user_id: str) -> BoardMember | None:
        return self._members.get((board_id, user_id))

    def add_member(self, member: BoardMember) -> BoardMember:
        self.add_calls += 1
        if self.fail_add:
            raise PersistenceError("member insert failed")
        self._members[(member.board_id, member.user_id)] = member
        return member


class MockUserRepo:
    def __init__(self, *users: User) -> None:
        self._users = {u.id: u for u in users}

    def get_by_id(self, user_id: str) -> User | None:
        return self._users.get(user_id)


class MockMailer:
    def __init__(self, configured: bool = True) -> None:
        self.configured = configured
        self.fail_with: Exception | None = None
        self.sent: list[dict[str, str]] = []

    def is_configured(self) -> bool:
        return self.configured

    def send_invitation(
        self, to_email: str, board_title: str, inviter_name: str, token: str
    ) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(
            {
                "to": to_email,
                "board_title": board_title,
                "inviter_name": inviter_name,
                "token": token,
            }
        )


class SequentialTokens:
    def __init__(self) -> None:
        self.n = 0

    def generate(self) -> str:
        self.n += 1
        return f"token-{self.n:04d}"


# --- Fixtures ---

OWNER = User(id="owner", username="olive", email="olive@x.com", first_name="Olive", last_name="Oak")
GUEST = User(id="guest", username="alice", email="a@x.com")
STRANGER = User(id="stranger", username="sam", email="sam@x.com")
BOARD = Board(id="board-1", title="Roadmap", created_by=OWNER.id)


@pytest.fixture
def repo() -> MockInvitationRepo:
    return MockInvitationRepo()


@pytest.fixture
def members() -> MockMemberRepo:
    return MockMemberRepo()


@pytest.fixture
def mailer() -> MockMailer:
    return MockMailer()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(0)


@pytest.fixture
def service(
    repo: MockInvitationRepo,
    members: MockMemberRepo,
    mailer: MockMailer,
    clock: FixedClock,
) -> InvitationService:
    return InvitationService(
        repo=repo,
        boards=MockBoardRepo(BOARD),
        members=members,
        users=MockUserRepo(OWNER, GUEST, STRANGER),
        mailer=mailer,
        clock=clock,
        tokens=SequentialTokens(),
    )


def make_invitation(**overrides) -> BoardInvitation:
    data = {
        "board_id": BOARD.id,
        "email": "a@x.com",
        "token": "tok",
        "role": "editor",
        "created_by": OWNER.id,
        "created_at": 0,
        "expires_at": INVITE_TTL_SECONDS,
    }
    data.update(overrides)
    return BoardInvitation(**data)


# --- Send ---


class TestSendInvitation:
    def test_creates_pending_invitation(
        self, service: InvitationService, repo: MockInvitationRepo, mailer: MockMailer
    ) -> None:
        inv = service.send_invitation(BOARD.id, "a@x.com", "editor", inviter=OWNER)

        assert inv.expires_at == 604800
        assert inv.created_at == 0
        assert inv.last_sent_at == 0
        assert inv.used_at is None and inv.used_by is None

        stored = repo.stored(inv.id)
        assert stored is not None
        assert stored.last_sent_at == 0
        assert stored.role == "editor"

        assert mailer.sent == [
            {
                "to": "a@x.com",
                "board_title": "Roadmap",
                "inviter_name": "Olive Oak",
                "token": inv.token,
            }
        ]

    def test_expiry_is_fixed_offset(self, service: InvitationService, clock: FixedClock) -> None:
        clock.now = 1_700_000_000
        inv = service.send_invitation(BOARD.id, "a@x.com", None, inviter=OWNER)
        assert inv.expires_at == inv.created_at + INVITE_TTL_SECONDS

    def test_empty_role_defaults_to_viewer(self, service: InvitationService) -> None:
        inv = service.send_invitation(BOARD.id, "a@x.com", "", inviter=OWNER)
        assert inv.role == "viewer"

    def test_unknown_role_rejected(
        self, service: InvitationService, repo: MockInvitationRepo
    ) -> None:
        with pytest.raises(ValidationError):
            service.send_invitation(BOARD.id, "a@x.com", "owner", inviter=OWNER)
        assert repo.count == 0

    @pytest.mark.parametrize("email", ["", "not-an-email", "a@", "@x.com", "a b@x.com"])
    def test_invalid_email_rejected(
        self, service: InvitationService, repo: MockInvitationRepo, email: str
    ) -> None:
        with pytest.raises(ValidationError):
            service.send_invitation(BOARD.id, email, "viewer", inviter=OWNER)
        assert repo.count == 0

    def test_unknown_board(self, service: InvitationService) -> None:
        with pytest.raises(NotFoundError) as exc:
            service.send_invitation("missing", "a@x.com", "viewer", inviter=OWNER)
        assert exc.value.resource == "board"

    def test_non_manager_denied(
        self, service: InvitationService, repo: MockInvitationRepo, mailer: MockMailer
    ) -> None:
        with pytest.raises(PermissionDeniedError):
            service.send_invitation(BOARD.id, "a@x.com", "viewer", inviter=STRANGER)
        assert repo.count == 0
        assert mailer.sent == []

    def test_admin_member_allowed(
        self, service: InvitationService, members: MockMemberRepo
    ) -> None:
        members.add_member(BoardMember(board_id=BOARD.id, user_id=STRANGER.id, scheme_admin=True))
        inv = service.send_invitation(BOARD.id, "b@x.com", "viewer", inviter=STRANGER)
        assert inv.created_by == STRANGER.id

    def test_email_not_configured(
        self, service: InvitationService, repo: MockInvitationRepo, mailer: MockMailer
    ) -> None:
        mailer.configured = False
        with pytest.raises(EmailNotConfiguredError) as exc:
            service.send_invitation(BOARD.id, "a@x.com", "viewer", inviter=OWNER)
        assert "not configured" in str(exc.value)
        assert repo.count == 0

    def test_no_mailer_at_all(self, repo: MockInvitationRepo, clock: FixedClock) -> None:
        service = InvitationService(
            repo=repo,
            boards=MockBoardRepo(BOARD),
            members=MockMemberRepo(),
            users=MockUserRepo(OWNER),
            mailer=None,
            clock=clock,
        )
        assert service.is_email_configured() is False
        with pytest.raises(EmailNotConfiguredError):
            service.send_invitation(BOARD.id, "a@x.com", "viewer", inviter=OWNER)

    def test_delivery_failure_rolls_back(
        self, service: InvitationService, repo: MockInvitationRepo, mailer: MockMailer
    ) -> None:
        mailer.fail_with = ProviderError("connection refused", provider="smtp")

        with pytest.raises(ProviderError):
            service.send_invitation(BOARD.id, "a@x.com", "editor", inviter=OWNER)

        assert repo.count == 0

    def test_rollback_failure_surfaces_delivery_error(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        mailer: MockMailer,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        mailer.fail_with = ProviderError("timeout", provider="postmark")
        repo.fail_ops.add("delete")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ProviderError) as exc:
                service.send_invitation(BOARD.id, "a@x.com", "editor", inviter=OWNER)

        assert "timeout" in str(exc.value)
        messages = [r.getMessage() for r in caplog.records]
        assert any("Delivery of invitation" in m and "timeout" in m for m in messages)
        assert any("Rollback delete" in m for m in messages)

    def test_create_failure_aborts_before_delivery(
        self, service: InvitationService, repo: MockInvitationRepo, mailer: MockMailer
    ) -> None:
        repo.fail_ops.add("create")
        with pytest.raises(PersistenceError):
            service.send_invitation(BOARD.id, "a@x.com", "viewer", inviter=OWNER)
        assert mailer.sent == []

    def test_last_sent_persist_failure_is_swallowed(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        mailer: MockMailer,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        repo.fail_ops.add("update")

        with caplog.at_level(logging.WARNING):
            inv = service.send_invitation(BOARD.id, "a@x.com", "viewer", inviter=OWNER)

        assert inv.last_sent_at == 0
        assert len(mailer.sent) == 1
        stored = repo.stored(inv.id)
        assert stored is not None
        assert stored.last_sent_at is None
        assert any("last_sent_at" in r.getMessage() for r in caplog.records)


# --- Resend ---


class TestResendInvitation:
    def test_cooldown_scenario(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        mailer: MockMailer,
        clock: FixedClock,
    ) -> None:
        """Created at t=0; t=30 rejected with 30s left; t=61 accepted."""
        inv = service.send_invitation(BOARD.id, "a@x.com", "editor", inviter=OWNER)
        assert inv.expires_at == 604800

        clock.now = 30
        with pytest.raises(ConflictError) as exc:
            service.resend_invitation(inv.id)
        assert exc.value.reason == "cooldown"
        assert exc.value.cooldown_remaining == 30
        assert "30 seconds" in str(exc.value)

        clock.now = 61
        resent = service.resend_invitation(inv.id)
        assert resent.last_sent_at == 61
        stored = repo.stored(inv.id)
        assert stored is not None and stored.last_sent_at == 61

        assert len(mailer.sent) == 2
        assert mailer.sent[1]["token"] == inv.token

    def test_used_invitation_rejected(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        inv = repo.add(make_invitation(used_at=10, used_by=GUEST.id))
        clock.now = 100
        with pytest.raises(ConflictError) as exc:
            service.resend_invitation(inv.id)
        assert exc.value.reason == "used"

    def test_expired_invitation_rejected(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        inv = repo.add(make_invitation())
        clock.now = INVITE_TTL_SECONDS + 1
        with pytest.raises(ConflictError) as exc:
            service.resend_invitation(inv.id)
        assert exc.value.reason == "expired"

    def test_not_found(self, service: InvitationService) -> None:
        with pytest.raises(NotFoundError):
            service.resend_invitation("nope")

    def test_non_manager_denied(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        inv = repo.add(make_invitation())
        clock.now = 100
        with pytest.raises(PermissionDeniedError):
            service.resend_invitation(inv.id, actor=STRANGER)

    def test_delivery_failure_keeps_record_and_timestamp(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        mailer: MockMailer,
        clock: FixedClock,
    ) -> None:
        inv = repo.add(make_invitation(last_sent_at=0))
        clock.now = 100
        mailer.fail_with = ProviderError("bounced")

        with pytest.raises(ProviderError):
            service.resend_invitation(inv.id)

        stored = repo.stored(inv.id)
        assert stored is not None
        assert stored.last_sent_at == 0

    def test_last_sent_persist_failure_is_swallowed(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        mailer: MockMailer,
        clock: FixedClock,
    ) -> None:
        inv = repo.add(make_invitation(last_sent_at=0))
        clock.now = 100
        repo.fail_ops.add("update")

        resent = service.resend_invitation(inv.id)

        assert resent.last_sent_at == 100
        assert len(mailer.sent) == 1

    def test_resend_after_cooldown_updates_timestamp(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        inv = repo.add(make_invitation(last_sent_at=500))
        clock.now = 500 + 60
        resent = service.resend_invitation(inv.id)
        assert resent.last_sent_at == 560


# --- Accept ---


class TestAcceptInvitation:
    def test_grants_membership_and_marks_used(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        members: MockMemberRepo,
        clock: FixedClock,
    ) -> None:
        inv = repo.add(make_invitation(role="editor"))
        clock.now = 1000

        member = service.accept_invitation(inv.token, GUEST)

        assert member.scheme_editor is True
        assert not (member.scheme_admin or member.scheme_commenter or member.scheme_viewer)
        assert members.get(BOARD.id, GUEST.id) == member

        stored = repo.stored(inv.id)
        assert stored is not None
        assert stored.used_at == 1000
        assert stored.used_by == GUEST.id

    def test_second_accept_conflicts(
        self, service: InvitationService, repo: MockInvitationRepo, members: MockMemberRepo
    ) -> None:
        inv = repo.add(make_invitation())
        service.accept_invitation(inv.token, GUEST)

        with pytest.raises(ConflictError) as exc:
            service.accept_invitation(inv.token, GUEST)

        assert exc.value.reason == "used"
        assert members.add_calls == 1

    def test_email_mismatch_rejected(
        self, service: InvitationService, repo: MockInvitationRepo, members: MockMemberRepo
    ) -> None:
        inv = repo.add(make_invitation())
        with pytest.raises(ValidationError) as exc:
            service.accept_invitation(inv.token, STRANGER)
        assert "does not match" in str(exc.value)
        assert members.add_calls == 0
        stored = repo.stored(inv.id)
        assert stored is not None and stored.used_at is None

    def test_email_match_is_case_sensitive(
        self, service: InvitationService, repo: MockInvitationRepo
    ) -> None:
        inv = repo.add(make_invitation(email="A@x.com"))
        with pytest.raises(ValidationError):
            service.accept_invitation(inv.token, GUEST)

    def test_expired_rejected(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        inv = repo.add(make_invitation())
        clock.now = INVITE_TTL_SECONDS + 1
        with pytest.raises(ConflictError) as exc:
            service.accept_invitation(inv.token, GUEST)
        assert exc.value.reason == "expired"

    def test_accept_at_exact_expiry_is_allowed(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        inv = repo.add(make_invitation())
        clock.now = INVITE_TTL_SECONDS
        service.accept_invitation(inv.token, GUEST)

    def test_unknown_token(self, service: InvitationService) -> None:
        with pytest.raises(NotFoundError):
            service.accept_invitation("nope", GUEST)

    @pytest.mark.parametrize(
        ("role", "flag"),
        [
            ("admin", "scheme_admin"),
            ("editor", "scheme_editor"),
            ("commenter", "scheme_commenter"),
            ("viewer", "scheme_viewer"),
            ("", "scheme_viewer"),
            ("superuser", "scheme_viewer"),
        ],
    )
    def test_role_mapping(
        self, service: InvitationService, repo: MockInvitationRepo, role: str, flag: str
    ) -> None:
        inv = repo.add(make_invitation(role=role))
        member = service.accept_invitation(inv.token, GUEST)

        flags = {
            "scheme_admin": member.scheme_admin,
            "scheme_editor": member.scheme_editor,
            "scheme_commenter": member.scheme_commenter,
            "scheme_viewer": member.scheme_viewer,
        }
        assert [name for name, on in flags.items() if on] == [flag]

    def test_mark_used_failure_still_succeeds(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        members: MockMemberRepo,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        inv = repo.add(make_invitation())
        repo.fail_ops.add("mark_used")

        with caplog.at_level(logging.WARNING):
            member = service.accept_invitation(inv.token, GUEST)

        assert member.scheme_editor is True
        assert members.add_calls == 1
        assert any("granting membership anyway" in r.getMessage() for r in caplog.records)

    def test_grant_failure_releases_claim(
        self, service: InvitationService, repo: MockInvitationRepo, members: MockMemberRepo
    ) -> None:
        inv = repo.add(make_invitation())
        members.fail_add = True

        with pytest.raises(PersistenceError):
            service.accept_invitation(inv.token, GUEST)

        stored = repo.stored(inv.id)
        assert stored is not None
        assert stored.used_at is None and stored.used_by is None

        # Retry succeeds once the member store recovers
        members.fail_add = False
        service.accept_invitation(inv.token, GUEST)

    def test_lost_claim_race_conflicts(
        self, service: InvitationService, repo: MockInvitationRepo, members: MockMemberRepo
    ) -> None:
        """Another accept claims the invitation between our read and our claim."""
        inv = repo.add(make_invitation())
        original_mark_used = repo.mark_used

        def racing_mark_used(invitation_id: str, user_id: str, used_at: int) -> bool:
            original_mark_used(invitation_id, "someone-else", used_at)
            return original_mark_used(invitation_id, user_id, used_at)

        repo.mark_used = racing_mark_used  # type: ignore[method-assign]

        with pytest.raises(ConflictError) as exc:
            service.accept_invitation(inv.token, GUEST)

        assert exc.value.reason == "used"
        assert members.add_calls == 0

    def test_swept_during_accept_is_not_found(
        self, service: InvitationService, repo: MockInvitationRepo, members: MockMemberRepo
    ) -> None:
        inv = repo.add(make_invitation())
        original_mark_used = repo.mark_used

        def swept_mark_used(invitation_id: str, user_id: str, used_at: int) -> bool:
            repo.delete(invitation_id)
            return original_mark_used(invitation_id, user_id, used_at)

        repo.mark_used = swept_mark_used  # type: ignore[method-assign]

        with pytest.raises(NotFoundError):
            service.accept_invitation(inv.token, GUEST)
        assert members.add_calls == 0

    def test_existing_membership_not_downgraded(
        self, service: InvitationService, repo: MockInvitationRepo, members: MockMemberRepo
    ) -> None:
        members.add_member(BoardMember(board_id=BOARD.id, user_id=GUEST.id, scheme_admin=True))
        inv = repo.add(make_invitation(role="viewer"))

        member = service.accept_invitation(inv.token, GUEST)

        assert member.scheme_admin is True
        assert member.scheme_viewer is True


class TestMergeMembership:
    def test_no_existing(self) -> None:
        granted = BoardMember(board_id="b", user_id="u", scheme_viewer=True)
        assert merge_membership(None, granted) is granted

    def test_flags_are_unioned(self) -> None:
        existing = BoardMember(board_id="b", user_id="u", scheme_editor=True)
        granted = BoardMember(board_id="b", user_id="u", scheme_commenter=True)
        merged = merge_membership(existing, granted)
        assert merged.scheme_editor and merged.scheme_commenter
        assert not merged.scheme_admin


# --- Revoke ---


class TestRevokeInvitation:
    @pytest.mark.parametrize(
        "overrides",
        [{}, {"used_at": 5, "used_by": "guest"}, {"expires_at": 1}],
    )
    def test_deletes_in_any_state(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        clock: FixedClock,
        overrides: dict,
    ) -> None:
        inv = repo.add(make_invitation(**overrides))
        clock.now = 100
        service.revoke_invitation(inv.id, actor=OWNER)
        assert repo.stored(inv.id) is None

    def test_not_found(self, service: InvitationService) -> None:
        with pytest.raises(NotFoundError):
            service.revoke_invitation("nope")

    def test_non_manager_denied(
        self, service: InvitationService, repo: MockInvitationRepo
    ) -> None:
        inv = repo.add(make_invitation())
        with pytest.raises(PermissionDeniedError):
            service.revoke_invitation(inv.id, actor=GUEST)
        assert repo.stored(inv.id) is not None

    def test_revoked_token_cannot_be_accepted(
        self, service: InvitationService, repo: MockInvitationRepo
    ) -> None:
        inv = repo.add(make_invitation())
        service.revoke_invitation(inv.id)
        with pytest.raises(NotFoundError):
            service.accept_invitation(inv.token, GUEST)


# --- Cleanup ---


class TestCleanupExpired:
    def test_sweeps_only_unused_expired(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        expired = repo.add(make_invitation(token="t1", expires_at=600000))
        used = repo.add(
            make_invitation(token="t2", expires_at=600000, used_at=500000, used_by=GUEST.id)
        )
        live = repo.add(make_invitation(token="t3", expires_at=800000))
        clock.now = 700000

        result = service.cleanup_expired()

        assert result.deleted == 1
        assert result.failed == 0
        assert repo.stored(expired.id) is None
        assert repo.stored(used.id) is not None
        assert repo.stored(live.id) is not None

    def test_expiry_boundary_is_strict(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        inv = repo.add(make_invitation(expires_at=700000))
        clock.now = 700000
        assert service.cleanup_expired().deleted == 0
        assert repo.stored(inv.id) is not None

    def test_invitation_claimed_after_listing_is_kept(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        clock: FixedClock,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        inv = repo.add(make_invitation(expires_at=700000))
        clock.now = 700001
        listed = repo.list_expired_unused

        def list_then_claim(now: int) -> list[BoardInvitation]:
            candidates = listed(now)
            assert repo.mark_used(inv.id, GUEST.id, 700000) is True
            return candidates

        monkeypatch.setattr(repo, "list_expired_unused", list_then_claim)

        result = service.cleanup_expired()

        assert result.deleted == 0
        assert result.failed == 0
        stored = repo.stored(inv.id)
        assert stored is not None
        assert stored.used_by == GUEST.id

    def test_per_record_failure_does_not_abort(
        self,
        service: InvitationService,
        repo: MockInvitationRepo,
        clock: FixedClock,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        bad = repo.add(make_invitation(token="t1", expires_at=10))
        good = repo.add(make_invitation(token="t2", expires_at=10))
        repo.fail_delete_ids.add(bad.id)
        clock.now = 100

        with caplog.at_level(logging.ERROR):
            result = service.cleanup_expired()

        assert result.deleted == 1
        assert result.failed == 1
        assert repo.stored(good.id) is None
        assert repo.stored(bad.id) is not None
        assert any(bad.id in r.getMessage() for r in caplog.records)


# --- Queries ---


class TestListInvitations:
    def test_views_hide_token_and_compute_cooldown(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        repo.add(make_invitation(token="secret-1", created_at=0, last_sent_at=0))
        repo.add(make_invitation(token="secret-2", created_at=5, last_sent_at=5))
        clock.now = 20

        views = service.list_invitations(BOARD.id, actor=OWNER)

        assert [v.created_at for v in views] == [5, 0]
        assert [v.resend_cooldown_seconds for v in views] == [45, 40]
        assert all(isinstance(v, InvitationView) for v in views)
        assert not any(hasattr(v, "token") for v in views)
        assert views[0].status == "pending"

    def test_unknown_board(self, service: InvitationService) -> None:
        with pytest.raises(NotFoundError):
            service.list_invitations("missing", actor=OWNER)

    def test_non_manager_denied(self, service: InvitationService) -> None:
        with pytest.raises(PermissionDeniedError):
            service.list_invitations(BOARD.id, actor=GUEST)


class TestDescribeInvitation:
    def test_summary(self, service: InvitationService, repo: MockInvitationRepo) -> None:
        inv = repo.add(make_invitation(role=""))
        summary = service.describe_invitation(inv.token)
        assert summary.board_title == "Roadmap"
        assert summary.board_id == BOARD.id
        assert summary.email == "a@x.com"
        assert summary.role == "viewer"
        assert summary.valid is True

    def test_unknown_token(self, service: InvitationService) -> None:
        with pytest.raises(NotFoundError):
            service.describe_invitation("nope")

    def test_used_token(self, service: InvitationService, repo: MockInvitationRepo) -> None:
        inv = repo.add(make_invitation(used_at=1, used_by=GUEST.id))
        with pytest.raises(ConflictError) as exc:
            service.describe_invitation(inv.token)
        assert exc.value.reason == "used"

    def test_expired_token(
        self, service: InvitationService, repo: MockInvitationRepo, clock: FixedClock
    ) -> None:
        inv = repo.add(make_invitation())
        clock.now = INVITE_TTL_SECONDS + 5
        with pytest.raises(ConflictError) as exc:
            service.describe_invitation(inv.token)
        assert exc.value.reason == "expired"
