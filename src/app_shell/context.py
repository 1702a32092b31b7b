from __future__ import annotations

import logging
from dataclasses import dataclass

from src.adapters.clock import SystemClock
from src.adapters.email import build_email_service
from src.adapters.sqlite.repos import (
    SQLiteBoardMemberRepo,
    SQLiteBoardRepo,
    SQLiteInvitationRepo,
    SQLiteUserRepo,
)
from src.components.email import EmailConfig, EmailService
from src.components.invitations import InvitationService
from src.core.ports.time import TimePort
from src.domain.errors import EmailNotConfiguredError
from src.rules.models import Rules

logger = logging.getLogger(__name__)


def load_email_service(rules: Rules) -> EmailService | None:
    """Build the delivery service, or None when no provider is configured."""
    try:
        return build_email_service(
            EmailConfig.from_rules(rules.email),
            server_root=rules.server.server_root,
        )
    except EmailNotConfiguredError as e:
        logger.warning("Email delivery disabled: %s", e)
        return None


@dataclass
class ServiceContext:
    invitation_service: InvitationService
    email_service: EmailService | None
    invitation_repo: SQLiteInvitationRepo
    board_repo: SQLiteBoardRepo
    member_repo: SQLiteBoardMemberRepo
    user_repo: SQLiteUserRepo
    rules: Rules
    clock: TimePort

    @classmethod
    def create(cls, db_path: str, rules: Rules, clock: TimePort | None = None) -> ServiceContext:
        # Adapters
        invitation_repo = SQLiteInvitationRepo(db_path)
        board_repo = SQLiteBoardRepo(db_path)
        member_repo = SQLiteBoardMemberRepo(db_path)
        user_repo = SQLiteUserRepo(db_path)
        clock = clock or SystemClock()

        email_service = load_email_service(rules)

        # Services
        invitation_service = InvitationService(
            repo=invitation_repo,
            boards=board_repo,
            members=member_repo,
            users=user_repo,
            mailer=email_service,
            clock=clock,
        )

        return cls(
            invitation_service=invitation_service,
            email_service=email_service,
            invitation_repo=invitation_repo,
            board_repo=board_repo,
            member_repo=member_repo,
            user_repo=user_repo,
            rules=rules,
            clock=clock,
        )
