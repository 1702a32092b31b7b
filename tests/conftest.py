import os
from pathlib import Path

import pytest

from src.adapters.clock import FixedClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.adapters.sqlite.repos import (
    SQLiteBoardMemberRepo,
    SQLiteBoardRepo,
    SQLiteInvitationRepo,
    SQLiteUserRepo,
)
from src.components.email import EmailConfig, EmailService
from src.components.invitations import InvitationService
from src.domain.entities import Board, BoardMember, User

PROJECT_ROOT = Path(__file__).resolve().parents[1]
MIGRATIONS_DIR = str(PROJECT_ROOT / "migrations")


@pytest.fixture
def db_path(tmp_path):
    """Migrated SQLite database in a temp dir."""
    path = os.path.join(str(tmp_path), "boards.db")
    SQLiteMigrator(path, MIGRATIONS_DIR).run_migrations()
    return path


@pytest.fixture
def dev_email():
    return DevEmailAdapter()


@pytest.fixture
def clock():
    return FixedClock(1_700_000_000)


@pytest.fixture
def owner(db_path):
    return SQLiteUserRepo(db_path).save(
        User(username="olive", email="olive@example.com", first_name="Olive", last_name="Oak")
    )


@pytest.fixture
def guest(db_path):
    return SQLiteUserRepo(db_path).save(User(username="alice", email="alice@example.com"))


@pytest.fixture
def board(db_path, owner):
    board = SQLiteBoardRepo(db_path).save(Board(title="Roadmap", created_by=owner.id))
    SQLiteBoardMemberRepo(db_path).add_member(
        BoardMember(board_id=board.id, user_id=owner.id, scheme_admin=True)
    )
    return board


@pytest.fixture
def invitation_service(db_path, dev_email, clock):
    """
    InvitationService wired to real SQLite repos and the dev email provider.
    """
    email_service = EmailService(
        provider=dev_email,
        config=EmailConfig(from_email="noreply@boards.example.com", from_name="Boards"),
        server_root="https://boards.example.com",
    )
    return InvitationService(
        repo=SQLiteInvitationRepo(db_path),
        boards=SQLiteBoardRepo(db_path),
        members=SQLiteBoardMemberRepo(db_path),
        users=SQLiteUserRepo(db_path),
        mailer=email_service,
        clock=clock,
    )
