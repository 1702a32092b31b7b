import os
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from src.adapters.clock import SystemClock
from src.adapters.sqlite.repos import (
    SQLiteBoardMemberRepo,
    SQLiteBoardRepo,
    SQLiteInvitationRepo,
    SQLiteUserRepo,
)
from src.api.auth_utils import read_token_subject
from src.app_shell.context import load_email_service
from src.components.email import EmailService
from src.components.invitations import InvitationService
from src.domain.entities import User
from src.rules.loader import load_rules
from src.rules.models import Rules


# --- Settings ---
class Settings:
    """Filesystem locations, resolved from BOARDS_* env vars once per process."""

    def __init__(self) -> None:
        project_dir = Path.cwd()
        self.data_dir = Path(os.environ.get("BOARDS_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "boards.db")
        self.rules_path = Path(os.environ.get("BOARDS_RULES_PATH", project_dir / "rules.yaml"))
        self.migrations_dir = str(project_dir / "migrations")


@lru_cache
def get_settings() -> Settings:
    return Settings()


@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Repos (one per request; each call opens its own connection) ---
def get_invitation_repo(settings: Settings = Depends(get_settings)) -> SQLiteInvitationRepo:
    return SQLiteInvitationRepo(settings.db_path)


def get_board_repo(settings: Settings = Depends(get_settings)) -> SQLiteBoardRepo:
    return SQLiteBoardRepo(settings.db_path)


def get_member_repo(settings: Settings = Depends(get_settings)) -> SQLiteBoardMemberRepo:
    return SQLiteBoardMemberRepo(settings.db_path)


def get_user_repo(settings: Settings = Depends(get_settings)) -> SQLiteUserRepo:
    return SQLiteUserRepo(settings.db_path)


@lru_cache
def get_clock() -> SystemClock:
    return SystemClock()


# Provider and templates are fixed for the process lifetime; None means delivery is off.
_email_service: EmailService | None = None
_email_service_loaded = False


def get_email_service(rules: Rules = Depends(get_rules)) -> EmailService | None:
    global _email_service, _email_service_loaded
    if not _email_service_loaded:
        _email_service = load_email_service(rules)
        _email_service_loaded = True
    return _email_service


# --- Component Services ---
def get_invitation_service(
    repo: SQLiteInvitationRepo = Depends(get_invitation_repo),
    boards: SQLiteBoardRepo = Depends(get_board_repo),
    members: SQLiteBoardMemberRepo = Depends(get_member_repo),
    users: SQLiteUserRepo = Depends(get_user_repo),
    mailer: EmailService | None = Depends(get_email_service),
    clock: SystemClock = Depends(get_clock),
) -> InvitationService:
    return InvitationService(
        repo=repo,
        boards=boards,
        members=members,
        users=users,
        mailer=mailer,
        clock=clock,
    )


# --- Auth ---
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
    user_repo: SQLiteUserRepo = Depends(get_user_repo),
) -> User:
    """Resolve the caller from the access_token cookie or an Authorization header."""
    cookie = request.cookies.get("access_token", "")
    scheme, _, cookie_token = cookie.partition(" ")
    if scheme == "Bearer" and cookie_token:
        token = cookie_token

    if not token:
        raise _unauthorized("Not authenticated")

    user_id = read_token_subject(token)
    if user_id is None:
        raise _unauthorized("Invalid token")

    user = user_repo.get_by_id(user_id)
    if user is None:
        raise _unauthorized("User not found")
    return user
