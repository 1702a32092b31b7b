import argparse
import logging
import os
import sys
from pathlib import Path

from src.adapters.sqlite.migrator import SQLiteMigrator
from src.api.auth_utils import issue_access_token
from src.app_shell.config import validate_email_rules
from src.app_shell.context import ServiceContext
from src.domain.entities import Board, BoardMember, User
from src.domain.errors import InvitationError
from src.rules.loader import load_rules

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

DATA_DIR = os.environ.get("BOARDS_DATA_DIR", "./data")
DB_PATH = f"{DATA_DIR}/boards.db"
RULES_PATH = os.environ.get("BOARDS_RULES_PATH", "rules.yaml")
MIGRATIONS_DIR = "migrations"


def get_context() -> ServiceContext:
    if not Path(RULES_PATH).exists():
        logger.error(f"Rules file {RULES_PATH} not found.")
        sys.exit(1)

    rules = load_rules(Path(RULES_PATH))
    problems = validate_email_rules(rules)
    if problems:
        for problem in problems:
            logger.error(f"Invalid rules: {problem}")
        sys.exit(1)
    return ServiceContext.create(DB_PATH, rules)


def handle_migrate() -> None:
    Path(DATA_DIR).mkdir(parents=True, exist_ok=True)
    applied = SQLiteMigrator(DB_PATH, MIGRATIONS_DIR).run_migrations()
    print(f"Applied {len(applied)} migration(s).")


def handle_cleanup(ctx: ServiceContext) -> None:
    result = ctx.invitation_service.cleanup_expired()
    print(f"Deleted {result.deleted} expired invitation(s), {result.failed} failure(s).")
    if result.failed:
        sys.exit(1)


def handle_send_test_email(ctx: ServiceContext, args: argparse.Namespace) -> None:
    service = ctx.email_service
    if service is None or not service.is_configured():
        logger.error("Email service not configured (set a provider and email.from_email).")
        sys.exit(1)

    try:
        service.send_invitation(
            to_email=args.to,
            board_title="Test board",
            inviter_name="Board Invitations CLI",
            token="test-token",
        )
    except InvitationError as e:
        logger.error(f"Test email failed: {e}")
        sys.exit(1)
    print(f"Test email sent to {args.to} via {service.provider_name}.")


def handle_create_user(ctx: ServiceContext, args: argparse.Namespace) -> None:
    user = ctx.user_repo.save(
        User(
            username=args.username,
            email=args.email,
            first_name=args.first_name,
            last_name=args.last_name,
        )
    )
    print(f"User created: {user.id}")


def handle_create_board(ctx: ServiceContext, args: argparse.Namespace) -> None:
    owner = ctx.user_repo.get_by_id(args.owner_id)
    if not owner:
        logger.error(f"User {args.owner_id} not found.")
        sys.exit(1)

    board = ctx.board_repo.save(Board(title=args.title, created_by=owner.id))
    ctx.member_repo.add_member(BoardMember(board_id=board.id, user_id=owner.id, scheme_admin=True))
    print(f"Board created: {board.id}")


def handle_issue_token(ctx: ServiceContext, args: argparse.Namespace) -> None:
    user = ctx.user_repo.get_by_id(args.user_id)
    if not user:
        logger.error(f"User {args.user_id} not found.")
        sys.exit(1)
    print(issue_access_token(user.id))


def main() -> None:
    parser = argparse.ArgumentParser(description="Board Invitations CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # migrate
    subparsers.add_parser("migrate", help="Apply pending database migrations")

    # cleanup-invites
    subparsers.add_parser("cleanup-invites", help="Delete expired, unused invitations")

    # send-test-email
    test_parser = subparsers.add_parser("send-test-email", help="Check email delivery settings")
    test_parser.add_argument("to", help="Recipient address")

    # create-user
    user_parser = subparsers.add_parser("create-user", help="Create a local user")
    user_parser.add_argument("--username", required=True)
    user_parser.add_argument("--email", required=True)
    user_parser.add_argument("--first-name", default="")
    user_parser.add_argument("--last-name", default="")

    # create-board
    board_parser = subparsers.add_parser("create-board", help="Create a board owned by a user")
    board_parser.add_argument("--title", required=True)
    board_parser.add_argument("--owner-id", required=True)

    # issue-token
    token_parser = subparsers.add_parser("issue-token", help="Issue an API access token")
    token_parser.add_argument("user_id")

    args = parser.parse_args()

    if args.command == "migrate":
        handle_migrate()
        return

    ctx = get_context()

    if args.command == "cleanup-invites":
        handle_cleanup(ctx)
    elif args.command == "send-test-email":
        handle_send_test_email(ctx, args)
    elif args.command == "create-user":
        handle_create_user(ctx, args)
    elif args.command == "create-board":
        handle_create_board(ctx, args)
    elif args.command == "issue-token":
        handle_issue_token(ctx, args)


if __name__ == "__main__":
    main()
