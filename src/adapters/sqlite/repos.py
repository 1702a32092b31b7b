import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from src.domain.entities import Board, BoardInvitation, BoardMember, User
from src.domain.errors import PersistenceError

logger = logging.getLogger(__name__)


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    table = ""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Connection scope: commits on success, maps sqlite errors to PersistenceError."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise PersistenceError(f"{self.table}: cannot open database: {e}") from e

        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"{self.table}: {e}") from e
        finally:
            if self._should_close():
                conn.close()


class SQLiteInvitationRepo(SQLiteRepoBase):
    table = "board_invitations"

    def create(self, invitation: BoardInvitation) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO board_invitations (
                    id, board_id, email, token, role, created_by,
                    created_at, expires_at, used_at, used_by, last_sent_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    invitation.id,
                    invitation.board_id,
                    invitation.email,
                    invitation.token,
                    invitation.role,
                    invitation.created_by,
                    invitation.created_at,
                    invitation.expires_at,
                    invitation.used_at,
                    invitation.used_by,
                    invitation.last_sent_at,
                ),
            )

    def get_by_id(self, invitation_id: str) -> BoardInvitation | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM board_invitations WHERE id = ?", (invitation_id,)
            ).fetchone()
        return self._map_row(row) if row else None

    def get_by_token(self, token: str) -> BoardInvitation | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM board_invitations WHERE token = ?", (token,)
            ).fetchone()
        return self._map_row(row) if row else None

    def list_for_board(self, board_id: str) -> list[BoardInvitation]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM board_invitations WHERE board_id = ? "
                "ORDER BY created_at DESC, rowid DESC",
                (board_id,),
            ).fetchall()
        return [self._map_row(r) for r in rows]

    def update(self, invitation: BoardInvitation) -> bool:
        # Optional columns are only overwritten when the new value is present.
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE board_invitations SET
                    email = ?,
                    role = ?,
                    expires_at = ?,
                    used_at = COALESCE(?, used_at),
                    used_by = COALESCE(?, used_by),
                    last_sent_at = COALESCE(?, last_sent_at)
                WHERE id = ?
            """,
                (
                    invitation.email,
                    invitation.role,
                    invitation.expires_at,
                    invitation.used_at,
                    invitation.used_by,
                    invitation.last_sent_at,
                    invitation.id,
                ),
            )
            return cursor.rowcount > 0

    def mark_used(self, invitation_id: str, user_id: str, used_at: int) -> bool:
        """Atomically claim the invitation; False if already used or gone."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE board_invitations
                SET used_at = ?, used_by = ?
                WHERE id = ? AND used_at IS NULL
            """,
                (used_at, user_id, invitation_id),
            )
            return cursor.rowcount == 1

    def release_use(self, invitation_id: str, user_id: str) -> bool:
        """Undo a claim made by user_id."""
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE board_invitations
                SET used_at = NULL, used_by = NULL
                WHERE id = ? AND used_by = ?
            """,
                (invitation_id, user_id),
            )
            return cursor.rowcount == 1

    def delete(self, invitation_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM board_invitations WHERE id = ?", (invitation_id,))
            return cursor.rowcount > 0

    def delete_if_unused(self, invitation_id: str) -> bool:
        """Delete only while unclaimed; False if used meanwhile or gone."""
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM board_invitations WHERE id = ? AND used_at IS NULL",
                (invitation_id,),
            )
            return cursor.rowcount == 1

    def list_expired_unused(self, now: int) -> list[BoardInvitation]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM board_invitations WHERE expires_at < ? AND used_at IS NULL",
                (now,),
            ).fetchall()
        return [self._map_row(r) for r in rows]

    def _map_row(self, row: dict[str, Any]) -> BoardInvitation:
        return BoardInvitation(
            id=row["id"],
            board_id=row["board_id"],
            email=row["email"],
            token=row["token"],
            role=row["role"],
            created_by=row["created_by"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
            used_at=row["used_at"],
            used_by=row["used_by"],
            last_sent_at=row["last_sent_at"],
        )


class SQLiteBoardRepo(SQLiteRepoBase):
    table = "boards"

    def save(self, board: Board) -> Board:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO boards (id, title, created_by) VALUES (?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET title=excluded.title
            """,
                (board.id, board.title, board.created_by),
            )
        return board

    def get_by_id(self, board_id: str) -> Board | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM boards WHERE id = ?", (board_id,)).fetchone()
        return Board(**row) if row else None


class SQLiteBoardMemberRepo(SQLiteRepoBase):
    table = "board_members"

    def get(self, board_id: str, user_id: str) -> BoardMember | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM board_members WHERE board_id = ? AND user_id = ?",
                (board_id, user_id),
            ).fetchone()
        return self._map_row(row) if row else None

    def list_for_board(self, board_id: str) -> list[BoardMember]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM board_members WHERE board_id = ? ORDER BY user_id",
                (board_id,),
            ).fetchall()
        return [self._map_row(r) for r in rows]

    def add_member(self, member: BoardMember) -> BoardMember:
        """Insert or replace the member's role flags."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO board_members (
                    board_id, user_id, scheme_admin, scheme_editor,
                    scheme_commenter, scheme_viewer
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(board_id, user_id) DO UPDATE SET
                    scheme_admin=excluded.scheme_admin,
                    scheme_editor=excluded.scheme_editor,
                    scheme_commenter=excluded.scheme_commenter,
                    scheme_viewer=excluded.scheme_viewer
            """,
                (
                    member.board_id,
                    member.user_id,
                    int(member.scheme_admin),
                    int(member.scheme_editor),
                    int(member.scheme_commenter),
                    int(member.scheme_viewer),
                ),
            )
        return member

    def _map_row(self, row: dict[str, Any]) -> BoardMember:
        return BoardMember(
            board_id=row["board_id"],
            user_id=row["user_id"],
            scheme_admin=bool(row["scheme_admin"]),
            scheme_editor=bool(row["scheme_editor"]),
            scheme_commenter=bool(row["scheme_commenter"]),
            scheme_viewer=bool(row["scheme_viewer"]),
        )


class SQLiteUserRepo(SQLiteRepoBase):
    table = "users"

    def save(self, user: User) -> User:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, username, email, first_name, last_name)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    username=excluded.username,
                    email=excluded.email,
                    first_name=excluded.first_name,
                    last_name=excluded.last_name
            """,
                (user.id, user.username, user.email, user.first_name, user.last_name),
            )
        return user

    def get_by_id(self, user_id: str) -> User | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        return User(**row) if row else None
