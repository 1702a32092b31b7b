"""
SQL file migrations.

Each NNN_name.sql file holds an "-- Up" script, optionally followed by a
"-- Down" script. Files apply in name order; each one is recorded in the
_migrations table inside the same transaction as its schema changes.
"""

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DOWN_MARKER = "-- Down"

LEDGER_DDL = """
CREATE TABLE IF NOT EXISTS _migrations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    filename TEXT UNIQUE NOT NULL,
    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""


@dataclass(frozen=True)
class Migration:
    filename: str
    up: str

    @classmethod
    def from_file(cls, path: Path) -> "Migration":
        text = path.read_text(encoding="utf-8")
        return cls(filename=path.name, up=text.split(DOWN_MARKER, 1)[0])


class SQLiteMigrator:
    def __init__(self, db_path: str, migrations_dir: str):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.executescript(LEDGER_DDL)
        return conn

    def available(self) -> list[Migration]:
        return [Migration.from_file(p) for p in sorted(self.migrations_dir.glob("*.sql"))]

    @staticmethod
    def _applied(conn: sqlite3.Connection) -> set[str]:
        return {name for (name,) in conn.execute("SELECT filename FROM _migrations")}

    def pending_migrations(self) -> list[str]:
        with closing(self._open()) as conn:
            done = self._applied(conn)
        return [m.filename for m in self.available() if m.filename not in done]

    def run_migrations(self) -> list[str]:
        """
        Apply every pending migration.

        Returns the filenames applied by this call. Raises RuntimeError naming
        the failing file; earlier files in the same run stay applied.
        """
        applied_now: list[str] = []
        with closing(self._open()) as conn:
            done = self._applied(conn)
            for migration in self.available():
                if migration.filename in done:
                    continue
                logger.info("Applying migration: %s", migration.filename)
                self._apply(conn, migration)
                applied_now.append(migration.filename)

        if applied_now:
            logger.info("Applied %d migration(s)", len(applied_now))
        return applied_now

    def _apply(self, conn: sqlite3.Connection, migration: Migration) -> None:
        # executescript commits implicitly, so the ledger insert rides in the script
        quoted = migration.filename.replace("'", "''")
        script = (
            "BEGIN;\n"
            f"{migration.up}\n"
            f"INSERT INTO _migrations (filename) VALUES ('{quoted}');\n"
            "COMMIT;"
        )
        try:
            conn.executescript(script)
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.rollback()
            raise RuntimeError(f"Migration {migration.filename} failed: {e}") from e
