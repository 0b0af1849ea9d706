"""
Thread-safe SQLite database for tagstage.

This module owns the connection, the schema and the locking. The table
operations live next to the code that uses them:
    - tagstage.edits.store.EditStore    (pending_edits)
    - tagstage.edits.history.HistoryLog (edit_history)

Schema:
    pending_edits:  Proposed comment changes (one row per edit, status field)
    edit_history:   Comment changes that were written to disk (for undo)

At most one row per file_path may have status 'pending'. This is enforced
by a partial unique index so the guarantee holds across processes too.

Usage:
    db = Database(storage_dir / "tagstage.db")

    with db.session() as conn:
        conn.execute("SELECT ...")
"""

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from tagstage.core.exceptions import DatabaseError, PendingEditConflictError


DATABASE_VERSION = 1

PENDING_UNIQUE_INDEX = "idx_pending_edits_one_pending_per_file"


_SCHEMA_SQL = f"""
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS pending_edits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_path TEXT NOT NULL,
    original_comment TEXT,
    new_comment TEXT NOT NULL,
    created_at TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'applied', 'failed'))
);

CREATE TABLE IF NOT EXISTS edit_history (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_path TEXT NOT NULL,
    old_comment TEXT,
    new_comment TEXT NOT NULL,
    applied_at TEXT NOT NULL,
    reverted INTEGER NOT NULL DEFAULT 0 CHECK (reverted IN (0, 1))
);

CREATE UNIQUE INDEX IF NOT EXISTS {PENDING_UNIQUE_INDEX}
    ON pending_edits(file_path) WHERE status = 'pending';
CREATE INDEX IF NOT EXISTS idx_pending_edits_status ON pending_edits(status, created_at);
CREATE INDEX IF NOT EXISTS idx_edit_history_file ON edit_history(file_path, new_comment);
"""


class Database:
    """
    Thread-safe SQLite database.

    Uses a single persistent connection with thread locking for safety.
    Every session() acquires self._lock for its whole duration, so a
    session is also the unit of atomicity: it commits on success and
    rolls back on any exception.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        self._lock = threading.Lock()
        self._conn: sqlite3.Connection | None = None

        if not db_path.parent.exists():
            raise DatabaseError(
                f"Parent directory does not exist: {db_path.parent}",
                details={"path": str(db_path.parent)}
            )

        try:
            self._init_database()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to initialize database: {e}",
                details={"path": str(db_path)}
            ) from e

    def _get_connection(self) -> sqlite3.Connection:
        """Return the persistent connection, creating it on first use."""
        if self._conn is None:
            self._conn = sqlite3.connect(
                str(self.db_path),
                timeout=30.0,
                check_same_thread=False  # We handle thread safety with _lock
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    @contextmanager
    def session(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Run a group of statements under the lock as one transaction.

        Yields:
            The shared sqlite3 connection.

        Raises:
            PendingEditConflictError: If a statement violated the
                                      one-pending-edit-per-file index.
            DatabaseError: For any other sqlite3 failure.
        """
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
                conn.commit()
            except sqlite3.IntegrityError as e:
                conn.rollback()
                if PENDING_UNIQUE_INDEX in str(e) or "pending_edits.file_path" in str(e):
                    raise PendingEditConflictError(
                        "A pending edit already exists for this file",
                        details={"original_error": str(e)}
                    ) from e
                raise DatabaseError(
                    f"Database constraint violated: {e}",
                    details={"original_error": str(e)}
                ) from e
            except sqlite3.Error as e:
                conn.rollback()
                raise DatabaseError(
                    f"Database operation failed: {e}",
                    details={"original_error": str(e)}
                ) from e
            except BaseException:
                conn.rollback()
                raise

    @contextmanager
    def session_for(
        self,
        conn: sqlite3.Connection | None
    ) -> Generator[sqlite3.Connection, None, None]:
        """
        Join the caller's session if conn is given, otherwise open a new one.

        Lets several table operations commit or roll back together:

            with db.session() as conn:
                history.append(..., conn=conn)
                store.set_status(..., conn=conn)
        """
        if conn is not None:
            yield conn
            return
        with self.session() as own:
            yield own

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __del__(self) -> None:
        """Ensure connection is closed on garbage collection."""
        if getattr(self, "_conn", None) is not None:
            try:
                self._conn.close()
            except sqlite3.Error:
                pass

    def _init_database(self) -> None:
        conn = self._get_connection()
        conn.executescript(_SCHEMA_SQL)

        cursor = conn.execute("SELECT version FROM schema_version LIMIT 1")
        row = cursor.fetchone()

        if row is None:
            conn.execute("INSERT INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))
        elif row[0] != DATABASE_VERSION:
            raise DatabaseError(
                f"Database version mismatch: expected {DATABASE_VERSION}, got {row[0]}",
                details={"expected": DATABASE_VERSION, "actual": row[0]}
            )
        conn.commit()

    @staticmethod
    def now_iso() -> str:
        """Current UTC time as an ISO-8601 string (microsecond precision)."""
        return datetime.now(timezone.utc).isoformat()
