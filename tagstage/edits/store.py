"""
Edit Store: table operations on pending_edits.

Each method is a single statement with no business rules; the
reconciliation engine decides which transitions are allowed. Storage
failures surface as DatabaseError and are never retried here.

Usage:
    store = EditStore(database)
    edit = store.insert("/music/a.mp3", "great track", "great track #peak")
    store.set_status(edit.id, EditStatus.APPLIED)
"""

import sqlite3

from tagstage.core.database import Database
from tagstage.core.exceptions import DatabaseError
from tagstage.edits.models import EditStatus, PendingEdit


_COLUMNS = "id, file_path, original_comment, new_comment, created_at, status"


class EditStore:
    """Persistent table of proposed comment edits."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def insert(
        self,
        file_path: str,
        original_comment: str | None,
        new_comment: str
    ) -> PendingEdit:
        """
        Create a new edit with status 'pending'.

        Raises:
            PendingEditConflictError: If the file already has a pending edit.
            DatabaseError: On any other storage failure.
        """
        with self.database.session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO pending_edits (file_path, original_comment, new_comment, created_at, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (file_path, original_comment, new_comment,
                 self.database.now_iso(), EditStatus.PENDING.value)
            )
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM pending_edits WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return PendingEdit.from_row(row)

    def list_pending(self) -> list[PendingEdit]:
        """Pending edits, newest first."""
        with self.database.session() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM pending_edits
                WHERE status = ?
                ORDER BY created_at DESC, id DESC
                """,
                (EditStatus.PENDING.value,)
            ).fetchall()
        return [PendingEdit.from_row(row) for row in rows]

    def list_all(self) -> list[PendingEdit]:
        """Edits in any status, newest first."""
        with self.database.session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM pending_edits ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [PendingEdit.from_row(row) for row in rows]

    def find_by_id(self, edit_id: int) -> PendingEdit | None:
        with self.database.session() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM pending_edits WHERE id = ?", (edit_id,)
            ).fetchone()
        return PendingEdit.from_row(row) if row else None

    def find_pending_by_file_path(self, file_path: str) -> PendingEdit | None:
        """The file's pending edit, if any (there is at most one)."""
        with self.database.session() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM pending_edits WHERE file_path = ? AND status = ?",
                (file_path, EditStatus.PENDING.value)
            ).fetchone()
        return PendingEdit.from_row(row) if row else None

    def set_status(
        self,
        edit_id: int,
        status: EditStatus,
        conn: sqlite3.Connection | None = None
    ) -> None:
        """
        Change an edit's status.

        Args:
            conn: Open session to join (see Database.session_for).

        Raises:
            PendingEditConflictError: If moving to 'pending' would give the
                                      file a second pending edit.
            DatabaseError: If the edit does not exist or storage fails.
        """
        with self.database.session_for(conn) as conn:
            cursor = conn.execute(
                "UPDATE pending_edits SET status = ? WHERE id = ?",
                (EditStatus(status).value, edit_id)
            )
            _require_row(cursor.rowcount, edit_id)

    def update_comment(self, edit_id: int, new_comment: str) -> None:
        """Replace new_comment. original_comment is never touched."""
        with self.database.session() as conn:
            cursor = conn.execute(
                "UPDATE pending_edits SET new_comment = ? WHERE id = ?",
                (new_comment, edit_id)
            )
            _require_row(cursor.rowcount, edit_id)

    def remove(self, edit_id: int) -> None:
        """Hard delete (used for reject)."""
        with self.database.session() as conn:
            cursor = conn.execute("DELETE FROM pending_edits WHERE id = ?", (edit_id,))
            _require_row(cursor.rowcount, edit_id)


def _require_row(rowcount: int, edit_id: int) -> None:
    if rowcount == 0:
        raise DatabaseError(f"Pending edit not found: {edit_id}", details={"edit_id": edit_id})
