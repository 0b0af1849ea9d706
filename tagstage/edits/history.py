"""
History Log: append-only record of comments written to disk.

An entry is appended for every successfully applied edit. Entries are
never deleted; undo only flags them as reverted.

append() and mark_reverted() accept an open session so the engine can
commit them together with the matching edit status change.
"""

import sqlite3

from tagstage.core.database import Database
from tagstage.core.exceptions import DatabaseError
from tagstage.edits.models import HistoryEntry


_COLUMNS = "id, file_path, old_comment, new_comment, applied_at, reverted"


class HistoryLog:
    """Table operations on edit_history."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def append(
        self,
        file_path: str,
        old_comment: str | None,
        new_comment: str,
        conn: sqlite3.Connection | None = None
    ) -> HistoryEntry:
        with self.database.session_for(conn) as conn:
            cursor = conn.execute(
                """
                INSERT INTO edit_history (file_path, old_comment, new_comment, applied_at, reverted)
                VALUES (?, ?, ?, ?, 0)
                """,
                (file_path, old_comment, new_comment, self.database.now_iso())
            )
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM edit_history WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        return HistoryEntry.from_row(row)

    def list_all(self) -> list[HistoryEntry]:
        """All entries, most recently applied first."""
        with self.database.session() as conn:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM edit_history ORDER BY applied_at DESC, id DESC"
            ).fetchall()
        return [HistoryEntry.from_row(row) for row in rows]

    def find_by_id(self, history_id: int) -> HistoryEntry | None:
        with self.database.session() as conn:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM edit_history WHERE id = ?", (history_id,)
            ).fetchone()
        return HistoryEntry.from_row(row) if row else None

    def find_latest_unreverted(self, file_path: str, new_comment: str) -> HistoryEntry | None:
        """Most recent entry for file_path that wrote new_comment and is not reverted."""
        with self.database.session() as conn:
            row = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM edit_history
                WHERE file_path = ? AND new_comment = ? AND reverted = 0
                ORDER BY applied_at DESC, id DESC
                LIMIT 1
                """,
                (file_path, new_comment)
            ).fetchone()
        return HistoryEntry.from_row(row) if row else None

    def mark_reverted(self, history_id: int, conn: sqlite3.Connection | None = None) -> None:
        with self.database.session_for(conn) as conn:
            cursor = conn.execute(
                "UPDATE edit_history SET reverted = 1 WHERE id = ?", (history_id,)
            )
            if cursor.rowcount == 0:
                raise DatabaseError(
                    f"History entry not found: {history_id}",
                    details={"history_id": history_id}
                )
