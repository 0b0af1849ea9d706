# tests/test_store.py
"""Test the database, edit store and history log"""

import sqlite3

import pytest

from tagstage.core.database import Database
from tagstage.core.exceptions import DatabaseError, PendingEditConflictError
from tagstage.edits.history import HistoryLog
from tagstage.edits.models import EditStatus
from tagstage.edits.store import EditStore


@pytest.fixture
def store(database):
    return EditStore(database)


@pytest.fixture
def history(database):
    return HistoryLog(database)


class TestDatabase:
    """Test database setup"""

    def test_missing_parent_directory(self, temp_dir):
        with pytest.raises(DatabaseError):
            Database(temp_dir / "missing" / "tagstage.db")

    def test_reopen_existing(self, temp_dir, database):
        EditStore(database).insert("/a.mp3", None, "#peak")
        database.close()

        reopened = Database(temp_dir / "tagstage.db")
        assert len(EditStore(reopened).list_pending()) == 1
        reopened.close()

    def test_version_mismatch(self, temp_dir, database):
        database.close()
        conn = sqlite3.connect(str(temp_dir / "tagstage.db"))
        conn.execute("UPDATE schema_version SET version = 99")
        conn.commit()
        conn.close()

        with pytest.raises(DatabaseError, match="version mismatch"):
            Database(temp_dir / "tagstage.db")

    def test_session_rolls_back_on_error(self, database, store):
        with pytest.raises(RuntimeError):
            with database.session() as conn:
                conn.execute(
                    "INSERT INTO pending_edits (file_path, original_comment, new_comment, created_at, status) "
                    "VALUES ('/a.mp3', NULL, 'x', '2024-01-01', 'pending')"
                )
                raise RuntimeError("boom")

        assert store.list_all() == []

    def test_joined_session_rolls_back_together(self, database, store, history):
        edit = store.insert("/a.mp3", "x", "x #peak")

        with pytest.raises(DatabaseError):
            with database.session() as conn:
                history.append("/a.mp3", "x", "x #peak", conn=conn)
                store.set_status(edit.id, EditStatus.APPLIED, conn=conn)
                store.set_status(999, EditStatus.APPLIED, conn=conn)

        assert history.list_all() == []
        assert store.find_by_id(edit.id).status is EditStatus.PENDING


class TestEditStore:
    """Test pending_edits table operations"""

    def test_insert(self, store):
        edit = store.insert("/a.mp3", "great track", "great track #peak")

        assert edit.id > 0
        assert edit.file_path == "/a.mp3"
        assert edit.original_comment == "great track"
        assert edit.new_comment == "great track #peak"
        assert edit.status is EditStatus.PENDING
        assert edit.created_at

    def test_to_dict(self, store):
        data = store.insert("/a.mp3", None, "#peak").to_dict()

        assert data["status"] == "pending"
        assert data["original_comment"] is None
        assert set(data) == {"id", "file_path", "original_comment", "new_comment", "created_at", "status"}

    def test_insert_null_original(self, store):
        edit = store.insert("/a.mp3", None, "#peak")
        assert store.find_by_id(edit.id).original_comment is None

    def test_one_pending_edit_per_file(self, store):
        store.insert("/a.mp3", None, "#peak")

        with pytest.raises(PendingEditConflictError):
            store.insert("/a.mp3", None, "#buildup")

        assert len(store.list_pending()) == 1

    def test_new_pending_edit_after_apply(self, store):
        first = store.insert("/a.mp3", None, "#peak")
        store.set_status(first.id, EditStatus.APPLIED)

        second = store.insert("/a.mp3", "#peak", "")
        assert second.id != first.id
        assert [e.id for e in store.list_pending()] == [second.id]

    def test_back_to_pending_conflicts(self, store):
        first = store.insert("/a.mp3", None, "#peak")
        store.set_status(first.id, EditStatus.FAILED)
        store.insert("/a.mp3", None, "#buildup")

        with pytest.raises(PendingEditConflictError):
            store.set_status(first.id, EditStatus.PENDING)

    def test_list_order_newest_first(self, store):
        ids = [store.insert(f"/{n}.mp3", None, "#peak").id for n in range(3)]
        store.set_status(ids[1], EditStatus.APPLIED)

        assert [e.id for e in store.list_all()] == list(reversed(ids))
        assert [e.id for e in store.list_pending()] == [ids[2], ids[0]]

    def test_find_pending_by_file_path(self, store):
        edit = store.insert("/a.mp3", None, "#peak")

        assert store.find_pending_by_file_path("/a.mp3").id == edit.id
        assert store.find_pending_by_file_path("/b.mp3") is None

        store.set_status(edit.id, EditStatus.APPLIED)
        assert store.find_pending_by_file_path("/a.mp3") is None

    def test_update_comment_keeps_original(self, store):
        edit = store.insert("/a.mp3", "orig", "orig #peak")
        store.update_comment(edit.id, "orig #peak #buildup")

        updated = store.find_by_id(edit.id)
        assert updated.new_comment == "orig #peak #buildup"
        assert updated.original_comment == "orig"

    def test_remove(self, store):
        edit = store.insert("/a.mp3", None, "#peak")
        store.remove(edit.id)
        assert store.find_by_id(edit.id) is None

    def test_missing_row(self, store):
        with pytest.raises(DatabaseError):
            store.set_status(999, EditStatus.APPLIED)
        with pytest.raises(DatabaseError):
            store.update_comment(999, "x")
        with pytest.raises(DatabaseError):
            store.remove(999)


class TestHistoryLog:
    """Test edit_history table operations"""

    def test_append(self, history):
        entry = history.append("/a.mp3", None, "#peak")

        assert entry.old_comment is None
        assert entry.new_comment == "#peak"
        assert entry.reverted is False
        assert history.find_by_id(entry.id) == entry
        assert entry.to_dict()["reverted"] is False

    def test_list_newest_first(self, history):
        first = history.append("/a.mp3", None, "#peak")
        second = history.append("/b.mp3", "x", "x #peak")

        assert [e.id for e in history.list_all()] == [second.id, first.id]

    def test_find_latest_unreverted(self, history):
        older = history.append("/a.mp3", None, "#peak")
        newer = history.append("/a.mp3", "", "#peak")
        history.append("/a.mp3", None, "#buildup")

        assert history.find_latest_unreverted("/a.mp3", "#peak").id == newer.id

        history.mark_reverted(newer.id)
        assert history.find_latest_unreverted("/a.mp3", "#peak").id == older.id

        history.mark_reverted(older.id)
        assert history.find_latest_unreverted("/a.mp3", "#peak") is None

    def test_mark_reverted_missing(self, history):
        with pytest.raises(DatabaseError):
            history.mark_reverted(42)
