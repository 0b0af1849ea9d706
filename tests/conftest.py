"""Test configuration and fixtures"""

import pytest
import tempfile
from pathlib import Path

from tagstage.core.database import Database
from tagstage.core.exceptions import NotFoundError, TagIOError
from tagstage.edits.engine import ReconciliationEngine
from tagstage.tags.id3 import TagIO
from tagstage.tags.models import TrackMetadata


class FakeTagIO(TagIO):
    """In-memory TagIO: comments live in a dict keyed by path."""

    def __init__(self):
        self.comments = {}
        self.failures = {}
        self.writes = []

    def add_file(self, file_path, comment=None):
        self.comments[file_path] = comment
        return file_path

    def fail_on(self, file_path, message="disk full"):
        self.failures[file_path] = message

    def read_tags(self, file_path):
        if file_path not in self.comments:
            raise NotFoundError(f"File not found: {file_path}")
        return TrackMetadata(file_path=file_path, title="Title", comment=self.comments[file_path])

    def write_comment(self, file_path, comment):
        if file_path in self.failures:
            raise TagIOError(self.failures[file_path])
        if file_path not in self.comments:
            raise TagIOError(f"File not found: {file_path}")
        self.comments[file_path] = comment or None
        self.writes.append((file_path, comment))


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def database(temp_dir):
    """Fresh SQLite database in the temp directory"""
    db = Database(temp_dir / "tagstage.db")
    yield db
    db.close()


@pytest.fixture
def phases():
    return ["peak", "buildup"]


@pytest.fixture
def tag_io():
    return FakeTagIO()


@pytest.fixture
def engine(database, tag_io, phases):
    """Engine over the fake TagIO; the phase list is read through a callable"""
    return ReconciliationEngine(database, tag_io, lambda: phases)
