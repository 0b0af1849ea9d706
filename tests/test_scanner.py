# tests/test_scanner.py
"""Test library scanning and tag filtering"""

import pytest

from tagstage.core.exceptions import NotFoundError, TagIOError
from tagstage.library.scanner import filter_by_tags, scan_library
from tagstage.tags.models import TrackMetadata


class DiskFakeTagIO:
    """Reads comments from a dict but only for files that exist on disk"""

    def __init__(self, comments, broken=()):
        self.comments = comments
        self.broken = set(broken)

    def read_tags(self, file_path):
        name = file_path.rsplit("/", 1)[-1]
        if name in self.broken:
            raise TagIOError(f"Failed to read ID3 tags: {file_path}")
        return TrackMetadata(file_path=file_path, comment=self.comments.get(name))


@pytest.fixture
def library(temp_dir):
    (temp_dir / "sub" / "deeper").mkdir(parents=True)
    (temp_dir / ".tagstage").mkdir()
    for relative in ["a.mp3", "B.MP3", "sub/c.mp3", "sub/deeper/d.mp3", "notes.txt",
                     ".hidden.mp3", ".tagstage/e.mp3"]:
        (temp_dir / relative).write_bytes(b"")
    return temp_dir


class TestScanLibrary:
    """Test recursive scanning"""

    def test_finds_mp3_files_recursively(self, library):
        tag_io = DiskFakeTagIO({"a.mp3": "x #peak", "c.mp3": "#Vocal #peak", "d.mp3": None})

        scan = scan_library(library, tag_io)

        names = sorted(m.file_path.rsplit("/", 1)[-1] for m in scan.files)
        assert names == ["B.MP3", "a.mp3", "c.mp3", "d.mp3"]
        assert scan.tags == ["Vocal", "peak"]
        assert scan.skipped == []

    def test_unreadable_files_skipped(self, library):
        tag_io = DiskFakeTagIO({}, broken={"c.mp3"})

        scan = scan_library(library, tag_io)

        assert len(scan.files) == 3
        assert [s.rsplit("/", 1)[-1] for s in scan.skipped] == ["c.mp3"]

    def test_missing_folder(self, temp_dir):
        with pytest.raises(NotFoundError):
            scan_library(temp_dir / "missing", DiskFakeTagIO({}))


class TestFilterByTags:
    """Test include/exclude filtering"""

    FILES = [
        TrackMetadata(file_path="/1.mp3", comment="x #peak #vocal"),
        TrackMetadata(file_path="/2.mp3", comment="#peak"),
        TrackMetadata(file_path="/3.mp3", comment="#buildup"),
        TrackMetadata(file_path="/4.mp3", comment=None),
    ]

    def paths(self, files):
        return [m.file_path for m in files]

    def test_no_filters(self):
        assert self.paths(filter_by_tags(self.FILES)) == ["/1.mp3", "/2.mp3", "/3.mp3", "/4.mp3"]

    def test_include_all(self):
        assert self.paths(filter_by_tags(self.FILES, include=["peak", "#vocal"])) == ["/1.mp3"]

    def test_exclude(self):
        assert self.paths(filter_by_tags(self.FILES, exclude=["peak"])) == ["/3.mp3", "/4.mp3"]

    def test_include_and_exclude_case_insensitive(self):
        result = filter_by_tags(self.FILES, include=["PEAK"], exclude=["Vocal"])
        assert self.paths(result) == ["/2.mp3"]
