# tests/test_id3.py
"""Test the mutagen ID3 adapter on real files"""

import pytest
from mutagen.id3 import COMM, ID3, TALB, TDRC, TIT2, TPE1, TRCK

from tagstage.core.exceptions import NotFoundError, TagIOError
from tagstage.tags.id3 import Mp3TagIO, is_mp3_file


def make_mp3(path, comment=None, **frames):
    """Write a file holding only an ID3 tag followed by padding bytes"""
    path.write_bytes(b"\x00" * 256)
    tags = ID3()
    for frame in frames.values():
        tags.add(frame)
    if comment is not None:
        tags.add(COMM(encoding=3, lang="eng", desc="", text=[comment]))
    tags.save(str(path))
    return path


@pytest.fixture
def tag_io():
    return Mp3TagIO()


class TestReadTags:
    """Test reading metadata"""

    def test_reads_frames(self, temp_dir, tag_io):
        path = make_mp3(
            temp_dir / "track.mp3",
            comment="great track #peak",
            title=TIT2(encoding=3, text=["Song"]),
            artist=TPE1(encoding=3, text=["Artist"]),
            album=TALB(encoding=3, text=["Album"]),
            year=TDRC(encoding=3, text=["2021-05-01"]),
            track=TRCK(encoding=3, text=["3/12"]),
        )

        meta = tag_io.read_tags(str(path))

        assert meta.title == "Song"
        assert meta.artist == "Artist"
        assert meta.album == "Album"
        assert meta.year == 2021
        assert meta.track_number == 3
        assert meta.track_total == 12
        assert meta.comment == "great track #peak"
        assert meta.display_name == "Artist - Song"
        assert meta.file_size == path.stat().st_size
        assert meta.to_dict()["comment"] == "great track #peak"

    def test_file_without_tags(self, temp_dir, tag_io):
        path = temp_dir / "bare.mp3"
        path.write_bytes(b"\x00" * 256)

        meta = tag_io.read_tags(str(path))

        assert meta.comment is None
        assert meta.title is None
        assert meta.duration is None

    def test_missing_file(self, temp_dir, tag_io):
        with pytest.raises(NotFoundError):
            tag_io.read_tags(str(temp_dir / "missing.mp3"))

    def test_read_comment(self, temp_dir, tag_io):
        path = make_mp3(temp_dir / "track.mp3", comment="notes")
        assert tag_io.read_comment(str(path)) == "notes"


class TestWriteComment:
    """Test writing the main comment frame"""

    def test_replace_comment(self, temp_dir, tag_io):
        path = make_mp3(temp_dir / "track.mp3", comment="old", title=TIT2(encoding=3, text=["Song"]))

        tag_io.write_comment(str(path), "old #peak")

        assert tag_io.read_comment(str(path)) == "old #peak"
        tags = ID3(str(path))
        assert len([f for f in tags.getall("COMM") if f.desc == ""]) == 1
        assert str(tags["TIT2"].text[0]) == "Song"

    def test_write_to_file_without_tags(self, temp_dir, tag_io):
        path = temp_dir / "bare.mp3"
        path.write_bytes(b"\x00" * 256)

        tag_io.write_comment(str(path), "#peak")

        assert tag_io.read_comment(str(path)) == "#peak"

    def test_empty_comment_removes_frame(self, temp_dir, tag_io):
        path = make_mp3(temp_dir / "track.mp3", comment="#peak")

        tag_io.write_comment(str(path), "")

        assert tag_io.read_comment(str(path)) is None

    def test_other_comment_frames_untouched(self, temp_dir, tag_io):
        path = make_mp3(temp_dir / "track.mp3", comment="main")
        tags = ID3(str(path))
        tags.add(COMM(encoding=3, lang="eng", desc="iTunNORM", text=["0000"]))
        tags.save(str(path))

        tag_io.write_comment(str(path), "main #peak")

        tags = ID3(str(path))
        assert tags["COMM:iTunNORM:eng"].text == ["0000"]
        assert tag_io.read_comment(str(path)) == "main #peak"

    def test_not_an_mp3(self, temp_dir, tag_io):
        path = temp_dir / "track.flac"
        path.write_bytes(b"\x00" * 16)

        with pytest.raises(TagIOError):
            tag_io.write_comment(str(path), "x")

    def test_missing_file(self, temp_dir, tag_io):
        with pytest.raises(TagIOError):
            tag_io.write_comment(str(temp_dir / "missing.mp3"), "x")


class TestIsMp3File:
    """Test extension check"""

    def test_extension(self):
        assert is_mp3_file("a.mp3")
        assert is_mp3_file("A.MP3")
        assert not is_mp3_file("a.m4a")
