"""
ID3 tag reading and comment writing for MP3 files.

The reconciliation engine never touches files directly; it is given a
TagIO object. Mp3TagIO is the real implementation on top of mutagen.
Tests substitute an in-memory TagIO.

ID3 Frame Mapping:
    TrackMetadata field -> ID3 frame
    -------------------    ---------
    title                -> TIT2
    artist               -> TPE1
    album                -> TALB
    album_artist         -> TPE2
    year                 -> TDRC (first four digits)
    genre                -> TCON
    track_number/total   -> TRCK ("3/12")
    comment              -> COMM with empty description (language 'eng')

Other COMM frames (for example iTunes' 'iTunNORM') are left untouched.
Writing an empty comment removes the main COMM frame.

Usage:
    from tagstage.tags.id3 import Mp3TagIO

    tag_io = Mp3TagIO()
    meta = tag_io.read_tags("/music/track.mp3")
    tag_io.write_comment("/music/track.mp3", "great track #peak")
"""

from abc import ABC, abstractmethod
from pathlib import Path

from mutagen import MutagenError
from mutagen.id3 import COMM, ID3, ID3NoHeaderError
from mutagen.mp3 import MP3

from tagstage.core.exceptions import NotFoundError, TagIOError
from tagstage.core.logger import get_logger
from tagstage.tags.models import TrackMetadata

logger = get_logger(__name__)


COMMENT_LANGUAGE = "eng"
MP3_EXTENSION = ".mp3"


class TagIO(ABC):
    """
    Capability to read track tags and write the comment field.

    Implementations raise:
        NotFoundError: read_tags() on a file that does not exist.
        TagIOError: any other read or write failure.
    """

    @abstractmethod
    def read_tags(self, file_path: str) -> TrackMetadata:
        """Read metadata, including the comment, from a file."""

    @abstractmethod
    def write_comment(self, file_path: str, comment: str) -> None:
        """Replace the file's comment. An empty string removes it."""

    def read_comment(self, file_path: str) -> str | None:
        """Read only the comment of a file."""
        return self.read_tags(file_path).comment


def is_mp3_file(file_path: str | Path) -> bool:
    """Check the extension only; the content is validated by mutagen."""
    return Path(file_path).suffix.lower() == MP3_EXTENSION


class Mp3TagIO(TagIO):
    """
    TagIO implementation backed by mutagen's ID3 support.

    Stateless: every call opens, reads or writes, and closes the file.
    Different files can be handled from different threads at once.
    """

    def read_tags(self, file_path: str) -> TrackMetadata:
        """
        Read ID3 metadata and MPEG stream info from an MP3 file.

        Args:
            file_path: Path to the MP3 file.

        Returns:
            TrackMetadata. A file without an ID3 header yields empty tags.

        Raises:
            NotFoundError: If the file does not exist.
            TagIOError: If the tags cannot be parsed or the file cannot be read.
        """
        path = Path(file_path)
        if not path.is_file():
            raise NotFoundError(
                f"File not found: {file_path}",
                details={"file_path": str(file_path)}
            )

        tags = self._load_tags(path)

        duration = bitrate = sample_rate = None
        try:
            info = MP3(str(path)).info
            duration = info.length
            bitrate = info.bitrate
            sample_rate = info.sample_rate
        except (MutagenError, OSError) as e:
            # Tags are still usable without a decodable audio stream
            logger.debug(f"No MPEG stream info for {file_path}: {e}")

        track_number, track_total = _parse_track_field(_first_text(tags, "TRCK"))

        return TrackMetadata(
            file_path=str(file_path),
            title=_first_text(tags, "TIT2"),
            artist=_first_text(tags, "TPE1"),
            album=_first_text(tags, "TALB"),
            album_artist=_first_text(tags, "TPE2"),
            year=_parse_year(_first_text(tags, "TDRC")),
            genre=_first_text(tags, "TCON"),
            track_number=track_number,
            track_total=track_total,
            comment=_main_comment(tags),
            duration=duration,
            bitrate=bitrate,
            sample_rate=sample_rate,
            file_size=path.stat().st_size,
        )

    def write_comment(self, file_path: str, comment: str) -> None:
        """
        Replace the main comment of an MP3 file.

        Args:
            file_path: Path to the MP3 file.
            comment: New comment text. Empty removes the comment frame.

        Raises:
            TagIOError: If the file is missing, is not an MP3, or cannot be
                        written (permissions, lock, disk full, bad header).
        """
        path = Path(file_path)
        if not is_mp3_file(path):
            raise TagIOError(
                f"Not an MP3 file: {file_path}",
                details={"file_path": str(file_path)}
            )
        if not path.is_file():
            raise TagIOError(
                f"File not found: {file_path}",
                details={"file_path": str(file_path)}
            )

        tags = self._load_tags(path)

        for key in [k for k, frame in tags.items() if k.startswith("COMM") and frame.desc == ""]:
            del tags[key]
        if comment:
            tags.add(COMM(encoding=3, lang=COMMENT_LANGUAGE, desc="", text=[comment]))

        try:
            tags.save(str(path))
        except (MutagenError, OSError) as e:
            raise TagIOError(
                f"Failed to write comment: {e}",
                details={"file_path": str(file_path), "original_error": str(e)}
            ) from e

        logger.debug(f"Wrote comment to {file_path}: {comment!r}")

    @staticmethod
    def _load_tags(path: Path) -> ID3:
        try:
            return ID3(str(path))
        except ID3NoHeaderError:
            return ID3()
        except (MutagenError, OSError) as e:
            raise TagIOError(
                f"Failed to read ID3 tags: {e}",
                details={"file_path": str(path), "original_error": str(e)}
            ) from e


def _first_text(tags: ID3, frame_id: str) -> str | None:
    frame = tags.get(frame_id)
    if frame is None or not frame.text:
        return None
    value = str(frame.text[0]).strip()
    return value or None


def _main_comment(tags: ID3) -> str | None:
    """Text of the COMM frame with an empty description, preferring 'eng'."""
    candidates = [frame for frame in tags.getall("COMM") if frame.desc == ""]
    if not candidates:
        return None
    candidates.sort(key=lambda frame: frame.lang != COMMENT_LANGUAGE)
    text = "".join(str(t) for t in candidates[0].text[:1])
    return text or None


def _parse_year(value: str | None) -> int | None:
    if value and value[:4].isdigit():
        return int(value[:4])
    return None


def _parse_track_field(value: str | None) -> tuple[int | None, int | None]:
    """Parse TRCK values like '3', '3/12' or '/12'."""
    if not value:
        return None, None
    number, _, total = value.partition("/")
    return (
        int(number) if number.strip().isdigit() else None,
        int(total) if total.strip().isdigit() else None,
    )
