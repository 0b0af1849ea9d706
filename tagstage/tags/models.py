"""
Data model for track metadata read from MP3 files.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True)
class TrackMetadata:
    """
    Metadata read from a single MP3 file.

    Only `comment` is ever written back by tagstage; everything else is
    informational.

    Attributes:
        file_path: Path of the file, used as the track's unique key.
        title: TIT2 frame.
        artist: TPE1 frame.
        album: TALB frame.
        album_artist: TPE2 frame.
        year: Year parsed from TDRC (first four digits), if any.
        genre: TCON frame (first value).
        track_number: Track number from TRCK ("3/12" -> 3).
        track_total: Total from TRCK ("3/12" -> 12).
        comment: Text of the main COMM frame (empty description), or None.
        duration: Length in seconds, from the MPEG stream info.
        bitrate: Bits per second, from the MPEG stream info.
        sample_rate: Hz, from the MPEG stream info.
        file_size: Size on disk in bytes.
    """
    file_path: str
    title: str | None = None
    artist: str | None = None
    album: str | None = None
    album_artist: str | None = None
    year: int | None = None
    genre: str | None = None
    track_number: int | None = None
    track_total: int | None = None
    comment: str | None = None
    duration: float | None = None
    bitrate: int | None = None
    sample_rate: int | None = None
    file_size: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @property
    def display_name(self) -> str:
        """'Artist - Title' when both are known, otherwise the file name."""
        if self.artist and self.title:
            return f"{self.artist} - {self.title}"
        return self.file_path.replace("\\", "/").rsplit("/", 1)[-1]
