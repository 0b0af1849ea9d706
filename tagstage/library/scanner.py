"""
Library scanner: find MP3 files under a folder and read their tags.

Files that cannot be read are logged and skipped so one broken file never
aborts a scan. Hidden files and directories (leading '.') are ignored,
which also keeps the default storage directory (.tagstage) out of scans.

Usage:
    from tagstage.library import scan_library, filter_by_tags

    scan = scan_library(config.library.directory, Mp3TagIO())
    peak_tracks = filter_by_tags(scan.files, include=["peak"])
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator

from tagstage.core.exceptions import NotFoundError, TagIOError
from tagstage.core.logger import get_logger
from tagstage.tags.codec import extract_hashtags
from tagstage.tags.id3 import TagIO, is_mp3_file
from tagstage.tags.models import TrackMetadata

logger = get_logger(__name__)


@dataclass
class LibraryScan:
    """
    Result of scan_library().

    Attributes:
        files: Metadata of every readable MP3 file, sorted by path.
        tags: Sorted set of hashtags (without '#') found in any comment.
        skipped: Paths that could not be read.
    """
    files: list[TrackMetadata] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def iter_mp3_files(base_folder: Path) -> Iterator[Path]:
    """Yield MP3 files below base_folder in sorted order, skipping hidden entries."""
    for entry in sorted(base_folder.iterdir()):
        if entry.name.startswith("."):
            continue
        if entry.is_dir():
            yield from iter_mp3_files(entry)
        elif entry.is_file() and is_mp3_file(entry):
            yield entry


def scan_library(base_folder: str | Path, tag_io: TagIO) -> LibraryScan:
    """
    Recursively read the tags of every MP3 file in a folder.

    Args:
        base_folder: Library root.
        tag_io: Used to read each file's tags.

    Returns:
        LibraryScan with the readable files and the hashtags they carry.

    Raises:
        NotFoundError: If base_folder does not exist or is not a directory.
    """
    base = Path(base_folder).expanduser()
    if not base.is_dir():
        raise NotFoundError(
            f"Library folder not found: {base}",
            details={"base_folder": str(base)}
        )

    scan = LibraryScan()
    tags: set[str] = set()

    for path in iter_mp3_files(base):
        try:
            metadata = tag_io.read_tags(str(path))
        except (NotFoundError, TagIOError) as e:
            logger.warning(f"Skipping {path}: {e.message}")
            scan.skipped.append(str(path))
            continue
        scan.files.append(metadata)
        tags.update(extract_hashtags(metadata.comment))

    scan.tags = sorted(tags)
    logger.info(f"Scanned {len(scan.files)} file(s) in {base} ({len(scan.skipped)} skipped)")
    return scan


def filter_by_tags(
    files: Iterable[TrackMetadata],
    include: Iterable[str] = (),
    exclude: Iterable[str] = ()
) -> list[TrackMetadata]:
    """
    Keep files carrying every include tag and none of the exclude tags.

    Tags are compared case-insensitively, with or without a leading '#'.
    Empty include and exclude return every file.
    """
    wanted = {tag.lstrip("#").lower() for tag in include}
    unwanted = {tag.lstrip("#").lower() for tag in exclude}

    result = []
    for metadata in files:
        file_tags = {tag.lower() for tag in extract_hashtags(metadata.comment)}
        if wanted <= file_tags and not (unwanted & file_tags):
            result.append(metadata)
    return result
