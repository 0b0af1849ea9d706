"""Library scanning and tag filtering."""

from tagstage.library.scanner import LibraryScan, filter_by_tags, iter_mp3_files, scan_library

__all__ = [
    "LibraryScan",
    "scan_library",
    "filter_by_tags",
    "iter_mp3_files",
]
