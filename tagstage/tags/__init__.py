"""
Tag handling: the phase hashtag codec and ID3 comment I/O.

Usage:
    from tagstage.tags import Mp3TagIO, extract_phases, rebuild_comment
"""

from tagstage.tags.codec import (
    extract_hashtags,
    extract_phases,
    is_valid_phase_name,
    rebuild_comment,
    split_comment,
    toggle_phase,
)
from tagstage.tags.id3 import Mp3TagIO, TagIO, is_mp3_file
from tagstage.tags.models import TrackMetadata

__all__ = [
    "extract_hashtags",
    "extract_phases",
    "is_valid_phase_name",
    "rebuild_comment",
    "split_comment",
    "toggle_phase",
    "TagIO",
    "Mp3TagIO",
    "is_mp3_file",
    "TrackMetadata",
]
