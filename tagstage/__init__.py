"""
tagstage: Stage, review and apply phase hashtags in MP3 comments.

Phases are workflow labels (starter, buildup, peak, ...) stored as hashtags
in the ID3 comment of each track. tagstage never writes a tag change
straight away: every change is staged as a pending edit, reviewed, and
only then written to the file.

Architecture:
    tags/       Pure hashtag codec and the mutagen ID3 adapter
        - extract_phases / toggle_phase / rebuild_comment
        - Mp3TagIO reads metadata and writes the main COMM frame

    edits/      Persistent edit workflow (SQLite)
        - EditStore: pending_edits table
        - HistoryLog: edit_history table
        - ReconciliationEngine: propose, apply, reject, undo

    library/    Recursive MP3 scan and hashtag filtering

    core/       Configuration, database, logging, exceptions, progress

    cli.py      Command-line interface

Edit Lifecycle:
    propose -> pending --apply ok--> applied --undo--> pending
                       --apply error--> failed --apply ok--> applied
                       --reject--> (deleted)

Usage:
    Command Line:
        tagstage propose ~/Music/DJ/track.mp3 peak
        tagstage pending
        tagstage apply
        tagstage undo 12

    Python API:
        from tagstage import Database, Mp3TagIO, ReconciliationEngine, load_config

        config = load_config()
        database = Database(config.storage.database_path)
        engine = ReconciliationEngine(database, Mp3TagIO(), lambda: config.phases)

        engine.propose_phase_toggle("/music/track.mp3", "peak", True)
        result = engine.apply_edits()

Configuration:
    Requires a config.yaml file in the current directory (or --config):

        library:
          directory: "~/Music/DJ"

        phases: [starter, buildup, peak]

Dependencies:
    - mutagen: ID3 tag reading and writing
    - click / rich-click: CLI framework and colors
    - rich: Progress bars and tables
    - tqdm: Console logging that cooperates with progress output
    - pyyaml: Configuration file parsing
"""

__version__ = "0.1.0"
__author__ = "tagstage"
__license__ = "MIT"

# Convenience imports for common usage
from tagstage.core import (
    Config,
    ConfigError,
    Database,
    DatabaseError,
    InvalidStateError,
    NotFoundError,
    PendingEditConflictError,
    TagIOError,
    TagStageError,
    ValidationError,
    get_logger,
    load_config,
    setup_logging,
)
from tagstage.edits import ApplyResult, EditStatus, HistoryEntry, PendingEdit, ReconciliationEngine
from tagstage.tags import Mp3TagIO, TagIO, TrackMetadata

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "Database",
    "setup_logging",
    "get_logger",
    # Exceptions
    "TagStageError",
    "ConfigError",
    "DatabaseError",
    "PendingEditConflictError",
    "NotFoundError",
    "InvalidStateError",
    "ValidationError",
    "TagIOError",
    # Edits
    "ReconciliationEngine",
    "PendingEdit",
    "HistoryEntry",
    "EditStatus",
    "ApplyResult",
    # Tags
    "TagIO",
    "Mp3TagIO",
    "TrackMetadata",
]
