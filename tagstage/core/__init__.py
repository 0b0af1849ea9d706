"""
Core module for tagstage.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - config: Configuration loading and validation
    - database: Thread-safe SQLite database for pending edits and history
    - logger: Logging system with multiple outputs
    - progress: Progress bar for applying edits

Usage:
    from tagstage.core import (
        Config, load_config,
        Database,
        setup_logging, get_logger,
        TagStageError, ConfigError, DatabaseError
    )
"""

from tagstage.core.config import (
    Config,
    LibraryConfig,
    StorageConfig,
    load_config,
    parse_phases,
)
from tagstage.core.database import Database, DATABASE_VERSION
from tagstage.core.exceptions import (
    ConfigError,
    DatabaseError,
    InvalidStateError,
    NotFoundError,
    PendingEditConflictError,
    TagIOError,
    TagStageError,
    ValidationError,
)
from tagstage.core.logger import (
    get_logger,
    log_apply_failure,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    # Config
    "Config",
    "LibraryConfig",
    "StorageConfig",
    "load_config",
    "parse_phases",
    # Database
    "Database",
    "DATABASE_VERSION",
    # Exceptions
    "TagStageError",
    "ConfigError",
    "DatabaseError",
    "PendingEditConflictError",
    "NotFoundError",
    "InvalidStateError",
    "ValidationError",
    "TagIOError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_apply_failure",
    "shutdown_logging",
]
