"""
Exception classes for tagstage.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message and an optional details
dictionary, so callers can show the message and log the context.

Exception Hierarchy:
    TagStageError (base)
        ConfigError - Configuration file issues
        DatabaseError - SQLite storage issues (never retried)
            PendingEditConflictError - Second pending edit for the same file
        NotFoundError - Unknown edit id, history id or file path
        InvalidStateError - Transition not allowed from the current status
        ValidationError - Bad input rejected before any mutation
        TagIOError - Reading or writing ID3 tags failed
"""


class TagStageError(Exception):
    """
    Base exception for all tagstage errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all tagstage errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., edit id, file path).

    Example:
        try:
            engine.undo_edit(edit_id)
        except TagStageError as e:
            logger.error(f"Undo failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'edit_id': Pending edit involved in the error
                     - 'file_path': MP3 file involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(TagStageError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required fields missing (library.directory)
        - Invalid phase names (must be word characters only)

    Example:
        raise ConfigError(
            "Missing required section: 'library'",
            details={'file_path': '/path/to/config.yaml', 'missing_section': 'library'}
        )
    """
    pass


class DatabaseError(TagStageError):
    """
    Raised when there's an issue with the SQLite database.

    This is a CRITICAL error. Storage failures are never caught or retried
    inside tagstage; they propagate to the caller.

    Common causes:
        - Database file is corrupted or locked for too long
        - Permission denied when reading/writing
        - Disk full
        - Schema version mismatch

    Example:
        raise DatabaseError(
            "Failed to update pending edit: database is locked",
            details={'edit_id': 12}
        )
    """
    pass


class PendingEditConflictError(DatabaseError):
    """
    Raised when inserting a second pending edit for a file path.

    The pending_edits table has a partial unique index on file_path for
    rows whose status is 'pending'. Hitting it means another writer created
    the pending edit between our lookup and our insert. The engine reacts by
    merging into the existing row instead.
    """
    pass


class NotFoundError(TagStageError):
    """
    Raised when a referenced edit, history entry or file does not exist.

    Surfaced directly to the caller; there is nothing to retry.

    Example:
        raise NotFoundError(
            "Pending edit not found: 42",
            details={'edit_id': 42}
        )
    """
    pass


class InvalidStateError(TagStageError):
    """
    Raised when an operation is not valid for the edit's current status.

    Examples include rejecting an applied edit or undoing a pending one.
    The caller should refresh its view of the edits and pick the operation
    that matches the current status.

    Attributes:
        current_status: The status the edit was found in, if known.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        current_status: str | None = None
    ) -> None:
        """
        Initialize the state error.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            current_status: Status of the edit when the operation was refused.
        """
        super().__init__(message, details)
        self.current_status = current_status


class ValidationError(TagStageError):
    """
    Raised when input is rejected before any store mutation.

    Common causes:
        - Empty or whitespace-only comment on update
        - Phase name that is not a single word (\\w+)
        - Phase name that is not in the configured phase list
    """
    pass


class TagIOError(TagStageError):
    """
    Raised when reading or writing ID3 tags fails.

    This is a NON-CRITICAL error during a batch apply: the edit is marked
    'failed' and the remaining edits are still processed.

    Common causes:
        - File locked by another program
        - Permission denied
        - Corrupted ID3 header
        - Disk full during write
        - File is not an MP3

    Example:
        raise TagIOError(
            "Failed to write comment: [Errno 13] Permission denied",
            details={'file_path': '/music/track.mp3'}
        )
    """
    pass
