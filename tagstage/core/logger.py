"""
Logging configuration for tagstage.

This module sets up the logging system with multiple outputs:
    - Console: Real-time messages with tqdm-compatible formatting
    - log_full.log: Complete log of all events (DEBUG and above)
    - log_errors.log: Only ERROR and CRITICAL level messages
    - apply_failures.log: Files whose pending edit could not be written

Everything shown on screen is also saved to file, then filtered into
specialized files.

Log File Locations:
    All log files are created in {storage.directory}/logs with a timestamp
    suffix, one set per run.

Usage:
    from tagstage.core.logger import setup_logging, get_logger

    setup_logging(storage_dir)  # Call once at startup
    logger = get_logger(__name__)  # Get logger for each module

    logger.info("Applying 3 pending edits")
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import TextIO

from tqdm import tqdm


LOG_FULL_FILENAME = "log_full"
LOG_ERRORS_FILENAME = "log_errors"
APPLY_FAILURES_FILENAME = "apply_failures"

# Log format for file output (detailed with timestamp)
FILE_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Log format for console output (compact, tqdm-friendly)
CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"


class Colors:
    """ANSI color codes for terminal output."""
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    WHITE = "\033[37m"
    BOLD = "\033[1m"


class ColoredConsoleFormatter(logging.Formatter):
    """
    Custom formatter that adds colors to console output.

    Colors:
        - DEBUG: Blue
        - INFO: Green
        - WARNING: Yellow
        - ERROR: Red
        - CRITICAL: Bold Red
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.BLUE,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, Colors.WHITE)
        colored_levelname = f"{color}{record.levelname}{Colors.RESET}"
        return f"{colored_levelname}: {record.getMessage()}"


class TqdmLoggingHandler(logging.Handler):
    """
    Logging handler that writes to console without breaking progress bars.

    Progress bars redraw in place with carriage returns. Plain writes to
    stderr would interleave with them; tqdm.write() prints above any
    active bar instead.

    Attributes:
        stream: The output stream (defaults to sys.stderr).
    """

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        super().__init__()
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
            tqdm.write(msg, file=self.stream)
        except Exception:
            self.handleError(record)


class ApplyFailureHandler(logging.Handler):
    """
    Handler that captures failed edit applications for the failure report.

    This handler listens for log records that carry apply failure
    information and writes them to apply_failures.log in a simple,
    human-readable format:

        #12 /music/Artist - Track.mp3
        [Errno 13] Permission denied

        #15 /music/Other - Track.mp3
        disk full

    The handler looks for specific extra fields in log records:
        - 'apply_failed_edit_id': The pending edit id
        - 'apply_failed_file_path': The MP3 file the write targeted
        - 'apply_failed_error': The error message

    Only records containing these fields are written to the report.

    Attributes:
        report_path: Path to the apply_failures.log file.
        report_file: Open file handle (set by open()).
    """

    def __init__(self, report_path: Path) -> None:
        """
        Initialize the failure report handler.

        Args:
            report_path: Path to the report file. Created/overwritten by open().
        """
        super().__init__()
        self.report_path = report_path
        self.report_file: TextIO | None = None

    def open(self) -> None:
        """Open the report file for writing (overwrites existing content)."""
        self.report_file = open(self.report_path, "w", encoding="utf-8")

    def emit(self, record: logging.LogRecord) -> None:
        """
        Write failure info to the report if present in the log record.

        Records without 'apply_failed_file_path' are ignored.
        """
        if not hasattr(record, "apply_failed_file_path"):
            return

        if self.report_file is None:
            return

        try:
            edit_id = getattr(record, "apply_failed_edit_id", None)
            file_path = getattr(record, "apply_failed_file_path", "")
            error = getattr(record, "apply_failed_error", "")

            prefix = f"#{edit_id} " if edit_id is not None else ""
            self.report_file.write(f"{prefix}{file_path}\n")
            self.report_file.write(f"{error}\n\n")
            self.report_file.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        """Close the report file handle. Safe to call multiple times."""
        if self.report_file is not None:
            try:
                self.report_file.close()
            except OSError:
                pass
            self.report_file = None
        super().close()


class ErrorOnlyFilter(logging.Filter):
    """
    Filter that only allows ERROR and CRITICAL level records.

    Used by the error log file handler to exclude DEBUG, INFO, and WARNING.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


def setup_logging(output_dir: Path, console_level: int = logging.INFO) -> Path:
    """
    Configure the logging system for the application.

    This function should be called ONCE at application startup, after
    the configuration is loaded but before any other operations.

    Args:
        output_dir: Directory where log files will be created.
                    Logs are stored in a 'logs' subdirectory.
        console_level: Minimum level shown on the console.

    Returns:
        The logs directory that was used.

    Behavior:
        1. Create output_dir/logs if it doesn't exist
        2. Configure root logger level to DEBUG, dropping old handlers
        3. Console handler (TqdmLoggingHandler, colored)
        4. Full log file handler (DEBUG and above)
        5. Error log file handler (ERROR and above via ErrorOnlyFilter)
        6. Apply failure report handler

    Thread Safety:
        NOT thread-safe. Call it once from the main thread.
    """
    logs_dir = output_dir / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    console_handler = TqdmLoggingHandler()
    console_handler.setLevel(console_level)
    console_handler.setFormatter(ColoredConsoleFormatter())
    root_logger.addHandler(console_handler)

    full_log_path = logs_dir / f"{LOG_FULL_FILENAME}_{timestamp}.log"
    full_handler = logging.FileHandler(full_log_path, mode="w", encoding="utf-8")
    full_handler.setLevel(logging.DEBUG)
    full_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    root_logger.addHandler(full_handler)

    error_log_path = logs_dir / f"{LOG_ERRORS_FILENAME}_{timestamp}.log"
    error_handler = logging.FileHandler(error_log_path, mode="w", encoding="utf-8")
    error_handler.setLevel(logging.DEBUG)  # Filter handles the level restriction
    error_handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT, FILE_DATE_FORMAT))
    error_handler.addFilter(ErrorOnlyFilter())
    root_logger.addHandler(error_handler)

    failures_path = logs_dir / f"{APPLY_FAILURES_FILENAME}_{timestamp}.log"
    failures_handler = ApplyFailureHandler(failures_path)
    failures_handler.open()
    root_logger.addHandler(failures_handler)

    return logs_dir


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: The logger name, typically __name__ of the calling module.
              This creates a hierarchy like 'tagstage.edits.engine'.

    Returns:
        logging.Logger: A logger instance configured by setup_logging().

    Note:
        Loggers obtained before setup_logging() is called have no handlers
        of their own and propagate to whatever the root logger has.
    """
    return logging.getLogger(name)


def format_applied_message(edit_id: int, file_path: str) -> str:
    """Format an 'Applied' message with colors."""
    return (
        f"{Colors.GREEN}Applied{Colors.RESET} #{edit_id}: "
        f"{Colors.CYAN}{file_path}{Colors.RESET}"
    )


def format_apply_summary(success_count: int, failed_count: int) -> str:
    """Format the end-of-batch summary with colors."""
    return (
        f"Apply finished "
        f"(applied: {Colors.GREEN}{success_count}{Colors.RESET}, "
        f"failed: {Colors.RED}{failed_count}{Colors.RESET})"
    )


def log_apply_failure(
    logger: logging.Logger,
    edit_id: int,
    file_path: str,
    error_message: str
) -> None:
    """
    Log an edit whose comment could not be written to disk.

    Logs an ERROR level message and attaches the extra fields that
    ApplyFailureHandler uses to write to apply_failures.log.

    Example:
        log_apply_failure(logger, 12, "/music/a.mp3", "disk full")
    """
    logger.error(
        f"Apply failed: #{edit_id} {file_path} - {error_message}",
        extra={
            "apply_failed_edit_id": edit_id,
            "apply_failed_file_path": file_path,
            "apply_failed_error": error_message,
        }
    )


def shutdown_logging() -> None:
    """
    Properly shut down the logging system.

    Flushes and closes all handlers, then removes them from the root logger.
    Typically called in a finally block at application exit.
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        try:
            handler.flush()
            handler.close()
        except OSError:
            pass
        root_logger.removeHandler(handler)
