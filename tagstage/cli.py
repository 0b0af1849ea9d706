"""
Command-line interface for tagstage.

This module implements the CLI using Click, providing commands to stage
phase changes on MP3 files, review them, and write them to disk.
rich-click is used for the output colors.

Commands:
    tagstage propose <file> <phase> [--off]   Stage turning a phase on/off
    tagstage pending [--all]                  List pending (or all) edits
    tagstage apply [ids...]                   Write edits to the files
    tagstage reject <id>                      Discard a pending edit
    tagstage edit <id> <comment>              Replace an edit's comment by hand
    tagstage undo <id>                        Restore the original comment
    tagstage history                          List written changes
    tagstage revert <history-id>              Write an old comment back
    tagstage show <file>                      Show metadata and phases
    tagstage scan [--include t] [--exclude t] List library files by hashtag
    tagstage phases                           List configured phases
    tagstage failed                           List edits whose write failed

Options:
    --config <path>                           Config file (default ./config.yaml)

Usage:
    # Tag a track and write the change
    tagstage propose ~/Music/DJ/track.mp3 peak
    tagstage pending
    tagstage apply

    # Retry a failed edit after fixing file permissions
    tagstage apply 7

    # Take a change back
    tagstage undo 7

Exit Codes:
    0    Success
    1    Configuration or usage error
    2    Database error
    3    Tag read/write error (including edits that failed during apply)
    4    Other tagstage error (unknown id, wrong status, invalid phase)
    130  Interrupted
"""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.COMMAND_GROUPS = {
    "tagstage": [
        {
            "name": "Staging",
            "commands": ["propose", "pending", "edit", "reject"],
        },
        {
            "name": "Writing",
            "commands": ["apply", "failed", "undo", "history", "revert"],
        },
        {
            "name": "Library",
            "commands": ["show", "scan", "phases"],
        },
    ],
}

from tagstage import __version__
from tagstage.core import (
    Config,
    ConfigError,
    Database,
    DatabaseError,
    TagIOError,
    TagStageError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from tagstage.core.progress import ApplyProgressBar
from tagstage.edits import EditStatus, HistoryEntry, PendingEdit, ReconciliationEngine
from tagstage.library import filter_by_tags, scan_library
from tagstage.tags import Mp3TagIO, TagIO, TrackMetadata

logger = get_logger(__name__)


@dataclass
class AppContext:
    """Objects built once per command from the configuration."""
    config: Config
    database: Database
    tag_io: TagIO
    engine: ReconciliationEngine


@click.group(invoke_without_command=True)
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    metavar="<config.yaml>",
    help="Configuration file (default: ./config.yaml)"
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Show debug messages on the console"
)
@click.option(
    "--version",
    is_flag=True,
    help="Show version and exit."
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], verbose: bool, version: bool) -> None:
    """
    tagstage: Stage phase hashtags in MP3 comments before writing them.

    Phase changes are kept as pending edits until you apply them.

    \b
    BASIC USAGE:
        tagstage propose track.mp3 peak        # Stage #peak on a track
        tagstage pending                       # Review staged edits
        tagstage apply                         # Write them to the files
        tagstage undo 3                        # Restore edit #3's original comment
    """
    if version:
        click.echo(f"tagstage {__version__}")
        ctx.exit(0)

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)

    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["console_level"] = logging.DEBUG if verbose else logging.INFO


# =============================================================================
# Staging
# =============================================================================

@cli.command()
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.argument("phase")
@click.option("--off", is_flag=True, help="Remove the phase instead of adding it")
@click.pass_obj
def propose(options: dict, file: Path, phase: str, off: bool) -> None:
    """Stage turning PHASE on (or off) for FILE."""
    def action(app: AppContext) -> None:
        edit = app.engine.propose_phase_toggle(_normalize_path(file), phase, enable=not off)
        click.echo(_format_edit(edit))

    _run(options, action)


@cli.command()
@click.option("--all", "show_all", is_flag=True, help="Include applied and failed edits")
@click.pass_obj
def pending(options: dict, show_all: bool) -> None:
    """List pending edits, newest first."""
    def action(app: AppContext) -> None:
        edits = app.engine.list_all_edits() if show_all else app.engine.list_pending_edits()
        if not edits:
            click.echo("No edits." if show_all else "No pending edits.")
            return
        for edit in edits:
            click.echo(_format_edit(edit))

    _run(options, action)


@cli.command()
@click.argument("edit_id", type=int)
@click.argument("comment")
@click.pass_obj
def edit(options: dict, edit_id: int, comment: str) -> None:
    """Replace the comment that edit EDIT_ID will write."""
    def action(app: AppContext) -> None:
        click.echo(_format_edit(app.engine.update_edit_comment(edit_id, comment)))

    _run(options, action)


@cli.command()
@click.argument("edit_id", type=int)
@click.pass_obj
def reject(options: dict, edit_id: int) -> None:
    """Discard pending edit EDIT_ID."""
    def action(app: AppContext) -> None:
        app.engine.reject_edit(edit_id)
        click.echo(f"Rejected edit #{edit_id}")

    _run(options, action)


# =============================================================================
# Writing
# =============================================================================

@cli.command()
@click.argument("edit_ids", type=int, nargs=-1)
@click.pass_obj
def apply(options: dict, edit_ids: tuple[int, ...]) -> None:
    """
    Write edits to their files.

    Without EDIT_IDS every pending edit is applied, oldest first. Failed
    edits can be retried by passing their ids.
    """
    def action(app: AppContext) -> int | None:
        ids = list(dict.fromkeys(edit_ids)) if edit_ids else None
        total = len(ids) if ids is not None else len(app.engine.list_pending_edits())
        if total == 0:
            click.echo("Nothing to apply.")
            return None

        with ApplyProgressBar(total=total) as progress:
            result = app.engine.apply_edits(ids, on_edit_done=progress.update)

        click.echo(f"Applied {result.success_count} of {result.total} edit(s)")
        for failure in result.failed:
            click.echo(f"  FAILED #{failure.id} {failure.file_path}: {failure.error}", err=True)

        if result.ok:
            return None

        last_error = app.engine.last_apply_error
        if last_error is not None:
            click.echo(
                f"Last error at {last_error.timestamp:%H:%M:%S}: {last_error.error}",
                err=True
            )
        return 3

    _run(options, action)


@cli.command()
@click.pass_obj
def failed(options: dict) -> None:
    """List edits whose write failed (retry with 'apply ID')."""
    def action(app: AppContext) -> None:
        edits = [e for e in app.engine.list_all_edits() if e.status is EditStatus.FAILED]
        if not edits:
            click.echo("No failed edits.")
            return
        for edit in edits:
            click.echo(_format_edit(edit))

    _run(options, action)


@cli.command()
@click.argument("edit_id", type=int)
@click.pass_obj
def undo(options: dict, edit_id: int) -> None:
    """Restore the original comment of applied edit EDIT_ID."""
    def action(app: AppContext) -> None:
        edit = app.engine.undo_edit(edit_id)
        click.echo(f"Restored {edit.file_path}; edit #{edit.id} is pending again")

    _run(options, action)


@cli.command()
@click.pass_obj
def history(options: dict) -> None:
    """List comments written to disk, newest first."""
    def action(app: AppContext) -> None:
        entries = app.engine.list_history()
        if not entries:
            click.echo("No history.")
            return
        for entry in entries:
            click.echo(_format_history(entry))

    _run(options, action)


@cli.command()
@click.argument("history_id", type=int)
@click.pass_obj
def revert(options: dict, history_id: int) -> None:
    """Write the old comment of history entry HISTORY_ID back to its file."""
    def action(app: AppContext) -> None:
        entry = app.engine.revert_history_entry(history_id)
        click.echo(f"Reverted {entry.file_path} to {entry.old_comment or ''!r}")

    _run(options, action)


# =============================================================================
# Library
# =============================================================================

@cli.command()
@click.argument("file", type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def show(options: dict, file: Path) -> None:
    """Show FILE's metadata, comment and phases (including staged changes)."""
    def action(app: AppContext) -> None:
        file_path = _normalize_path(file)
        metadata = app.tag_io.read_tags(file_path)
        click.echo(_format_metadata(metadata))

        pending_edit = app.engine.store.find_pending_by_file_path(file_path)
        if pending_edit is not None:
            click.echo(f"Pending:  #{pending_edit.id} -> {pending_edit.new_comment!r}")
        phases = app.engine.effective_phases(file_path)
        click.echo(f"Phases:   {', '.join(phases) if phases else '-'}")

    _run(options, action)


@cli.command()
@click.option("--include", "-i", multiple=True, metavar="<tag>", help="Only files with this hashtag")
@click.option("--exclude", "-x", multiple=True, metavar="<tag>", help="Skip files with this hashtag")
@click.pass_obj
def scan(options: dict, include: tuple[str, ...], exclude: tuple[str, ...]) -> None:
    """List library files, optionally filtered by hashtags."""
    def action(app: AppContext) -> None:
        result = scan_library(app.config.library.directory, app.tag_io)
        files = filter_by_tags(result.files, include, exclude)
        for metadata in files:
            click.echo(f"{metadata.file_path}  [{metadata.comment or ''}]")
        click.echo(f"{len(files)} of {len(result.files)} file(s)")
        if result.tags:
            click.echo(f"Tags: {' '.join('#' + tag for tag in result.tags)}")

    _run(options, action)


@cli.command()
@click.pass_obj
def phases(options: dict) -> None:
    """List the configured phases."""
    def action(app: AppContext) -> None:
        if not app.config.phases:
            click.echo("No phases configured.")
            return
        for phase in app.config.phases:
            click.echo(f"#{phase}")

    _run(options, action)


# =============================================================================
# Orchestration
# =============================================================================

def _run(options: dict, action: Callable[[AppContext], Optional[int]]) -> None:
    """
    Execute a command with configuration, logging and database set up.

    This is the shared orchestration for every subcommand:
    1. Loads configuration
    2. Sets up logging
    3. Opens the database and builds the engine
    4. Runs the command's action
    5. Maps errors to exit codes

    Args:
        options: Dictionary with CLI options from click context.
        action: Command body. May return a non-zero exit code.

    Raises:
        SystemExit: On errors or a non-zero action result.
    """
    database: Database | None = None
    exit_code: int | None = None

    try:
        config = _load_configuration(options.get("config_path"))
        _ensure_storage_directory(config.storage.directory)

        setup_logging(config.storage.directory, console_level=options.get("console_level", logging.INFO))
        logger.debug(f"Library: {config.library.directory}")

        database = _initialize_database(config)
        tag_io = Mp3TagIO()
        engine = ReconciliationEngine(database, tag_io, lambda: config.phases)

        exit_code = action(AppContext(config=config, database=database, tag_io=tag_io, engine=engine))

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except DatabaseError as e:
        click.echo(f"Database error: {e.message}", err=True)
        logger.error(f"Database error: {e.message}", exc_info=True)
        sys.exit(2)

    except TagIOError as e:
        click.echo(f"Tag error: {e.message}", err=True)
        logger.error(f"Tag error: {e.message}", exc_info=True)
        sys.exit(3)

    except TagStageError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.debug(f"Error: {e.message} {e.details}")
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        if database is not None:
            database.close()
        shutdown_logging()

    if exit_code:
        sys.exit(exit_code)


def _load_configuration(config_path: Path | None) -> Config:
    """
    Load and validate configuration.

    Raises:
        ConfigError: If configuration is invalid or missing.
    """
    return load_config(config_path)


def _ensure_storage_directory(directory: Path) -> None:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(
            f"Cannot create storage directory: {directory} ({e})",
            details={"path": str(directory)}
        ) from e


def _initialize_database(config: Config) -> Database:
    """
    Open the SQLite database in the storage directory.

    Raises:
        DatabaseError: If database cannot be initialized.
    """
    return Database(config.storage.database_path)


def _normalize_path(file: Path) -> str:
    """Absolute path string, so the same file always maps to the same edit."""
    return str(file.expanduser().resolve())


def _format_edit(edit: PendingEdit) -> str:
    original = edit.original_comment or ""
    return (
        f"#{edit.id} [{edit.status.value}] {edit.file_path}\n"
        f"    {original!r} -> {edit.new_comment!r}"
    )


def _format_history(entry: HistoryEntry) -> str:
    marker = " (reverted)" if entry.reverted else ""
    return (
        f"#{entry.id} {entry.applied_at} {entry.file_path}{marker}\n"
        f"    {entry.old_comment or ''!r} -> {entry.new_comment!r}"
    )


def _format_metadata(metadata: TrackMetadata) -> str:
    lines = [
        f"File:     {metadata.file_path}",
        f"Track:    {metadata.display_name}",
    ]
    if metadata.album:
        lines.append(f"Album:    {metadata.album}")
    if metadata.year:
        lines.append(f"Year:     {metadata.year}")
    if metadata.genre:
        lines.append(f"Genre:    {metadata.genre}")
    if metadata.duration is not None:
        minutes, seconds = divmod(int(metadata.duration), 60)
        lines.append(f"Length:   {minutes}:{seconds:02d}")
    lines.append(f"Comment:  {metadata.comment or '-'}")
    return "\n".join(lines)


def main() -> None:
    """
    Entry point for the CLI.

    This function is called when running `tagstage` from the command line.
    It invokes the Click CLI group.
    """
    cli()


if __name__ == "__main__":
    main()
