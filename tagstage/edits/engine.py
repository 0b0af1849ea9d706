"""
Reconciliation engine for staged comment edits.

The engine owns every rule about pending edits:

    - A file has at most one pending edit. New toggles on the same file are
      merged into it instead of creating a second row.
    - The comment captured when a file's pending edit is created
      (original_comment) is frozen. Later toggles rebuild the free text and
      foreign hashtags from it. Only the phase set accumulates, read from
      the edit's current new_comment.
    - The effective comment of a file is its pending edit's new_comment if
      there is one, otherwise the comment on disk.
    - apply_edits() handles every edit on its own. A failed write marks that
      edit 'failed' and the batch goes on.
    - undo_edit() writes the original comment back, flags the history entry
      reverted and makes the edit pending again.

Workflow:
    propose_phase_toggle()  -> Edit Store only, no disk write
    apply_edits()           -> TagIO.write_comment, History Log, Edit Store
    reject_edit()           -> Edit Store delete
    undo_edit()             -> TagIO.write_comment, History Log, Edit Store

Usage:
    engine = ReconciliationEngine(database, Mp3TagIO(), lambda: config.phases)

    engine.propose_phase_toggle("/music/a.mp3", "peak", True)
    result = engine.apply_edits()
    for failure in result.failed:
        print(failure.file_path, failure.error)
"""

import threading
import weakref
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Generator, Iterable, Sequence, Union

from tagstage.core.database import Database
from tagstage.core.exceptions import (
    InvalidStateError,
    NotFoundError,
    PendingEditConflictError,
    TagIOError,
    TagStageError,
    ValidationError,
)
from tagstage.core.logger import (
    format_applied_message,
    format_apply_summary,
    get_logger,
    log_apply_failure,
)
from tagstage.edits.history import HistoryLog
from tagstage.edits.models import (
    ApplyDiagnostics,
    ApplyFailure,
    ApplyResult,
    EditStatus,
    HistoryEntry,
    LastApplyError,
    PendingEdit,
)
from tagstage.edits.store import EditStore
from tagstage.tags.codec import (
    extract_phases,
    is_valid_phase_name,
    rebuild_comment,
    toggle_phase,
)
from tagstage.tags.id3 import TagIO

logger = get_logger(__name__)


PhaseSource = Union[Sequence[str], Callable[[], Sequence[str]]]

# Errors from TagIO.write_comment that fail one edit without stopping a batch
WRITE_ERRORS = (TagIOError, NotFoundError, OSError)


class ReconciliationEngine:
    """
    Stages, applies, rejects and undoes comment edits.

    Args:
        database: Shared Database (Edit Store and History Log live in it).
        tag_io: Capability to read and write file comments.
        available_phases: The phase list, or a callable returning it. A
                          callable is re-read on every operation, so phase
                          configuration changes are picked up immediately.

    Thread Safety:
        Proposals, applies and undos on the same file are serialized by a
        per-path lock, dropped once no thread holds it. Across processes, the
        database's unique index on pending edits catches the race; the
        loser merges into the winner's row.
    """

    def __init__(
        self,
        database: Database,
        tag_io: TagIO,
        available_phases: PhaseSource
    ) -> None:
        self.database = database
        self.store = EditStore(database)
        self.history = HistoryLog(database)
        self.tag_io = tag_io
        self.diagnostics = ApplyDiagnostics()
        self._phase_source = available_phases
        self._path_locks: weakref.WeakValueDictionary[str, threading.Lock] = weakref.WeakValueDictionary()
        self._path_locks_guard = threading.Lock()

    # =========================================================================
    # Effective state
    # =========================================================================

    def available_phases(self) -> list[str]:
        source = self._phase_source
        return list(source() if callable(source) else source)

    def effective_comment(self, file_path: str) -> str | None:
        """The pending edit's new_comment if there is one, else the disk comment."""
        pending = self.store.find_pending_by_file_path(str(file_path))
        if pending is not None:
            return pending.new_comment
        return self.tag_io.read_comment(str(file_path))

    def effective_phases(self, file_path: str) -> list[str]:
        return extract_phases(self.effective_comment(file_path), self.available_phases())

    # =========================================================================
    # Proposals
    # =========================================================================

    def propose_phase_toggle(self, file_path: str, phase: str, enable: bool = True) -> PendingEdit:
        """
        Stage turning a phase on or off for a file.

        Args:
            file_path: Target MP3 file.
            phase: Phase name (with or without a leading '#').
            enable: True to add the phase, False to remove it.

        Returns:
            The created or updated pending edit.

        Raises:
            ValidationError: If phase is not a single word or not configured.
            NotFoundError: If the file has no pending edit and cannot be found.
            TagIOError: If the file's current comment cannot be read.
            DatabaseError: On storage failure.

        Behavior:
            1. Look up the file's pending edit
            2. Base original = its frozen original_comment, or the disk comment
            3. Current phases = phases of the effective comment
            4. new_comment = base original rebuilt with the toggled phases
            5. Update the pending edit, or insert a new one
        """
        phases = self.available_phases()
        canonical = self._validate_phase(phase, phases)

        def compute(base_original: str | None, effective: str | None) -> str:
            new_phases = toggle_phase(extract_phases(effective, phases), canonical, enable)
            return rebuild_comment(base_original, phases, new_phases)

        action = "on" if enable else "off"
        logger.debug(f"Toggle {canonical} {action} for {file_path}")
        return self._upsert_pending(str(file_path), compute)

    def propose_comment(self, file_path: str, new_comment: str) -> PendingEdit:
        """
        Stage a free-form comment for a file.

        Merges into the file's pending edit like a phase toggle does.

        Raises:
            ValidationError: If new_comment is empty or whitespace.
        """
        text = _require_comment_text(new_comment)
        return self._upsert_pending(str(file_path), lambda base, effective: text)

    def _upsert_pending(
        self,
        file_path: str,
        compute_comment: Callable[[str | None, str | None], str]
    ) -> PendingEdit:
        """
        Create or update the file's single pending edit.

        compute_comment(base_original, effective_comment) returns the new
        comment. If our insert loses a race against another writer, the
        second attempt finds that writer's row and merges into it.
        """
        with self._locked_path(file_path):
            try:
                return self._merge_or_insert(file_path, compute_comment)
            except PendingEditConflictError:
                logger.warning(f"Pending edit for {file_path} created concurrently, merging")
                return self._merge_or_insert(file_path, compute_comment)

    def _merge_or_insert(
        self,
        file_path: str,
        compute_comment: Callable[[str | None, str | None], str]
    ) -> PendingEdit:
        existing = self.store.find_pending_by_file_path(file_path)
        if existing is not None:
            new_comment = compute_comment(existing.original_comment, existing.new_comment)
            self.store.update_comment(existing.id, new_comment)
            logger.info(f"Updated pending edit #{existing.id} for {file_path}: {new_comment!r}")
            return replace(existing, new_comment=new_comment)

        original = self.tag_io.read_comment(file_path)
        new_comment = compute_comment(original, original)
        edit = self.store.insert(file_path, original, new_comment)
        logger.info(f"Created pending edit #{edit.id} for {file_path}: {new_comment!r}")
        return edit

    # =========================================================================
    # Listing
    # =========================================================================

    def list_pending_edits(self) -> list[PendingEdit]:
        return self.store.list_pending()

    def list_all_edits(self) -> list[PendingEdit]:
        return self.store.list_all()

    def list_history(self) -> list[HistoryEntry]:
        return self.history.list_all()

    def get_edit(self, edit_id: int) -> PendingEdit:
        """
        Raises:
            NotFoundError: If there is no edit with this id.
        """
        edit = self.store.find_by_id(edit_id)
        if edit is None:
            raise NotFoundError(f"Pending edit not found: {edit_id}", details={"edit_id": edit_id})
        return edit

    # =========================================================================
    # Apply
    # =========================================================================

    def apply_edits(
        self,
        edit_ids: Iterable[int] | None = None,
        on_edit_done: Callable[[bool], None] | None = None
    ) -> ApplyResult:
        """
        Write staged comments to their files.

        Args:
            edit_ids: Edits to apply, in order. Each must exist and be
                      'pending' or 'failed' (retry). If None, every pending
                      edit is applied, oldest first.
            on_edit_done: Optional callback receiving True/False after each
                          edit (used for progress display).

        Returns:
            ApplyResult with the success count and one ApplyFailure per edit
            that could not be written.

        Raises:
            NotFoundError: If an explicit id does not exist.
            InvalidStateError: If an explicit id is already applied.
            DatabaseError: On storage failure (not caught per edit).

        Per-edit Behavior:
            write ok    -> history entry and status 'applied' committed together
            write error -> status 'failed', failure recorded, batch continues
            rejected or applied meanwhile -> skipped
        """
        edits = self._resolve_apply_targets(edit_ids)
        result = ApplyResult()

        logger.info(f"Applying {len(edits)} edit(s)")

        for edit in edits:
            with self._locked_path(edit.file_path):
                # Proposals may have merged into the row since it was listed
                current = self.store.find_by_id(edit.id)
                if current is None or current.status is EditStatus.APPLIED:
                    logger.warning(f"Edit #{edit.id} was rejected or applied meanwhile, skipping")
                    continue
                success = self._apply_one(current, result)

            if on_edit_done is not None:
                on_edit_done(success)

        logger.info(format_apply_summary(result.success_count, len(result.failed)))
        return result

    def _apply_one(self, edit: PendingEdit, result: ApplyResult) -> bool:
        """Write one edit and record the outcome. Caller holds the path lock."""
        try:
            self.tag_io.write_comment(edit.file_path, edit.new_comment)
        except WRITE_ERRORS as e:
            message = e.message if isinstance(e, TagStageError) else str(e)
            self.store.set_status(edit.id, EditStatus.FAILED)
            result.failed.append(ApplyFailure(id=edit.id, file_path=edit.file_path, error=message))
            self.diagnostics.record(edit.file_path, message)
            log_apply_failure(logger, edit.id, edit.file_path, message)
            return False

        with self.database.session() as conn:
            self.history.append(edit.file_path, edit.original_comment, edit.new_comment, conn=conn)
            self.store.set_status(edit.id, EditStatus.APPLIED, conn=conn)

        result.success_count += 1
        logger.info(format_applied_message(edit.id, edit.file_path))
        return True

    def _resolve_apply_targets(self, edit_ids: Iterable[int] | None) -> list[PendingEdit]:
        if edit_ids is None:
            return list(reversed(self.store.list_pending()))

        targets: list[PendingEdit] = []
        seen: set[int] = set()
        for edit_id in edit_ids:
            if edit_id in seen:
                continue
            seen.add(edit_id)
            edit = self.get_edit(edit_id)
            if edit.status is EditStatus.APPLIED:
                raise InvalidStateError(
                    f"Edit #{edit_id} is already applied",
                    details={"edit_id": edit_id},
                    current_status=edit.status.value
                )
            targets.append(edit)
        return targets

    @property
    def last_apply_error(self) -> LastApplyError | None:
        """Most recent write failure seen by this engine (informational only)."""
        return self.diagnostics.last_error

    def clear_last_apply_error(self) -> None:
        self.diagnostics.clear()

    # =========================================================================
    # Reject / update / undo
    # =========================================================================

    def reject_edit(self, edit_id: int) -> None:
        """
        Discard a pending edit without a trace.

        Raises:
            NotFoundError: Unknown id.
            InvalidStateError: The edit is not pending.
        """
        edit = self.get_edit(edit_id)
        if not edit.is_pending:
            raise InvalidStateError(
                f"Edit #{edit_id} is not pending (status: {edit.status.value})",
                details={"edit_id": edit_id},
                current_status=edit.status.value
            )
        self.store.remove(edit_id)
        logger.info(f"Rejected edit #{edit_id} for {edit.file_path}")

    def update_edit_comment(self, edit_id: int, new_comment: str) -> PendingEdit:
        """
        Replace an edit's new_comment by hand.

        Raises:
            ValidationError: Empty or whitespace-only comment.
            NotFoundError: Unknown id.
            InvalidStateError: The edit is already applied.
        """
        text = _require_comment_text(new_comment)
        edit = self.get_edit(edit_id)
        if edit.status is EditStatus.APPLIED:
            raise InvalidStateError(
                f"Edit #{edit_id} is already applied; undo it first",
                details={"edit_id": edit_id},
                current_status=edit.status.value
            )
        self.store.update_comment(edit_id, text)
        logger.info(f"Updated comment of edit #{edit_id}: {text!r}")
        return replace(edit, new_comment=text)

    def undo_edit(self, edit_id: int) -> PendingEdit:
        """
        Restore a file's original comment and make the edit pending again.

        Raises:
            NotFoundError: Unknown id.
            InvalidStateError: The edit is not applied, has no matching
                               unreverted history entry, or the file already
                               has another pending edit.
            TagIOError: The original comment could not be written back.
        """
        edit = self.get_edit(edit_id)

        with self._locked_path(edit.file_path):
            edit = self.get_edit(edit_id)
            if edit.status is not EditStatus.APPLIED:
                raise InvalidStateError(
                    f"Edit #{edit_id} is not applied (status: {edit.status.value})",
                    details={"edit_id": edit_id},
                    current_status=edit.status.value
                )

            entry = self.history.find_latest_unreverted(edit.file_path, edit.new_comment)
            if entry is None:
                raise InvalidStateError(
                    f"No unreverted history entry matches edit #{edit_id}",
                    details={"edit_id": edit_id, "file_path": edit.file_path},
                    current_status=edit.status.value
                )

            other = self.store.find_pending_by_file_path(edit.file_path)
            if other is not None:
                raise InvalidStateError(
                    f"{edit.file_path} already has pending edit #{other.id}; "
                    f"apply or reject it before undoing #{edit_id}",
                    details={"edit_id": edit_id, "pending_edit_id": other.id},
                    current_status=edit.status.value
                )

            self.tag_io.write_comment(edit.file_path, edit.original_comment or "")
            with self.database.session() as conn:
                self.history.mark_reverted(entry.id, conn=conn)
                self.store.set_status(edit_id, EditStatus.PENDING, conn=conn)

        logger.info(f"Undid edit #{edit_id}: restored original comment of {edit.file_path}")
        return replace(edit, status=EditStatus.PENDING)

    def revert_history_entry(self, history_id: int) -> HistoryEntry:
        """
        Write a history entry's old comment back and flag it reverted.

        Pending edits are not touched; use undo_edit() to also make the edit
        pending again.

        Raises:
            NotFoundError: Unknown history id.
            InvalidStateError: The entry is already reverted.
            TagIOError: The old comment could not be written.
        """
        entry = self.history.find_by_id(history_id)
        if entry is None:
            raise NotFoundError(
                f"History entry not found: {history_id}",
                details={"history_id": history_id}
            )
        if entry.reverted:
            raise InvalidStateError(
                f"History entry #{history_id} is already reverted",
                details={"history_id": history_id}
            )

        with self._locked_path(entry.file_path):
            self.tag_io.write_comment(entry.file_path, entry.old_comment or "")
            self.history.mark_reverted(history_id)

        logger.info(f"Reverted history entry #{history_id} for {entry.file_path}")
        return replace(entry, reverted=True)

    # =========================================================================
    # Helpers
    # =========================================================================

    @contextmanager
    def _locked_path(self, file_path: str) -> Generator[None, None, None]:
        with self._path_locks_guard:
            lock = self._path_locks.get(file_path)
            if lock is None:
                lock = threading.Lock()
                self._path_locks[file_path] = lock
        with lock:
            yield

    @staticmethod
    def _validate_phase(phase: str, available_phases: Sequence[str]) -> str:
        """Return the configured spelling of phase, or raise ValidationError."""
        name = phase.strip().lstrip("#") if isinstance(phase, str) else phase
        if not is_valid_phase_name(name):
            raise ValidationError(
                f"Invalid phase name: {phase!r}",
                details={"phase": phase}
            )
        for available in available_phases:
            if available.lower() == name.lower():
                return available
        raise ValidationError(
            f"Unknown phase: {name} (available: {', '.join(available_phases) or 'none'})",
            details={"phase": name, "available_phases": list(available_phases)}
        )


def _require_comment_text(comment: str) -> str:
    if not isinstance(comment, str) or not comment.strip():
        raise ValidationError("Comment cannot be empty")
    return comment.strip()
