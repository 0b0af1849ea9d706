"""
Data models for pending edits and edit history.

Design Decisions:
    - Rows are returned as frozen dataclasses; changing an edit always goes
      through the store, never through the object
    - Models know how to build themselves from a sqlite3.Row
    - Timestamps are kept as the ISO-8601 strings stored in the database

Usage:
    from tagstage.edits.models import PendingEdit, EditStatus

    if edit.status is EditStatus.PENDING:
        ...
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping


class EditStatus(str, Enum):
    """
    Lifecycle of a pending edit.

        pending --apply ok--> applied --undo--> pending
        pending --apply error--> failed --apply ok--> applied
        pending --reject--> (row deleted)
    """
    PENDING = "pending"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(frozen=True)
class PendingEdit:
    """
    A proposed replacement of one file's comment.

    Attributes:
        id: Database id, assigned on creation.
        file_path: Target MP3 file.
        original_comment: The file's comment when the edit was first
                          proposed. Never changes afterwards; undo writes it back.
        new_comment: The complete comment to write. Replaced when further
                     toggles are merged into this edit.
        created_at: ISO-8601 creation time (UTC).
        status: Current EditStatus.
    """
    id: int
    file_path: str
    original_comment: str | None
    new_comment: str
    created_at: str
    status: EditStatus

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "PendingEdit":
        return cls(
            id=row["id"],
            file_path=row["file_path"],
            original_comment=row["original_comment"],
            new_comment=row["new_comment"],
            created_at=row["created_at"],
            status=EditStatus(row["status"]),
        )

    @property
    def is_pending(self) -> bool:
        return self.status is EditStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass(frozen=True)
class HistoryEntry:
    """
    A comment change that was written to disk.

    Attributes:
        id: Database id.
        file_path: The file that was written.
        old_comment: Comment before the write (None if there was none).
        new_comment: Comment that was written.
        applied_at: ISO-8601 write time (UTC).
        reverted: True once the change has been undone.
    """
    id: int
    file_path: str
    old_comment: str | None
    new_comment: str
    applied_at: str
    reverted: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "HistoryEntry":
        return cls(
            id=row["id"],
            file_path=row["file_path"],
            old_comment=row["old_comment"],
            new_comment=row["new_comment"],
            applied_at=row["applied_at"],
            reverted=bool(row["reverted"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ApplyFailure:
    """One edit that could not be written during apply_edits()."""
    id: int
    file_path: str
    error: str


@dataclass
class ApplyResult:
    """
    Outcome of an apply_edits() batch.

    Attributes:
        success_count: Edits written and marked applied.
        failed: Edits that were marked failed, with the error message.
    """
    success_count: int = 0
    failed: list[ApplyFailure] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.success_count + len(self.failed)

    @property
    def ok(self) -> bool:
        return not self.failed


@dataclass(frozen=True)
class LastApplyError:
    """The most recent write failure, kept for display only."""
    timestamp: datetime
    file_path: str
    error: str


class ApplyDiagnostics:
    """
    Holder for the most recent apply failure.

    Purely informational: the authoritative record of a failure is the
    edit's 'failed' status. Each engine owns its own instance, so separate
    engines (or tests) never see each other's errors.
    """

    def __init__(self) -> None:
        self._last_error: LastApplyError | None = None

    @property
    def last_error(self) -> LastApplyError | None:
        return self._last_error

    def record(self, file_path: str, error: str) -> LastApplyError:
        self._last_error = LastApplyError(
            timestamp=datetime.now(timezone.utc),
            file_path=file_path,
            error=error,
        )
        return self._last_error

    def clear(self) -> None:
        self._last_error = None
