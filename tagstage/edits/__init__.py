"""
Staged comment edits: store, history and the reconciliation engine.

Usage:
    from tagstage.edits import ReconciliationEngine

    engine = ReconciliationEngine(database, Mp3TagIO(), config.phases)
    engine.propose_phase_toggle(path, "peak", True)
    result = engine.apply_edits()
"""

from tagstage.edits.engine import ReconciliationEngine
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

__all__ = [
    "ReconciliationEngine",
    "EditStore",
    "HistoryLog",
    "EditStatus",
    "PendingEdit",
    "HistoryEntry",
    "ApplyFailure",
    "ApplyResult",
    "ApplyDiagnostics",
    "LastApplyError",
]
