"""Continuity storage backends.

- SQLiteStore: checkpoints, session records and the snapshot index
- SnapshotArchive: session snapshot artifacts (JSON + markdown)
- DecisionLog: append-only JSONL decision log
"""

from .decision_log import DecisionLog
from .flat_files import render_handoff_markdown, render_recovery_prompt
from .snapshots import SnapshotArchive
from .sqlite import SQLiteStore

__all__ = [
    "DecisionLog",
    "SQLiteStore",
    "SnapshotArchive",
    "render_handoff_markdown",
    "render_recovery_prompt",
]
