"""Per-workspace running state merged across checkpoints.

The accumulator is the only process-local mutable state in continuity. It
is an explicit map owned by one :class:`SessionAccumulator`, with one
re-entrant lock per workspace: callers for different workspaces never
block each other, callers for the same workspace are serialized.

Merge policy, by field:

- ``phase``, ``git_branch``           last write wins; absent leaves it alone
- ``active_files``, ``next_steps``    replaced when present
- ``warnings``                        appended, duplicates kept
- ``decisions``                       appended, deduplicated by exact text
- ``completed_operations``            one entry appended per checkpoint
"""

import contextlib
import copy
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from continuity.types import GitState, Operation, OperationResult, SessionState

logger = logging.getLogger(__name__)


@dataclass
class CheckpointUpdate:
    """A partial update carried by one checkpoint call.

    ``None`` means "not provided", which matters for the replace-semantics
    list fields: an empty list clears them, ``None`` leaves them untouched.
    """

    operation: str
    phase: Optional[str] = None
    active_files: Optional[List[str]] = None
    next_steps: Optional[List[str]] = None
    decisions: Optional[List[str]] = None
    warnings: Optional[List[str]] = None
    git_branch: Optional[str] = None
    result: str = OperationResult.SUCCESS.value


@dataclass
class AccumulatorState:
    workspace: str
    phase: str = "unknown"
    completed_operations: List[Operation] = field(default_factory=list)
    active_files: List[str] = field(default_factory=list)
    decisions_made: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    git_branch: str = "unknown"
    checkpoint_count: int = 0
    last_escalation: Optional[str] = None

    def merge(self, update: CheckpointUpdate, timestamp: str) -> None:
        """Fold ``update`` into this state and count the checkpoint."""
        if update.phase:
            self.phase = update.phase
        if update.git_branch:
            self.git_branch = update.git_branch
        if update.active_files is not None:
            self.active_files = list(update.active_files)
        if update.next_steps is not None:
            self.next_steps = list(update.next_steps)
        if update.warnings:
            self.warnings.extend(update.warnings)
        for decision in update.decisions or []:
            if decision not in self.decisions_made:
                self.decisions_made.append(decision)

        self.completed_operations.append(
            Operation(timestamp=timestamp, description=update.operation, result=update.result)
        )
        self.checkpoint_count += 1

    def checkpoint_payload(self) -> Dict[str, Any]:
        """The full running view, as stored in a checkpoint's state payload."""
        return {
            "workspace": self.workspace,
            "phase": self.phase,
            "completed_operations": [op.to_dict() for op in self.completed_operations],
            "active_files": list(self.active_files),
            "decisions_made": list(self.decisions_made),
            "next_steps": list(self.next_steps),
            "warnings": list(self.warnings),
            "git_state": {"branch": self.git_branch, "uncommitted": False},
        }

    def to_session_state(
        self,
        session_id: str,
        timestamp: str,
        extra_warnings: Optional[List[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SessionState:
        return SessionState(
            id=session_id,
            workspace=self.workspace,
            timestamp=timestamp,
            phase=self.phase,
            completed_operations=copy.deepcopy(self.completed_operations),
            active_files=list(self.active_files),
            decisions_made=list(self.decisions_made),
            next_steps=list(self.next_steps),
            git_state=GitState(branch=self.git_branch),
            warnings=list(self.warnings) + list(extra_warnings or []),
            metadata=dict(metadata or {}),
        )


class SessionAccumulator:
    """Owns every workspace's AccumulatorState and its tracked session id.

    Methods that touch a workspace's state expect the caller to hold
    ``lock(workspace)`` for the whole read-modify-write.
    """

    def __init__(self):
        self._states: Dict[str, AccumulatorState] = {}
        self._sessions: Dict[str, str] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    @contextlib.contextmanager
    def lock(self, workspace: str) -> Iterator[None]:
        with self._guard:
            ws_lock = self._locks.setdefault(workspace, threading.RLock())
        with ws_lock:
            yield

    def stage(self, workspace: str, update: CheckpointUpdate, timestamp: str) -> AccumulatorState:
        """Return a merged copy without touching the live state.

        Persist the copy first, then :meth:`commit` it, so a failed write
        leaves memory exactly as durable storage last saw it.
        """
        current = self._states.get(workspace) or AccumulatorState(workspace=workspace)
        staged = copy.deepcopy(current)
        staged.merge(update, timestamp)
        return staged

    def commit(self, workspace: str, state: AccumulatorState) -> None:
        self._states[workspace] = state

    def get(self, workspace: str) -> Optional[AccumulatorState]:
        """The live state (caller holds the lock), or None."""
        return self._states.get(workspace)

    def view(self, workspace: str) -> Optional[AccumulatorState]:
        """A detached copy of a workspace's state."""
        with self.lock(workspace):
            state = self._states.get(workspace)
            return copy.deepcopy(state) if state is not None else None

    def mark_escalated(self, workspace: str, timestamp: str) -> None:
        state = self._states.get(workspace)
        if state is not None:
            state.checkpoint_count = 0
            state.last_escalation = timestamp

    def clear(self, workspace: str) -> None:
        self._states.pop(workspace, None)
        self._sessions.pop(workspace, None)

    # === Tracked session ids ===

    def current_session(self, workspace: str) -> Optional[str]:
        return self._sessions.get(workspace)

    def track_session(self, workspace: str, session_id: str) -> None:
        self._sessions[workspace] = session_id

    def untrack_session(self, workspace: str, session_id: Optional[str] = None) -> bool:
        """Stop tracking a workspace's session (only ``session_id`` if given)."""
        current = self._sessions.get(workspace)
        if current is None or (session_id is not None and current != session_id):
            return False
        del self._sessions[workspace]
        return True
