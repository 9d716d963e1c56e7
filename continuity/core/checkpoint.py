"""Checkpoint operations for continuity."""

import logging
import uuid
from typing import Any, Dict, List, Optional

from continuity.core.accumulator import CheckpointUpdate
from continuity.core.validation import sanitize_list, sanitize_string, validate_enum
from continuity.errors import StorageError
from continuity.logging_config import log_checkpoint, log_escalation
from continuity.types import (
    CHECKPOINT_TRIGGERS,
    OPERATION_RESULTS,
    Checkpoint,
    CheckpointTrigger,
    OperationResult,
    SessionRecord,
    SnapshotRef,
    utc_now,
)
from continuity.utils import validate_workspace

logger = logging.getLogger(__name__)

ESCALATION_WARNING = "[AUTO-ESCALATED] Session save triggered by checkpoint threshold"


class CheckpointMixin:
    """Checkpoint merge/persist/escalate operations for Continuity."""

    def checkpoint(
        self,
        workspace: str,
        operation: str,
        phase: Optional[str] = None,
        active_files: Optional[List[str]] = None,
        next_steps: Optional[List[str]] = None,
        decisions: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
        trigger: Optional[str] = None,
        result: Optional[str] = None,
        git_hash: Optional[str] = None,
        git_branch: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Record incremental progress for a workspace.

        Merges the update into the workspace's running state, persists a
        checkpoint carrying the *whole* running state, prunes the history,
        and escalates to a full session snapshot once the threshold is hit.

        Escalation failures never undo the checkpoint: they come back as
        ``escalation_error`` next to a successful result. Once the snapshot
        is written the escalation stands; a failure to rotate the session
        record afterwards is reported as ``rotation_error``.

        Args:
            workspace: Workspace key
            operation: What was just completed
            phase: Current work phase (kept until changed)
            active_files: Files in play (replaces the previous list)
            next_steps: Immediate next steps (replaces the previous list)
            decisions: Decisions since the last checkpoint (deduplicated)
            warnings: Issues to flag (appended)
            trigger: What caused this checkpoint (default "manual")
            result: Outcome of ``operation`` (default "success")
            git_hash: Source-control revision at this point
            git_branch: Current branch (kept until changed)

        Returns:
            Flat result dict.

        Raises:
            ValidationError: Bad input; nothing was changed.
            StorageError: The checkpoint could not be persisted.
        """
        workspace = validate_workspace(workspace)
        update = CheckpointUpdate(
            operation=sanitize_string(operation, "operation", 500),
            phase=sanitize_string(phase, "phase", 200, required=False) or None,
            active_files=sanitize_list(active_files, "active_files", 500, 200),
            next_steps=sanitize_list(next_steps, "next_steps", 500, 50),
            decisions=sanitize_list(decisions, "decisions", 1000, 50),
            warnings=sanitize_list(warnings, "warnings", 1000, 50),
            git_branch=sanitize_string(git_branch, "git_branch", 200, required=False) or None,
            result=validate_enum(result, "result", OPERATION_RESULTS, OperationResult.SUCCESS.value),
        )
        trigger = validate_enum(trigger, "trigger", CHECKPOINT_TRIGGERS, CheckpointTrigger.MANUAL.value)
        git_hash = sanitize_string(git_hash, "git_hash", 100, required=False) or None

        with self._accumulator.lock(workspace):
            now = utc_now()
            session_id = self._ensure_session(workspace, now)

            staged = self._accumulator.stage(workspace, update, now)
            cp = Checkpoint(
                id=str(uuid.uuid4()),
                workspace=workspace,
                timestamp=now,
                operation=update.operation,
                state=staged.checkpoint_payload(),
                git_hash=git_hash,
                trigger=trigger,
            )
            self._store.save_checkpoint(cp, keep_count=self.config.checkpoint_keep_count)
            self._accumulator.commit(workspace, staged)
            self._store.increment_operations(session_id)

            checkpoint_number = staged.checkpoint_count
            log_checkpoint(
                workspace, cp.operation, checkpoint_number, trigger, data_dir=self.config.data_dir
            )

            response: Dict[str, Any] = {
                "success": True,
                "checkpoint_id": cp.id,
                "workspace": workspace,
                "operation": cp.operation,
                "timestamp": now,
                "checkpoint_number": checkpoint_number,
                "escalation_threshold": self.config.auto_escalation_threshold,
                "auto_escalated": False,
                "session_id": session_id,
            }

            if checkpoint_number >= self.config.auto_escalation_threshold:
                try:
                    ref = self._escalate(workspace, now)
                except StorageError as e:
                    logger.warning(
                        f"Auto-escalation failed for {workspace}: {e}",
                        extra={"operation": "checkpoint_escalation", "error_type": type(e).__name__},
                    )
                    response["escalation_error"] = str(e)
                else:
                    response["auto_escalated"] = True
                    response["handoff_path"] = ref.markdown_path
                    response["json_path"] = ref.json_path
                    try:
                        response["session_id"] = self._rotate_session(workspace, ref, now)
                    except StorageError as e:
                        logger.warning(
                            f"Session rotation after escalation failed for {workspace}: {e}",
                            extra={"operation": "session_rotation", "error_type": type(e).__name__},
                        )
                        response["rotation_error"] = str(e)

        return response

    def _ensure_session(self, workspace: str, now: str) -> str:
        """Return the tracked session id for a workspace, opening one if needed."""
        session_id = self._accumulator.current_session(workspace)
        if session_id is not None:
            return session_id

        session_id = str(uuid.uuid4())
        self._store.create_session(
            SessionRecord(id=session_id, workspace=workspace, start_time=now)
        )
        self._accumulator.track_session(workspace, session_id)
        logger.debug(f"Opened session {session_id[:8]}... for {workspace}")
        return session_id

    def _escalate(self, workspace: str, now: str) -> SnapshotRef:
        """Promote the running state to a full session snapshot.

        The counter is only reset once the artifacts are on disk, so a failed
        escalation is retried by the next checkpoint.
        """
        acc = self._accumulator.get(workspace)
        session_id = self._accumulator.current_session(workspace) or str(uuid.uuid4())
        state = acc.to_session_state(
            session_id,
            now,
            extra_warnings=[ESCALATION_WARNING],
            metadata={"auto_escalated": True, "checkpoint_count": acc.checkpoint_count},
        )
        ref = self._archive.write(state, auto=True)
        checkpoint_count = acc.checkpoint_count
        self._accumulator.mark_escalated(workspace, now)
        log_escalation(workspace, ref.markdown_path, checkpoint_count, data_dir=self.config.data_dir)
        return ref

    def _rotate_session(self, workspace: str, ref: SnapshotRef, now: str) -> Optional[str]:
        """Close the tracked session (not cleanly) and open a fresh one.

        The old session stays tracked until its record is closed, so a failure
        here leaves it open for the next checkpoint or a crash check.
        """
        session_id = self._accumulator.current_session(workspace)
        if session_id is None:
            return None
        self._store.end_session(
            session_id, now, ended_cleanly=False, handoff_path=ref.markdown_path
        )
        self._accumulator.untrack_session(workspace, session_id)
        return self._ensure_session(workspace, now)
