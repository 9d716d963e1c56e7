"""Full session save, load and explicit start."""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from continuity.core.validation import sanitize_list, sanitize_string, validate_enum
from continuity.errors import NotFoundError, ValidationError
from continuity.logging_config import log_load, log_save
from continuity.types import (
    OPERATION_RESULTS,
    Checkpoint,
    CheckpointTrigger,
    GitState,
    Operation,
    OperationResult,
    SessionRecord,
    SessionState,
    parse_datetime,
    utc_now,
)
from continuity.utils import validate_workspace

logger = logging.getLogger(__name__)

SESSION_END_OPERATION = "session_end"


def _age_hours(timestamp: str) -> float:
    """Hours since ``timestamp``, rounded half-up to one decimal."""
    saved_at = parse_datetime(timestamp)
    if saved_at is None:
        return 0.0
    hours = (datetime.now(timezone.utc) - saved_at).total_seconds() / 3600
    return math.floor(hours * 10 + 0.5) / 10


def _parse_operations(value: Any, timestamp: str) -> List[Operation]:
    """Accept operations as ``{"description", "result"?}`` objects or plain strings."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(
            f"completed_operations must be an array, got {type(value).__name__}"
        )

    operations = []
    for i, item in enumerate(value):
        field_name = f"completed_operations[{i}]"
        if isinstance(item, str):
            description, result = item, None
        elif isinstance(item, dict):
            description, result = item.get("description"), item.get("result")
        else:
            raise ValidationError(f"{field_name} must be an object or a string")
        operations.append(
            Operation(
                timestamp=timestamp,
                description=sanitize_string(description, f"{field_name}.description", 500),
                result=validate_enum(
                    result, f"{field_name}.result", OPERATION_RESULTS, OperationResult.SUCCESS.value
                ),
            )
        )
    return operations


class SessionsMixin:
    """Session lifecycle operations for Continuity."""

    def save_session(
        self,
        workspace: str,
        phase: str,
        next_steps: List[str],
        completed_operations: Optional[List[Union[Dict[str, Any], str]]] = None,
        active_files: Optional[List[str]] = None,
        decisions_made: Optional[List[str]] = None,
        git_branch: Optional[str] = None,
        warnings: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Write a full handoff snapshot and end the tracked session cleanly.

        The snapshot is built from the caller's fields, not from the running
        checkpoint state, and the workspace's running state is cleared.

        Raises:
            ValidationError: Bad input; nothing was changed.
            StorageError: An artifact or record could not be written.
        """
        workspace = validate_workspace(workspace)
        phase = sanitize_string(phase, "phase", 200)
        if next_steps is None:
            raise ValidationError("next_steps is required")
        next_steps = sanitize_list(next_steps, "next_steps", 500, 50)
        active_files = sanitize_list(active_files, "active_files", 500, 200) or []
        decisions_made = sanitize_list(decisions_made, "decisions_made", 1000, 50) or []
        warnings = sanitize_list(warnings, "warnings", 1000, 50) or []
        git_branch = sanitize_string(git_branch, "git_branch", 200, required=False) or "unknown"

        with self._accumulator.lock(workspace):
            now = utc_now()
            operations = _parse_operations(completed_operations, now)
            tracked_id = self._accumulator.current_session(workspace)
            session_id = tracked_id or str(uuid.uuid4())

            state = SessionState(
                id=session_id,
                workspace=workspace,
                timestamp=now,
                phase=phase,
                completed_operations=operations,
                active_files=active_files,
                decisions_made=decisions_made,
                next_steps=next_steps,
                git_state=GitState(branch=git_branch),
                warnings=warnings,
            )
            ref = self._archive.write(state)

            ended = tracked_id is not None and self._store.end_session(
                session_id,
                now,
                ended_cleanly=True,
                operations_count=len(operations),
                handoff_path=ref.markdown_path,
            )
            if not ended:
                self._store.create_session(
                    SessionRecord(
                        id=session_id,
                        workspace=workspace,
                        start_time=now,
                        end_time=now,
                        operations_count=len(operations),
                        ended_cleanly=True,
                        handoff_path=ref.markdown_path,
                    )
                )

            self._store.save_checkpoint(
                Checkpoint(
                    id=str(uuid.uuid4()),
                    workspace=workspace,
                    timestamp=now,
                    operation=SESSION_END_OPERATION,
                    state=state.to_dict(),
                    trigger=CheckpointTrigger.MANUAL.value,
                ),
                keep_count=self.config.checkpoint_keep_count,
            )
            self._accumulator.clear(workspace)

        log_save(
            workspace, session_id, len(operations), ref.markdown_path, data_dir=self.config.data_dir
        )
        logger.info(f"Saved session {session_id[:8]}... for {workspace}")

        return {
            "success": True,
            "session_id": session_id,
            "handoff_path": ref.markdown_path,
            "json_path": ref.json_path,
            "operations_saved": len(operations),
        }

    def load_session(
        self, workspace: Optional[str] = None, session_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Resume from the most recent matching snapshot.

        Finding nothing is a fresh start, reported as ``success: False``
        with a message. On success a new, still-open session record is
        tracked for the snapshot's workspace, so a run that never saves is
        detected as a crash next time.
        """
        if workspace is not None:
            workspace = validate_workspace(workspace)
        session_id = sanitize_string(session_id, "session_id", 100, required=False) or None

        try:
            state, json_path = self._archive.find(workspace=workspace, session_id=session_id)
        except NotFoundError as e:
            logger.info(str(e))
            return {"success": False, "message": str(e)}

        age_hours = _age_hours(state.timestamp)
        current_session_id = self.start_session(state.workspace)
        log_load(state.workspace, state.id, age_hours, data_dir=self.config.data_dir)

        return {
            "success": True,
            "session_id": state.id,
            "workspace": state.workspace,
            "phase": state.phase,
            "age_hours": age_hours,
            "next_steps": state.next_steps,
            "active_files": state.active_files,
            "warnings": state.warnings,
            "decisions_made": state.decisions_made,
            "handoff_markdown": self._archive.read_markdown(json_path, state),
            "json_path": str(json_path),
            "current_session_id": current_session_id,
        }

    def resume_session(self, workspace: str) -> Optional[str]:
        """Adopt the newest open session record for ``workspace``.

        For short-lived callers (one process per command) that should keep
        extending the same unsaved session instead of opening a new record
        each run. Does nothing if this process already tracks a session.

        Returns:
            The tracked session id, or None if there was nothing to adopt.
        """
        workspace = validate_workspace(workspace)
        with self._accumulator.lock(workspace):
            current = self._accumulator.current_session(workspace)
            if current is not None:
                return current
            open_sessions = self._store.get_unclean_sessions(workspace)
            if not open_sessions:
                return None
            session_id = open_sessions[0].id
            self._accumulator.track_session(workspace, session_id)
            logger.debug(f"Resumed open session {session_id[:8]}... for {workspace}")
            return session_id

    def start_session(self, workspace: str) -> str:
        """Open and track a new session record for ``workspace``.

        A session already tracked for the workspace is closed first (not
        cleanly), so at most one open record per workspace belongs to this
        process.

        Returns:
            The new session id.
        """
        workspace = validate_workspace(workspace)
        with self._accumulator.lock(workspace):
            now = utc_now()
            previous = self._accumulator.current_session(workspace)
            if previous is not None:
                self._store.close_open_session(previous, now)
                self._accumulator.untrack_session(workspace, previous)
            return self._ensure_session(workspace, now)
