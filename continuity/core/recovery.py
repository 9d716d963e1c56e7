"""Crash detection and recovery prompt synthesis.

A session record that is still OPEN when a new run asks about it was never
ended: the agent crashed, ran out of context, or simply never saved.
Detection consumes the record (OPEN -> CLOSED) so each crash is reported
exactly once.
"""

import logging
from typing import Any, Dict, Optional

from continuity.logging_config import log_crash
from continuity.storage import SQLiteStore, render_recovery_prompt
from continuity.types import CrashRecovery, utc_now
from continuity.utils import validate_workspace

logger = logging.getLogger(__name__)

NO_CRASH_PROMPT = "No crash detected. Last session ended cleanly."


class CrashDetector:
    """Finds and consumes the most recent unclean session record."""

    def __init__(self, store: SQLiteStore):
        self.store = store

    def detect(self, workspace: Optional[str] = None) -> CrashRecovery:
        """Report the most recent unclean session, closing it in the process.

        ``operations_lost`` is 0 when the workspace has a checkpoint, since
        every checkpoint carries the full running state; otherwise it is the
        record's operation count.
        """
        for crashed in self.store.get_unclean_sessions(workspace):
            checkpoint = self.store.get_latest_checkpoint(crashed.workspace)
            if not self.store.close_open_session(crashed.id, utc_now()):
                # Consumed by a concurrent caller
                continue

            return CrashRecovery(
                detected=True,
                operations_lost=0 if checkpoint is not None else crashed.operations_count,
                recovery_prompt=render_recovery_prompt(crashed, checkpoint),
                last_checkpoint=checkpoint,
                last_session=crashed,
            )

        return CrashRecovery(detected=False, operations_lost=0, recovery_prompt=NO_CRASH_PROMPT)


class RecoveryMixin:
    """Crash recovery operation for Continuity."""

    def recover_crash(self, workspace: Optional[str] = None) -> Dict[str, Any]:
        """Check whether the last session ended uncleanly.

        Call at the start of a run, before ``load_session``. Calling it twice
        in a row reports the same crash only once.
        """
        if workspace is not None:
            workspace = validate_workspace(workspace)

        recovery = self._detector.detect(workspace)
        if recovery.detected and recovery.last_session is not None:
            crashed = recovery.last_session
            with self._accumulator.lock(crashed.workspace):
                self._accumulator.untrack_session(crashed.workspace, crashed.id)
            log_crash(
                crashed.workspace, crashed.id, recovery.operations_lost, data_dir=self.config.data_dir
            )
            logger.warning(
                f"Recovered unclean session {crashed.id[:8]}... in {crashed.workspace} "
                f"(operations lost: {recovery.operations_lost})"
            )

        return recovery.to_dict()
