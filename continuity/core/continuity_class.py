"""Continuity class: main interface for session continuity operations.

This module defines the Continuity class, which composes the operation
mixins and owns every stateful collaborator they share.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from continuity.compression import compress_context as _compress
from continuity.config import ContinuityConfig, load_config
from continuity.core.accumulator import AccumulatorState, SessionAccumulator
from continuity.core.checkpoint import CheckpointMixin
from continuity.core.decisions import DecisionsMixin
from continuity.core.recovery import CrashDetector, RecoveryMixin
from continuity.core.sessions import SessionsMixin
from continuity.core.validation import sanitize_list, sanitize_number, sanitize_string
from continuity.handoff import handoff_report
from continuity.storage import DecisionLog, SnapshotArchive, SQLiteStore
from continuity.utils import validate_workspace

logger = logging.getLogger(__name__)

MAX_CONTEXT_CHARS = 2_000_000


class Continuity(
    SessionsMixin,
    CheckpointMixin,
    RecoveryMixin,
    DecisionsMixin,
):
    """Main interface for continuity operations.

    One instance per process. The running per-workspace state lives in the
    instance's accumulator, so two instances over the same data directory
    share durable records but not in-memory progress.

    Examples:
        c = Continuity()
        c.recover_crash("my-project")
        c.load_session(workspace="my-project")
        c.checkpoint("my-project", "Wired up the parser", next_steps=["Add tests"])
        c.save_session("my-project", phase="testing", next_steps=["Ship it"])
    """

    def __init__(
        self,
        data_dir: Optional[Union[str, Path]] = None,
        config: Optional[ContinuityConfig] = None,
    ):
        """Initialize Continuity.

        Args:
            data_dir: Data directory root. Ignored when ``config`` is given.
            config: Pre-resolved configuration. If None, loads from disk.
        """
        self.config = config if config is not None else load_config(data_dir)

        self._store = SQLiteStore(self.config.db_path)
        self._archive = SnapshotArchive(self.config.sessions_dir, self._store)
        self._decision_log = DecisionLog(self.config.decisions_dir)
        self._accumulator = SessionAccumulator()
        self._detector = CrashDetector(self._store)

        logger.debug(f"Continuity initialized at {self.config.data_dir}")

    @property
    def store(self) -> SQLiteStore:
        return self._store

    @property
    def decision_log(self) -> DecisionLog:
        return self._decision_log

    def close(self) -> None:
        self._store.close()

    def compress_context(
        self,
        full_context: str,
        target_tokens: Optional[int] = None,
        preserve: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """Compress verbose context towards a token budget.

        Args:
            full_context: Text to compress
            target_tokens: Token budget (default from config)
            preserve: Strings that must survive verbatim
        """
        text = sanitize_string(full_context, "full_context", MAX_CONTEXT_CHARS, required=False)
        if target_tokens is None:
            target = self.config.compression_target_tokens
        else:
            target = int(sanitize_number(target_tokens, "target_tokens", min_val=1))
        keep = sanitize_list(preserve, "preserve", 1000, 200) or []
        return _compress(text, target, keep).to_dict()

    def score_handoff(self, **fields: Any) -> Dict[str, Any]:
        """Score a candidate handoff and report whether it is ready to save.

        Accepts the same fields as :meth:`save_session`. Nothing is stored.
        """
        return handoff_report(fields, self.config.handoff_quality_threshold)

    def get_accumulated_state(self, workspace: str) -> Optional[AccumulatorState]:
        """A copy of the running checkpoint state for ``workspace``, if any."""
        return self._accumulator.view(validate_workspace(workspace))
