"""SQLite store for checkpoints, session records and the snapshot index.

Local-first storage with:
- One short-lived connection per operation (WAL, busy timeout)
- Each multi-statement operation in a single transaction
- sqlite3 errors surfaced as StorageError with a readable message
"""

import contextlib
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterator, List, Optional

from continuity.errors import MalformedRecordError, StorageError
from continuity.types import Checkpoint, SessionRecord, SnapshotRef

from .schema import init_db

logger = logging.getLogger(__name__)


class SQLiteStore:
    """Durable owner of Checkpoint, SessionRecord and SnapshotRef rows."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create database directory: {e}")
            raise StorageError(f"Cannot create database directory: {e}") from e

        with self._transaction("initialize database") as conn:
            init_db(conn)

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        return conn

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Context manager that handles transactions AND closes connection.

        Commits on success, rolls back on any exception, always closes.
        """
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextlib.contextmanager
    def _transaction(self, action: str) -> Iterator[sqlite3.Connection]:
        """Like ``_connect`` but converts sqlite3 errors to StorageError."""
        try:
            with self._connect() as conn:
                yield conn
        except sqlite3.Error as e:
            logger.error(
                f"Failed to {action}: {e}",
                extra={"operation": action, "error_type": type(e).__name__},
            )
            raise StorageError(f"Failed to {action}: {e}") from e

    def close(self) -> None:
        """Connections are per-operation; nothing to release."""

    # === Checkpoints ===

    def save_checkpoint(self, cp: Checkpoint, keep_count: Optional[int] = None) -> int:
        """Insert a checkpoint and, optionally, prune the workspace history.

        Both happen in one transaction, so a reader never sees the new row
        without the prune (or the prune without the row).

        Returns:
            Number of checkpoints pruned.
        """
        with self._transaction("save checkpoint") as conn:
            conn.execute(
                """
                INSERT INTO checkpoints
                (id, workspace, timestamp, operation, state_json, git_hash, trigger_source)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    cp.id,
                    cp.workspace,
                    cp.timestamp,
                    cp.operation,
                    json.dumps(cp.state, default=str),
                    cp.git_hash,
                    cp.trigger,
                ),
            )
            if keep_count is None:
                return 0
            return self._prune(conn, cp.workspace, keep_count)

    def prune_checkpoints(self, workspace: str, keep_count: int = 50) -> int:
        """Keep only the newest ``keep_count`` checkpoints for a workspace."""
        with self._transaction("prune checkpoints") as conn:
            return self._prune(conn, workspace, keep_count)

    def _prune(self, conn: sqlite3.Connection, workspace: str, keep_count: int) -> int:
        # rowid breaks timestamp ties in insertion order
        cur = conn.execute(
            """
            DELETE FROM checkpoints WHERE workspace = ? AND rowid NOT IN (
                SELECT rowid FROM checkpoints WHERE workspace = ?
                ORDER BY timestamp DESC, rowid DESC LIMIT ?
            )
            """,
            (workspace, workspace, max(keep_count, 0)),
        )
        if cur.rowcount:
            logger.debug(f"Pruned {cur.rowcount} checkpoint(s) for {workspace}")
        return cur.rowcount

    def get_latest_checkpoint(self, workspace: str) -> Optional[Checkpoint]:
        """Newest parseable checkpoint for a workspace, or None."""
        with self._transaction("read checkpoints") as conn:
            rows = conn.execute(
                """
                SELECT * FROM checkpoints WHERE workspace = ?
                ORDER BY timestamp DESC, rowid DESC
                """,
                (workspace,),
            )
            for row in rows:
                try:
                    return self._row_to_checkpoint(row)
                except MalformedRecordError as e:
                    logger.warning(str(e))
        return None

    def get_checkpoints(self, workspace: str, limit: int = 10) -> List[Checkpoint]:
        """Newest-first checkpoints for a workspace; malformed rows are skipped."""
        with self._transaction("read checkpoints") as conn:
            rows = conn.execute(
                """
                SELECT * FROM checkpoints WHERE workspace = ?
                ORDER BY timestamp DESC, rowid DESC LIMIT ?
                """,
                (workspace, limit),
            ).fetchall()

        checkpoints = []
        for row in rows:
            try:
                checkpoints.append(self._row_to_checkpoint(row))
            except MalformedRecordError as e:
                logger.warning(str(e))
        return checkpoints

    def count_checkpoints(self, workspace: str) -> int:
        with self._transaction("count checkpoints") as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM checkpoints WHERE workspace = ?", (workspace,)
            ).fetchone()
        return row[0]

    def _row_to_checkpoint(self, row: sqlite3.Row) -> Checkpoint:
        try:
            state = json.loads(row["state_json"])
        except (TypeError, json.JSONDecodeError) as e:
            raise MalformedRecordError(f"checkpoint {row['id']}", e) from e
        if not isinstance(state, dict):
            raise MalformedRecordError(
                f"checkpoint {row['id']}", TypeError("state payload is not an object")
            )
        return Checkpoint(
            id=row["id"],
            workspace=row["workspace"],
            timestamp=row["timestamp"],
            operation=row["operation"],
            state=state,
            git_hash=row["git_hash"],
            trigger=row["trigger_source"],
        )

    # === Sessions ===

    def create_session(self, session: SessionRecord) -> None:
        with self._transaction("create session") as conn:
            conn.execute(
                """
                INSERT INTO sessions
                (id, workspace, start_time, end_time, operations_count, ended_cleanly, handoff_path)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    session.id,
                    session.workspace,
                    session.start_time,
                    session.end_time,
                    session.operations_count,
                    1 if session.ended_cleanly else 0,
                    session.handoff_path,
                ),
            )

    def end_session(
        self,
        session_id: str,
        end_time: str,
        ended_cleanly: bool,
        operations_count: Optional[int] = None,
        handoff_path: Optional[str] = None,
    ) -> bool:
        """Stamp a session's end. ``None`` arguments leave the stored value as is.

        Returns:
            True if a session row was updated.
        """
        with self._transaction("end session") as conn:
            cur = conn.execute(
                """
                UPDATE sessions SET
                    end_time = ?,
                    ended_cleanly = ?,
                    operations_count = COALESCE(?, operations_count),
                    handoff_path = COALESCE(?, handoff_path)
                WHERE id = ?
                """,
                (end_time, 1 if ended_cleanly else 0, operations_count, handoff_path, session_id),
            )
            return cur.rowcount == 1

    def close_open_session(self, session_id: str, end_time: str) -> bool:
        """Transition OPEN -> CLOSED without a clean end.

        Only applies to a session that is still open, so concurrent callers
        cannot both consume the same record.

        Returns:
            True if this call performed the transition.
        """
        with self._transaction("close session") as conn:
            cur = conn.execute(
                """
                UPDATE sessions SET end_time = ?, ended_cleanly = 0
                WHERE id = ? AND end_time IS NULL AND ended_cleanly = 0
                """,
                (end_time, session_id),
            )
            return cur.rowcount == 1

    def increment_operations(self, session_id: str) -> None:
        with self._transaction("increment session operations") as conn:
            conn.execute(
                "UPDATE sessions SET operations_count = operations_count + 1 WHERE id = ?",
                (session_id,),
            )

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        with self._transaction("read session") as conn:
            row = conn.execute("SELECT * FROM sessions WHERE id = ?", (session_id,)).fetchone()
        return self._row_to_session(row) if row else None

    def get_latest_session(self, workspace: str) -> Optional[SessionRecord]:
        with self._transaction("read sessions") as conn:
            row = conn.execute(
                """
                SELECT * FROM sessions WHERE workspace = ?
                ORDER BY start_time DESC, rowid DESC LIMIT 1
                """,
                (workspace,),
            ).fetchone()
        return self._row_to_session(row) if row else None

    def get_unclean_sessions(self, workspace: Optional[str] = None) -> List[SessionRecord]:
        """Open sessions (no end time, not ended cleanly), most recent first."""
        query = "SELECT * FROM sessions WHERE ended_cleanly = 0 AND end_time IS NULL"
        params: List[Any] = []
        if workspace:
            query += " AND workspace = ?"
            params.append(workspace)
        query += " ORDER BY start_time DESC, rowid DESC"

        with self._transaction("read sessions") as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_session(r) for r in rows]

    def _row_to_session(self, row: sqlite3.Row) -> SessionRecord:
        return SessionRecord(
            id=row["id"],
            workspace=row["workspace"],
            start_time=row["start_time"],
            end_time=row["end_time"],
            operations_count=row["operations_count"],
            ended_cleanly=row["ended_cleanly"] == 1,
            handoff_path=row["handoff_path"],
        )

    # === Snapshot index ===

    def save_snapshot_ref(self, ref: SnapshotRef) -> None:
        with self._transaction("index snapshot") as conn:
            conn.execute(
                """
                INSERT INTO snapshots
                (id, session_id, workspace, timestamp, json_path, markdown_path, auto_escalated)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    ref.id,
                    ref.session_id,
                    ref.workspace,
                    ref.timestamp,
                    ref.json_path,
                    ref.markdown_path,
                    1 if ref.auto_escalated else 0,
                ),
            )

    def find_snapshot_refs(
        self,
        workspace: Optional[str] = None,
        session_id: Optional[str] = None,
        limit: int = 20,
    ) -> List[SnapshotRef]:
        """Snapshot index entries, newest first, optionally filtered."""
        query = "SELECT * FROM snapshots WHERE 1=1"
        params: List[Any] = []
        if session_id:
            query += " AND session_id = ?"
            params.append(session_id)
        if workspace:
            query += " AND workspace = ?"
            params.append(workspace)
        query += " ORDER BY timestamp DESC, rowid DESC LIMIT ?"
        params.append(limit)

        with self._transaction("read snapshot index") as conn:
            rows = conn.execute(query, params).fetchall()
        return [
            SnapshotRef(
                id=r["id"],
                session_id=r["session_id"],
                workspace=r["workspace"],
                timestamp=r["timestamp"],
                json_path=r["json_path"],
                markdown_path=r["markdown_path"],
                auto_escalated=r["auto_escalated"] == 1,
            )
            for r in rows
        ]
