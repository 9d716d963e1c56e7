"""Database schema for the continuity SQLite store.

Contains:
- Schema DDL (SCHEMA)
- Schema version tracking (SCHEMA_VERSION)
- Database initialization (init_db)
"""

import logging
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 2  # v2: snapshot index table

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

-- Checkpoints: frequent, self-contained partial snapshots
CREATE TABLE IF NOT EXISTS checkpoints (
    id TEXT PRIMARY KEY,
    workspace TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    operation TEXT NOT NULL,
    state_json TEXT NOT NULL,
    git_hash TEXT,
    trigger_source TEXT NOT NULL DEFAULT 'manual',
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_checkpoints_workspace_ts
    ON checkpoints(workspace, timestamp DESC);

-- Session lifecycle bookkeeping
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    workspace TEXT NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT,
    operations_count INTEGER NOT NULL DEFAULT 0,
    ended_cleanly INTEGER NOT NULL DEFAULT 0,
    handoff_path TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_sessions_workspace_start
    ON sessions(workspace, start_time DESC);
CREATE INDEX IF NOT EXISTS idx_sessions_unclean
    ON sessions(ended_cleanly, end_time, start_time DESC);

-- Index over session snapshot artifacts written to the sessions directory
CREATE TABLE IF NOT EXISTS snapshots (
    id TEXT PRIMARY KEY,
    session_id TEXT NOT NULL,
    workspace TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    json_path TEXT NOT NULL,
    markdown_path TEXT NOT NULL,
    auto_escalated INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_snapshots_workspace_ts
    ON snapshots(workspace, timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_snapshots_ts
    ON snapshots(timestamp DESC);
CREATE INDEX IF NOT EXISTS idx_snapshots_session
    ON snapshots(session_id);
"""


def init_db(conn: sqlite3.Connection) -> None:
    """Initialize the database schema.

    CREATE ... IF NOT EXISTS makes this safe to run on every open.
    """
    conn.executescript(SCHEMA)

    row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
    if row is None:
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
    elif row[0] != SCHEMA_VERSION:
        logger.info(f"Updating schema version {row[0]} -> {SCHEMA_VERSION}")
        conn.execute("UPDATE schema_version SET version = ?", (SCHEMA_VERSION,))
