"""Session snapshot artifacts.

Every full save or escalation writes two files into the sessions directory:

    {date}_{workspace}_{HHMMSS}[_auto].json   structured SessionState
    {date}_{workspace}_{HHMMSS}[_auto].md     rendered handoff

and records them in the store's ``snapshots`` index. Lookups go through the
index (ordered by the snapshot timestamp); the filename scan is only a
fallback for artifacts the index does not know about.
"""

import json
import logging
import os
import uuid
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

from continuity.errors import MalformedRecordError, NotFoundError, StorageError
from continuity.types import SessionState, SnapshotRef, parse_datetime

from .flat_files import render_handoff_markdown
from .sqlite import SQLiteStore

logger = logging.getLogger(__name__)


def _atomic_write(path: Path, content: str) -> None:
    """Write via a temp file + rename so readers never see half a record."""
    tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


class SnapshotArchive:
    """Writes, indexes and finds session snapshot artifacts."""

    def __init__(self, sessions_dir: Path, store: SQLiteStore):
        self.sessions_dir = Path(sessions_dir)
        self.store = store

    def _stem(self, state: SessionState, auto: bool) -> str:
        dt = parse_datetime(state.timestamp)
        if dt is None:
            raise ValueError(f"snapshot timestamp is not ISO-8601: {state.timestamp!r}")
        stem = f"{dt.strftime('%Y-%m-%d')}_{state.workspace}_{dt.strftime('%H%M%S')}"
        if auto:
            stem += "_auto"

        # Never overwrite an earlier artifact written in the same second
        candidate, n = stem, 2
        while (self.sessions_dir / f"{candidate}.json").exists():
            candidate = f"{stem}-{n}"
            n += 1
        return candidate

    def write(self, state: SessionState, auto: bool = False) -> SnapshotRef:
        """Persist structured + rendered artifacts and index them.

        Raises:
            StorageError: If either artifact or the index row cannot be written.
        """
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
            stem = self._stem(state, auto)
            json_path = self.sessions_dir / f"{stem}.json"
            md_path = self.sessions_dir / f"{stem}.md"
            _atomic_write(json_path, json.dumps(state.to_dict(), indent=2, default=str))
            _atomic_write(md_path, render_handoff_markdown(state))
        except OSError as e:
            logger.error(f"Cannot write session snapshot: {e}")
            raise StorageError(f"Cannot write session snapshot: {e}") from e

        ref = SnapshotRef(
            id=str(uuid.uuid4()),
            session_id=state.id,
            workspace=state.workspace,
            timestamp=state.timestamp,
            json_path=str(json_path),
            markdown_path=str(md_path),
            auto_escalated=auto,
        )
        self.store.save_snapshot_ref(ref)
        return ref

    def read(self, json_path: Path) -> SessionState:
        """Load one structured snapshot.

        Raises:
            NotFoundError: If the file does not exist.
            MalformedRecordError: If it is not a valid snapshot.
        """
        path = Path(json_path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError as e:
            raise NotFoundError(f"Snapshot not found: {path.name}") from e
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedRecordError(path.name, e) from e

        try:
            return SessionState.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedRecordError(path.name, e) from e

    def read_markdown(self, json_path: Path, state: SessionState) -> str:
        """The rendered sibling of a snapshot, re-rendered if it is missing."""
        md_path = Path(json_path).with_suffix(".md")
        try:
            return md_path.read_text(encoding="utf-8")
        except OSError:
            return render_handoff_markdown(state)

    def _scan(self) -> List[Path]:
        """All snapshot JSON files, newest first by filename."""
        if not self.sessions_dir.exists():
            return []
        return sorted(self.sessions_dir.glob("*.json"), key=lambda p: p.name, reverse=True)

    def _candidates(
        self, workspace: Optional[str], session_id: Optional[str]
    ) -> Iterator[Tuple[Path, bool]]:
        """Yield (path, needs_filter) pairs, index hits first."""
        seen = set()
        for ref in self.store.find_snapshot_refs(workspace=workspace, session_id=session_id):
            seen.add(ref.json_path)
            yield Path(ref.json_path), False
        for path in self._scan():
            if str(path) not in seen:
                yield path, True

    def find(
        self, workspace: Optional[str] = None, session_id: Optional[str] = None
    ) -> Tuple[SessionState, Path]:
        """Select a snapshot to resume from.

        session_id given  -> the newest snapshot of that session
        workspace given   -> the newest snapshot for that workspace
        neither           -> the newest snapshot overall

        Malformed artifacts are skipped.

        Raises:
            NotFoundError: If nothing matches.
        """
        for path, needs_filter in self._candidates(workspace, session_id):
            if needs_filter:
                if session_id and session_id not in path.name and not self._has_id(path, session_id):
                    continue
                if workspace and f"_{workspace}_" not in path.name:
                    continue
            try:
                state = self.read(path)
            except NotFoundError:
                logger.warning(f"Indexed snapshot missing on disk: {path}")
                continue
            except MalformedRecordError as e:
                logger.warning(
                    f"Skipping unreadable snapshot: {e}",
                    extra={"operation": "snapshot_find", "error_type": type(e.cause).__name__},
                )
                continue
            if workspace and state.workspace != workspace:
                continue
            return state, path

        scope = f' for workspace "{workspace}"' if workspace else ""
        if session_id:
            scope = f' for session "{session_id}"'
        raise NotFoundError(f"No session found{scope}. Starting fresh.")

    def _has_id(self, path: Path, session_id: str) -> bool:
        try:
            return self.read(path).id == session_id
        except (NotFoundError, MalformedRecordError):
            return False
