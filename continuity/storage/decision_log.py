"""Append-only JSONL decision log.

One decision per line. An empty file is a valid, empty log. A corrupt line
is skipped on read so the rest of the log stays queryable.
"""

import json
import logging
import threading
from pathlib import Path
from typing import List, Optional

from continuity.errors import StorageError
from continuity.types import Decision, DecisionQuery

logger = logging.getLogger(__name__)

LOG_FILENAME = "decisions.jsonl"


class DecisionLog:
    """Durable owner of Decision records. Records are never mutated or deleted."""

    def __init__(self, decisions_dir: Path):
        self.log_path = Path(decisions_dir) / LOG_FILENAME
        self._lock = threading.Lock()
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self.log_path.touch(exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot initialize decision log: {e}")
            raise StorageError(f"Cannot initialize decision log: {e}") from e

    def append(self, decision: Decision) -> None:
        line = json.dumps(decision.to_dict(), ensure_ascii=False) + "\n"
        with self._lock:
            try:
                with open(self.log_path, "a", encoding="utf-8") as f:
                    f.write(line)
            except OSError as e:
                logger.error(f"Cannot append decision: {e}")
                raise StorageError(f"Cannot append decision: {e}") from e

    def query(self, q: DecisionQuery) -> List[Decision]:
        """Filter decisions in append order.

        Filters apply in order: workspace, category, ``since`` (lexicographic
        lower bound on timestamp), then a case-insensitive keyword match over
        decision text, rationale and alternatives.
        """
        keyword = q.keyword.lower() if q.keyword else None
        results = []
        for d in self.read_all():
            if q.workspace and d.workspace != q.workspace:
                continue
            if q.category and d.category != q.category:
                continue
            if q.since and d.timestamp < q.since:
                continue
            if keyword:
                searchable = f"{d.decision} {d.rationale} {' '.join(d.alternatives)}".lower()
                if keyword not in searchable:
                    continue
            results.append(d)
        return results

    def get_all(self, workspace: Optional[str] = None) -> List[Decision]:
        return self.query(DecisionQuery(workspace=workspace))

    def get_by_id(self, decision_id: str) -> Optional[Decision]:
        for d in self.read_all():
            if d.id == decision_id:
                return d
        return None

    def count(self) -> int:
        return len(self.read_all())

    def read_all(self) -> List[Decision]:
        """Every parseable decision, in append order."""
        try:
            with open(self.log_path, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Cannot read decision log: {e}")
            raise StorageError(f"Cannot read decision log: {e}") from e

        decisions = []
        for lineno, line in enumerate(lines, 1):
            if not line.strip():
                continue
            try:
                decisions.append(Decision.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                logger.warning(
                    f"Skipping malformed decision at line {lineno}: {e}",
                    extra={"operation": "decision_read", "error_type": type(e).__name__},
                )
        return decisions
