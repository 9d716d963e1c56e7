"""
Shared record types for continuity.

All session-continuity dataclasses live here. They are the vocabulary shared
between the storage layer, the accumulator, the MCP adapter and the CLI.
Cross-component traffic is always by value: storage returns fresh instances,
and the accumulator hands out copies of its running state.
"""

import copy
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# === Shared Utility Functions ===


def utc_now() -> str:
    """Get current timestamp as ISO string in UTC."""
    return datetime.now(timezone.utc).isoformat()


def parse_datetime(s: Optional[str]) -> Optional[datetime]:
    """Parse ISO datetime string, returning None for empty or invalid input.

    Naive values are assumed to be UTC.
    """
    if not s:
        return None
    try:
        dt = datetime.fromisoformat(s.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


# === Enums ===


class CheckpointTrigger(str, Enum):
    """What caused a checkpoint to be recorded."""

    MANUAL = "manual"
    SHIM = "shim"
    KERNL = "kernl"
    GITFLOW = "gitflow"
    AUTO = "auto"


class DecisionCategory(str, Enum):
    ARCHITECTURAL = "architectural"
    TECHNICAL = "technical"
    PROCESS = "process"
    TOOLING = "tooling"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class OperationResult(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    PARTIAL = "partial"


class SessionStatus(str, Enum):
    """Lifecycle of a session record.

    OPEN      -> no end time, not ended cleanly (running, or crashed)
    CLOSED    -> end time stamped without a clean end (rolled over or
                 consumed by crash recovery)
    ENDED     -> ended cleanly by a full session save
    """

    OPEN = "open"
    CLOSED = "closed"
    ENDED = "ended"


CHECKPOINT_TRIGGERS = [t.value for t in CheckpointTrigger]
DECISION_CATEGORIES = [c.value for c in DecisionCategory]
IMPACT_LEVELS = [i.value for i in Impact]
OPERATION_RESULTS = [r.value for r in OperationResult]


# === Session state ===


@dataclass
class Operation:
    """One completed unit of work inside a session."""

    timestamp: str
    description: str
    result: str = OperationResult.SUCCESS.value

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "description": self.description, "result": self.result}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_timestamp: str = "") -> "Operation":
        return cls(
            timestamp=data.get("timestamp") or default_timestamp,
            description=data.get("description", ""),
            result=data.get("result") or OperationResult.SUCCESS.value,
        )


@dataclass
class GitState:
    branch: str = "unknown"
    uncommitted: bool = False


@dataclass
class SessionState:
    """A complete, self-sufficient handoff snapshot.

    A reader needs no other record to resume work from one of these.
    """

    id: str
    workspace: str
    timestamp: str
    phase: str
    completed_operations: List[Operation] = field(default_factory=list)
    active_files: List[str] = field(default_factory=list)
    decisions_made: List[str] = field(default_factory=list)
    next_steps: List[str] = field(default_factory=list)
    git_state: GitState = field(default_factory=GitState)
    warnings: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["completed_operations"] = [op.to_dict() for op in self.completed_operations]
        return d

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionState":
        """Build a SessionState from its JSON form.

        Raises:
            KeyError, TypeError, ValueError: if the payload is not a snapshot.
        """
        if not isinstance(data, dict):
            raise TypeError(f"snapshot must be an object, got {type(data).__name__}")
        timestamp = data["timestamp"]
        git = data.get("git_state") or {}
        return cls(
            id=data["id"],
            workspace=data["workspace"],
            timestamp=timestamp,
            phase=data.get("phase", "unknown"),
            completed_operations=[
                Operation.from_dict(op, timestamp) for op in data.get("completed_operations") or []
            ],
            active_files=list(data.get("active_files") or []),
            decisions_made=list(data.get("decisions_made") or []),
            next_steps=list(data.get("next_steps") or []),
            git_state=GitState(
                branch=git.get("branch", "unknown"),
                uncommitted=bool(git.get("uncommitted", False)),
            ),
            warnings=list(data.get("warnings") or []),
            metadata=dict(data.get("metadata") or {}),
        )


# === Checkpoints and session records ===


@dataclass
class Checkpoint:
    """Durable partial snapshot carrying the full running state.

    ``state`` holds a subset of SessionState fields in JSON form. Each
    checkpoint is self-contained: a reader only ever needs the latest one.
    """

    id: str
    workspace: str
    timestamp: str
    operation: str
    state: Dict[str, Any] = field(default_factory=dict)
    git_hash: Optional[str] = None
    trigger: str = CheckpointTrigger.MANUAL.value

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["state"] = copy.deepcopy(self.state)
        return d


@dataclass
class SessionRecord:
    """Session lifecycle bookkeeping row."""

    id: str
    workspace: str
    start_time: str
    end_time: Optional[str] = None
    operations_count: int = 0
    ended_cleanly: bool = False
    handoff_path: Optional[str] = None

    @property
    def status(self) -> SessionStatus:
        if self.ended_cleanly:
            return SessionStatus.ENDED
        if self.end_time is None:
            return SessionStatus.OPEN
        return SessionStatus.CLOSED

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        return d


@dataclass
class SnapshotRef:
    """Index entry pointing at a persisted session snapshot."""

    id: str
    session_id: str
    workspace: str
    timestamp: str
    json_path: str
    markdown_path: str
    auto_escalated: bool = False


# === Decisions ===


@dataclass
class Decision:
    """Immutable record of a durable decision."""

    id: str
    timestamp: str
    workspace: str
    category: str
    decision: str
    rationale: str
    alternatives: List[str] = field(default_factory=list)
    impact: str = Impact.MEDIUM.value
    revisit_trigger: Optional[str] = None
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Decision":
        if not isinstance(data, dict):
            raise TypeError(f"decision must be an object, got {type(data).__name__}")
        alternatives = data.get("alternatives") or []
        if not isinstance(alternatives, list):
            raise TypeError("alternatives must be a list")
        return cls(
            id=data["id"],
            timestamp=data["timestamp"],
            workspace=data["workspace"],
            category=data["category"],
            decision=data["decision"],
            rationale=data.get("rationale", ""),
            alternatives=[str(a) for a in alternatives],
            impact=data.get("impact") or Impact.MEDIUM.value,
            revisit_trigger=data.get("revisit_trigger"),
            session_id=data.get("session_id"),
        )


@dataclass
class DecisionQuery:
    """Decision log filter. Absent fields match everything; present ones are ANDed."""

    workspace: Optional[str] = None
    category: Optional[str] = None
    keyword: Optional[str] = None
    since: Optional[str] = None


# === Results ===


@dataclass
class CrashRecovery:
    detected: bool
    operations_lost: int
    recovery_prompt: str
    last_checkpoint: Optional[Checkpoint] = None
    last_session: Optional[SessionRecord] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "detected": self.detected,
            "operations_lost": self.operations_lost,
            "recovery_prompt": self.recovery_prompt,
        }
        if self.last_checkpoint is not None:
            d["last_checkpoint"] = self.last_checkpoint.to_dict()
        if self.last_session is not None:
            d["last_session"] = self.last_session.to_dict()
        return d


@dataclass
class HandoffQuality:
    completeness_score: int
    missing_elements: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CompressionResult:
    compressed: str
    original_tokens: int
    compressed_tokens: int
    compression_ratio: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
