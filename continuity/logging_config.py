"""Logging setup for continuity.

Two sinks, both under ``{data_dir}/logs``:

- ``local-{date}.log``: the ``continuity`` logger hierarchy, installed by
  :func:`setup_continuity_logging`.
- ``session-events-{date}.log``: one line per lifecycle event (checkpoint,
  escalation, save, load, crash, decision), greppable by workspace.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from continuity.utils import get_continuity_home

LOGGER_NAME = "continuity"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

_internal = logging.getLogger(__name__)


def _log_dir(base: Optional[Path] = None) -> Path:
    log_dir = (base or get_continuity_home()) / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def setup_continuity_logging(
    level: str = "INFO", data_dir: Optional[Path] = None
) -> logging.Logger:
    """Configure the ``continuity`` logger with a daily file handler.

    Args:
        level: Level name (case-insensitive). Unknown names fall back to INFO.
            DEBUG also mirrors output to stderr.
        data_dir: Root for the logs directory (default: the continuity home).

    Returns:
        The configured ``continuity`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    numeric_level = getattr(logging, str(level).upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    logger.setLevel(numeric_level)

    formatter = logging.Formatter(LOG_FORMAT)

    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        log_file = _log_dir(data_dir) / f"local-{_today()}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    has_console = any(
        isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
        for h in logger.handlers
    )
    if numeric_level == logging.DEBUG and not has_console:
        # stderr only: stdout carries the MCP stdio transport
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        logger.addHandler(console)

    return logger


def log_session_event(
    event_type: str, details: str, workspace: str = "default", data_dir: Optional[Path] = None
) -> None:
    """Append one line to the session events log under ``data_dir``. Never raises."""
    try:
        event_file = _log_dir(data_dir) / f"session-events-{_today()}.log"
        timestamp = datetime.now(timezone.utc).isoformat()
        with open(event_file, "a", encoding="utf-8") as f:
            f.write(f"{timestamp} | {event_type} | workspace={workspace} | {details}\n")
    except OSError as e:
        _internal.debug(f"Could not write session event: {e}")


def log_checkpoint(
    workspace: str,
    operation: str,
    checkpoint_number: int,
    trigger: str,
    data_dir: Optional[Path] = None,
) -> None:
    log_session_event(
        "checkpoint",
        f"operation={operation[:80]}, number={checkpoint_number}, trigger={trigger}",
        workspace=workspace,
        data_dir=data_dir,
    )


def log_escalation(
    workspace: str,
    handoff_path: str,
    checkpoint_count: int,
    data_dir: Optional[Path] = None,
) -> None:
    log_session_event(
        "escalation",
        f"checkpoints={checkpoint_count}, handoff={handoff_path}",
        workspace=workspace,
        data_dir=data_dir,
    )


def log_save(
    workspace: str,
    session_id: str,
    operations: int,
    handoff_path: str,
    data_dir: Optional[Path] = None,
) -> None:
    log_session_event(
        "save",
        f"session={session_id[:8]}..., operations={operations}, handoff={handoff_path}",
        workspace=workspace,
        data_dir=data_dir,
    )


def log_load(
    workspace: str,
    session_id: str,
    age_hours: float,
    data_dir: Optional[Path] = None,
) -> None:
    log_session_event(
        "load",
        f"session={session_id[:8]}..., age_hours={age_hours}",
        workspace=workspace,
        data_dir=data_dir,
    )


def log_crash(
    workspace: str,
    session_id: str,
    operations_lost: int,
    data_dir: Optional[Path] = None,
) -> None:
    log_session_event(
        "crash",
        f"session={session_id[:8]}..., operations_lost={operations_lost}",
        workspace=workspace,
        data_dir=data_dir,
    )


def log_decision(
    workspace: str,
    decision_id: str,
    category: str,
    duplicate: bool = False,
    data_dir: Optional[Path] = None,
) -> None:
    log_session_event(
        "decision",
        f"id={decision_id[:8]}..., category={category}, similar_exists={duplicate}",
        workspace=workspace,
        data_dir=data_dir,
    )
