"""Handlers for session tools: save_session, load_session, checkpoint, recover_crash."""

import json
from typing import Any, Dict

from continuity.core import Continuity
from continuity.core.validation import sanitize_list, sanitize_string, validate_enum
from continuity.types import CHECKPOINT_TRIGGERS, OPERATION_RESULTS
from continuity.utils import validate_workspace

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def _optional_workspace(arguments: Dict[str, Any]) -> Any:
    workspace = arguments.get("workspace")
    return validate_workspace(workspace) if workspace is not None else None


def validate_continuity_save_session(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["workspace"] = validate_workspace(arguments.get("workspace"))
    sanitized["phase"] = sanitize_string(arguments.get("phase"), "phase", 200)
    next_steps = sanitize_list(arguments.get("next_steps"), "next_steps", 500, 50)
    if next_steps is None:
        raise ValueError("next_steps is required")
    sanitized["next_steps"] = next_steps

    operations = arguments.get("completed_operations")
    if operations is not None and not isinstance(operations, list):
        raise ValueError(
            f"completed_operations must be an array, got {type(operations).__name__}"
        )
    sanitized["completed_operations"] = operations
    sanitized["active_files"] = sanitize_list(
        arguments.get("active_files"), "active_files", 500, 200
    )
    sanitized["decisions_made"] = sanitize_list(
        arguments.get("decisions_made"), "decisions_made", 1000, 50
    )
    sanitized["warnings"] = sanitize_list(arguments.get("warnings"), "warnings", 1000, 50)
    sanitized["git_branch"] = (
        sanitize_string(arguments.get("git_branch"), "git_branch", 200, required=False) or None
    )
    return sanitized


def validate_continuity_load_session(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["workspace"] = _optional_workspace(arguments)
    sanitized["session_id"] = (
        sanitize_string(arguments.get("session_id"), "session_id", 100, required=False) or None
    )
    return sanitized


def validate_continuity_checkpoint(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["workspace"] = validate_workspace(arguments.get("workspace"))
    sanitized["operation"] = sanitize_string(arguments.get("operation"), "operation", 500)
    sanitized["phase"] = (
        sanitize_string(arguments.get("phase"), "phase", 200, required=False) or None
    )
    sanitized["active_files"] = sanitize_list(
        arguments.get("active_files"), "active_files", 500, 200
    )
    sanitized["next_steps"] = sanitize_list(arguments.get("next_steps"), "next_steps", 500, 50)
    sanitized["decisions"] = sanitize_list(arguments.get("decisions"), "decisions", 1000, 50)
    sanitized["warnings"] = sanitize_list(arguments.get("warnings"), "warnings", 1000, 50)
    sanitized["trigger"] = validate_enum(
        arguments.get("trigger"), "trigger", CHECKPOINT_TRIGGERS, "manual"
    )
    sanitized["result"] = validate_enum(
        arguments.get("result"), "result", OPERATION_RESULTS, "success"
    )
    sanitized["git_hash"] = (
        sanitize_string(arguments.get("git_hash"), "git_hash", 100, required=False) or None
    )
    sanitized["git_branch"] = (
        sanitize_string(arguments.get("git_branch"), "git_branch", 200, required=False) or None
    )
    return sanitized


def validate_continuity_recover_crash(arguments: Dict[str, Any]) -> Dict[str, Any]:
    return {"workspace": _optional_workspace(arguments)}


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_continuity_save_session(args: Dict[str, Any], c: Continuity) -> str:
    result = c.save_session(**args)
    return json.dumps(result, indent=2, default=str)


def handle_continuity_load_session(args: Dict[str, Any], c: Continuity) -> str:
    result = c.load_session(workspace=args.get("workspace"), session_id=args.get("session_id"))
    return json.dumps(result, indent=2, default=str)


def handle_continuity_checkpoint(args: Dict[str, Any], c: Continuity) -> str:
    result = c.checkpoint(**args)
    return json.dumps(result, indent=2, default=str)


def handle_continuity_recover_crash(args: Dict[str, Any], c: Continuity) -> str:
    result = c.recover_crash(args.get("workspace"))
    return json.dumps(result, indent=2, default=str)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

HANDLERS = {
    "continuity_save_session": handle_continuity_save_session,
    "continuity_load_session": handle_continuity_load_session,
    "continuity_checkpoint": handle_continuity_checkpoint,
    "continuity_recover_crash": handle_continuity_recover_crash,
}

VALIDATORS = {
    "continuity_save_session": validate_continuity_save_session,
    "continuity_load_session": validate_continuity_load_session,
    "continuity_checkpoint": validate_continuity_checkpoint,
    "continuity_recover_crash": validate_continuity_recover_crash,
}
