"""Handlers for utility tools: compress_context, handoff_quality."""

import json
from typing import Any, Dict

from continuity.core import Continuity
from continuity.core.continuity_class import MAX_CONTEXT_CHARS
from continuity.core.validation import sanitize_list, sanitize_number, sanitize_string

_HANDOFF_LIST_FIELDS = ("active_files", "next_steps", "warnings", "decisions_made")

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_continuity_compress_context(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["full_context"] = sanitize_string(
        arguments.get("full_context"), "full_context", MAX_CONTEXT_CHARS
    )
    target = arguments.get("target_tokens")
    sanitized["target_tokens"] = (
        int(sanitize_number(target, "target_tokens", min_val=1)) if target is not None else None
    )
    sanitized["preserve"] = sanitize_list(arguments.get("preserve"), "preserve", 1000, 200)
    return sanitized


def validate_continuity_handoff_quality(arguments: Dict[str, Any]) -> Dict[str, Any]:
    # Scoring reports gaps rather than rejecting them, so only shapes are checked
    sanitized: Dict[str, Any] = {}
    sanitized["workspace"] = sanitize_string(arguments.get("workspace"), "workspace", 100)
    for key in ("phase", "git_branch"):
        sanitized[key] = sanitize_string(arguments.get(key), key, 500, required=False)
    for key in _HANDOFF_LIST_FIELDS:
        sanitized[key] = sanitize_list(arguments.get(key), key, 1000, 200) or []
    operations = arguments.get("completed_operations") or []
    if not isinstance(operations, list):
        raise ValueError(
            f"completed_operations must be an array, got {type(operations).__name__}"
        )
    sanitized["completed_operations"] = operations
    return sanitized


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_continuity_compress_context(args: Dict[str, Any], c: Continuity) -> str:
    result = c.compress_context(
        args["full_context"],
        target_tokens=args.get("target_tokens"),
        preserve=args.get("preserve"),
    )
    return json.dumps(result, indent=2)


def handle_continuity_handoff_quality(args: Dict[str, Any], c: Continuity) -> str:
    result = c.score_handoff(**args)
    return json.dumps(result, indent=2)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

HANDLERS = {
    "continuity_compress_context": handle_continuity_compress_context,
    "continuity_handoff_quality": handle_continuity_handoff_quality,
}

VALIDATORS = {
    "continuity_compress_context": validate_continuity_compress_context,
    "continuity_handoff_quality": validate_continuity_handoff_quality,
}
