"""Handlers for decision tools: log_decision, query_decisions."""

import json
from typing import Any, Dict

from continuity.core import Continuity
from continuity.core.validation import sanitize_list, sanitize_string, validate_enum
from continuity.types import DECISION_CATEGORIES, IMPACT_LEVELS
from continuity.utils import validate_workspace

# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------


def validate_continuity_log_decision(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    sanitized["workspace"] = validate_workspace(arguments.get("workspace"))
    sanitized["category"] = validate_enum(arguments.get("category"), "category", DECISION_CATEGORIES)
    sanitized["decision"] = sanitize_string(arguments.get("decision"), "decision", 2000)
    sanitized["rationale"] = sanitize_string(arguments.get("rationale"), "rationale", 5000)
    sanitized["alternatives"] = sanitize_list(
        arguments.get("alternatives"), "alternatives", 1000, 50
    )
    sanitized["impact"] = validate_enum(arguments.get("impact"), "impact", IMPACT_LEVELS, "medium")
    sanitized["revisit_trigger"] = (
        sanitize_string(arguments.get("revisit_trigger"), "revisit_trigger", 1000, required=False)
        or None
    )
    return sanitized


def validate_continuity_query_decisions(arguments: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    workspace = arguments.get("workspace")
    sanitized["workspace"] = validate_workspace(workspace) if workspace is not None else None
    category = arguments.get("category")
    sanitized["category"] = (
        validate_enum(category, "category", DECISION_CATEGORIES) if category is not None else None
    )
    sanitized["keyword"] = (
        sanitize_string(arguments.get("keyword"), "keyword", 500, required=False) or None
    )
    sanitized["since"] = (
        sanitize_string(arguments.get("since"), "since", 100, required=False) or None
    )
    return sanitized


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def handle_continuity_log_decision(args: Dict[str, Any], c: Continuity) -> str:
    result = c.log_decision(**args)
    return json.dumps(result, indent=2, default=str)


def handle_continuity_query_decisions(args: Dict[str, Any], c: Continuity) -> str:
    result = c.query_decisions(**args)
    return json.dumps(result, indent=2, default=str)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

HANDLERS = {
    "continuity_log_decision": handle_continuity_log_decision,
    "continuity_query_decisions": handle_continuity_query_decisions,
}

VALIDATORS = {
    "continuity_log_decision": validate_continuity_log_decision,
    "continuity_query_decisions": validate_continuity_query_decisions,
}
