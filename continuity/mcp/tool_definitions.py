"""MCP tool schema definitions for continuity operations.

Each Tool() defines the name, description, and JSON Schema for one MCP tool.
Validators and handlers live in continuity.mcp.handlers.
"""

from mcp.types import Tool

from continuity.types import (
    CHECKPOINT_TRIGGERS,
    DECISION_CATEGORIES,
    IMPACT_LEVELS,
    OPERATION_RESULTS,
)

_STRING_ARRAY = {"type": "array", "items": {"type": "string"}}

TOOLS = [
    Tool(
        name="continuity_save_session",
        description="Save session state and generate a structured handoff. Call at session end or before token exhaustion. Writes a JSON snapshot and a markdown handoff into the sessions directory.",
        inputSchema={
            "type": "object",
            "properties": {
                "workspace": {
                    "type": "string",
                    "description": 'Project workspace identifier (e.g., "fine-print")',
                },
                "phase": {
                    "type": "string",
                    "description": 'Current work phase (e.g., "implementation", "design", "testing")',
                },
                "completed_operations": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {
                            "description": {"type": "string"},
                            "result": {"type": "string", "enum": OPERATION_RESULTS},
                        },
                        "required": ["description"],
                    },
                    "description": "Operations completed this session",
                },
                "active_files": {**_STRING_ARRAY, "description": "Files currently being worked on"},
                "next_steps": {**_STRING_ARRAY, "description": "What the next session should do"},
                "decisions_made": {**_STRING_ARRAY, "description": "Decisions made this session"},
                "git_branch": {"type": "string", "description": "Current git branch"},
                "warnings": {
                    **_STRING_ARRAY,
                    "description": "Issues the next session should know about",
                },
            },
            "required": ["workspace", "phase", "next_steps"],
        },
    ),
    Tool(
        name="continuity_load_session",
        description="Load the most recent session state for a workspace. Call at session start to resume context. Returns the handoff markdown.",
        inputSchema={
            "type": "object",
            "properties": {
                "workspace": {
                    "type": "string",
                    "description": "Workspace to load. If omitted, loads the most recent across all workspaces.",
                },
                "session_id": {
                    "type": "string",
                    "description": "Specific session ID to load. If omitted, loads the latest.",
                },
            },
        },
    ),
    Tool(
        name="continuity_checkpoint",
        description="Save intermediate state during work. Call every 3-5 tool calls for crash protection. Each checkpoint carries the full running state, so it can serve as a handoff if the session ends unexpectedly. Auto-escalates to a full session save every 15 checkpoints (configurable).",
        inputSchema={
            "type": "object",
            "properties": {
                "workspace": {"type": "string", "description": "Project workspace identifier"},
                "operation": {"type": "string", "description": "What was just completed"},
                "phase": {
                    "type": "string",
                    "description": "Current work phase. Persists across checkpoints until changed.",
                },
                "active_files": {
                    **_STRING_ARRAY,
                    "description": "Files currently being worked on (replaces previous list)",
                },
                "next_steps": {
                    **_STRING_ARRAY,
                    "description": "Immediate next steps (replaces previous list)",
                },
                "decisions": {
                    **_STRING_ARRAY,
                    "description": "Key decisions made since last checkpoint (appended, deduplicated)",
                },
                "warnings": {
                    **_STRING_ARRAY,
                    "description": "Issues to flag (appended across checkpoints)",
                },
                "trigger": {
                    "type": "string",
                    "enum": CHECKPOINT_TRIGGERS,
                    "description": "What triggered this checkpoint (default: manual)",
                },
                "result": {
                    "type": "string",
                    "enum": OPERATION_RESULTS,
                    "description": "Outcome of the operation (default: success)",
                },
                "git_hash": {"type": "string", "description": "Current commit hash"},
                "git_branch": {
                    "type": "string",
                    "description": "Current git branch. Persists across checkpoints until changed.",
                },
            },
            "required": ["workspace", "operation"],
        },
    ),
    Tool(
        name="continuity_recover_crash",
        description="Detect whether the last session crashed and provide recovery context. Call at session start before continuity_load_session.",
        inputSchema={
            "type": "object",
            "properties": {
                "workspace": {
                    "type": "string",
                    "description": "Workspace to check for a crash. If omitted, checks all.",
                },
            },
        },
    ),
    Tool(
        name="continuity_log_decision",
        description="Record an architectural or technical decision with full rationale and alternatives considered. Prevents re-debating the same choices across sessions.",
        inputSchema={
            "type": "object",
            "properties": {
                "workspace": {
                    "type": "string",
                    "description": 'Project workspace (e.g., "fine-print", "all" for global decisions)',
                },
                "category": {
                    "type": "string",
                    "enum": DECISION_CATEGORIES,
                    "description": "Decision category",
                },
                "decision": {"type": "string", "description": "What was decided"},
                "rationale": {"type": "string", "description": "Why this choice was made"},
                "alternatives": {**_STRING_ARRAY, "description": "What else was considered"},
                "impact": {
                    "type": "string",
                    "enum": IMPACT_LEVELS,
                    "description": "Impact level (default: medium)",
                },
                "revisit_trigger": {
                    "type": "string",
                    "description": "Condition that would warrant reconsidering this decision",
                },
            },
            "required": ["workspace", "category", "decision", "rationale"],
        },
    ),
    Tool(
        name="continuity_query_decisions",
        description="Search the decision registry. Use to check whether a decision has already been made before debating alternatives. Supports keyword search plus workspace, category and date filtering.",
        inputSchema={
            "type": "object",
            "properties": {
                "workspace": {
                    "type": "string",
                    "description": "Filter by workspace. Omit to search all workspaces.",
                },
                "category": {
                    "type": "string",
                    "enum": DECISION_CATEGORIES,
                    "description": "Filter by category",
                },
                "keyword": {
                    "type": "string",
                    "description": "Search keyword (searches decision, rationale, and alternatives)",
                },
                "since": {
                    "type": "string",
                    "description": "Only decisions at or after this ISO date",
                },
            },
        },
    ),
    Tool(
        name="continuity_compress_context",
        description="Compress session context for efficient handoff. Produces a summary targeting ~1K tokens that keeps headings, decisions, next steps and warnings and aggressively compresses history.",
        inputSchema={
            "type": "object",
            "properties": {
                "full_context": {"type": "string", "description": "Full context text to compress"},
                "target_tokens": {
                    "type": "integer",
                    "description": "Target token count (default: 1000)",
                    "minimum": 1,
                },
                "preserve": {
                    **_STRING_ARRAY,
                    "description": "Strings that MUST appear in the compressed output",
                },
            },
            "required": ["full_context"],
        },
    ),
    Tool(
        name="continuity_handoff_quality",
        description="Check that a session handoff has all critical information. Returns a completeness score and suggestions. Call before continuity_save_session.",
        inputSchema={
            "type": "object",
            "properties": {
                "workspace": {"type": "string"},
                "phase": {"type": "string"},
                "completed_operations": {"type": "array", "items": {"type": "object"}},
                "active_files": _STRING_ARRAY,
                "next_steps": _STRING_ARRAY,
                "git_branch": {"type": "string"},
                "warnings": _STRING_ARRAY,
                "decisions_made": _STRING_ARRAY,
            },
            "required": ["workspace"],
        },
    ),
]
