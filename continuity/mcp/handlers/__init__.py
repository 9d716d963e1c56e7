"""Handler registry for MCP tools.

Merges HANDLERS and VALIDATORS from all sub-modules into unified dicts.
"""

from typing import Callable, Dict

from continuity.mcp.handlers.decisions import HANDLERS as _DECISIONS_H
from continuity.mcp.handlers.decisions import VALIDATORS as _DECISIONS_V
from continuity.mcp.handlers.session import HANDLERS as _SESSION_H
from continuity.mcp.handlers.session import VALIDATORS as _SESSION_V
from continuity.mcp.handlers.utility import HANDLERS as _UTILITY_H
from continuity.mcp.handlers.utility import VALIDATORS as _UTILITY_V

HANDLERS: Dict[str, Callable] = {
    **_SESSION_H,
    **_DECISIONS_H,
    **_UTILITY_H,
}

VALIDATORS: Dict[str, Callable] = {
    **_SESSION_V,
    **_DECISIONS_V,
    **_UTILITY_V,
}
