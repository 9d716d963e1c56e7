"""
Continuity MCP Server - session continuity for Claude Code and other MCP clients.

This exposes continuity's operations (checkpoints, handoffs, crash
recovery, the decision log, context compression and handoff scoring) as
MCP tools over the stdio transport.

Nothing here writes to stdout: the transport owns it.

Usage:
    continuity mcp  # Start MCP server (stdio transport)
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
)

from continuity.core import Continuity
from continuity.errors import StorageError
from continuity.logging_config import setup_continuity_logging
from continuity.mcp.handlers import HANDLERS, VALIDATORS
from continuity.mcp.tool_definitions import TOOLS

logger = logging.getLogger(__name__)

# Initialize MCP server
mcp = Server("continuity")

# Data directory for this MCP session (None: resolve from env/home)
_mcp_data_dir: Optional[Path] = None


def set_data_dir(data_dir: Optional[Union[str, Path]]) -> None:
    """Set the data directory for this MCP session."""
    global _mcp_data_dir
    _mcp_data_dir = Path(data_dir) if data_dir is not None else None
    # Clear cached instance so next get_continuity uses the new directory
    if hasattr(get_continuity, "_instance"):
        delattr(get_continuity, "_instance")


def get_continuity() -> Continuity:
    """Get or create the Continuity instance."""
    if not hasattr(get_continuity, "_instance"):
        get_continuity._instance = Continuity(_mcp_data_dir)  # type: ignore[attr-defined]
    return get_continuity._instance  # type: ignore[attr-defined]


# =============================================================================
# INPUT VALIDATION & ERROR HANDLING
# =============================================================================


def validate_tool_input(name: str, arguments: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and sanitize MCP tool inputs."""
    try:
        if not isinstance(name, str):
            raise ValueError(f"tool name must be a string, got {type(name).__name__}")
        if not name:
            raise ValueError("tool name must not be empty")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ValueError(f"arguments must be an object, got {type(arguments).__name__}")

        validator = VALIDATORS.get(name)
        if validator is None:
            raise ValueError(f"Unknown tool: {name}")
        return validator(arguments)

    except (ValueError, TypeError) as e:
        logger.warning(f"Input validation failed for tool {name}: {e}")
        raise ValueError(str(e)) from e


def handle_tool_error(e: Exception, tool_name: str, arguments: Dict[str, Any]) -> List[TextContent]:
    """Handle tool errors without leaking internals."""
    if isinstance(e, ValueError):
        # Input validation or business logic error
        logger.warning(f"Invalid input for tool {tool_name}: {e}")
        return [TextContent(type="text", text=f"Invalid input: {str(e)}")]

    elif isinstance(e, StorageError):
        logger.error(f"Storage failure in tool {tool_name}: {e}")
        return [TextContent(type="text", text=f"Storage failure: {str(e)}")]

    elif isinstance(e, PermissionError):
        logger.warning(f"Permission denied for tool {tool_name}")
        return [TextContent(type="text", text="Access denied")]

    else:
        # Unknown error - log full details but return generic message
        argument_keys = list(arguments.keys()) if isinstance(arguments, dict) else []
        logger.error(
            f"Internal error in tool {tool_name}",
            extra={
                "tool_name": tool_name,
                "arguments_keys": argument_keys,
                "error_type": type(e).__name__,
                "error_message": str(e),
            },
            exc_info=True,
        )
        return [TextContent(type="text", text="Internal server error")]


# =============================================================================
# MCP PROTOCOL HANDLERS
# =============================================================================


@mcp.list_tools()
async def list_tools() -> list[Tool]:
    """List available continuity tools."""
    return list(TOOLS)


@mcp.call_tool()
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Handle tool calls with validation and error handling."""
    try:
        sanitized_args = validate_tool_input(name, arguments)
        c = get_continuity()

        handler = HANDLERS.get(name)
        if handler is None:
            # Should not reach here due to validation, but handle gracefully
            logger.error(f"Unexpected tool name after validation: {name}")
            return [TextContent(type="text", text=f"Tool '{name}' is not available")]

        result = handler(sanitized_args, c)
        return [TextContent(type="text", text=result)]

    except Exception as e:
        return handle_tool_error(e, name, arguments)


async def run_server():
    """Run the MCP server."""
    async with stdio_server() as (read_stream, write_stream):
        await mcp.run(
            read_stream,
            write_stream,
            mcp.create_initialization_options(),
        )


def main(data_dir: Optional[Union[str, Path]] = None, log_level: str = "INFO"):
    """Entry point for MCP server."""
    set_data_dir(data_dir)
    setup_continuity_logging(log_level, _mcp_data_dir)
    logger.info(f"Starting continuity MCP server with {len(TOOLS)} tools")
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
