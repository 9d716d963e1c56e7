"""
Continuity CLI - command-line access to session continuity.

Usage:
    continuity mcp
    continuity checkpoint WORKSPACE OPERATION [--phase P] [--file F]... [--next N]...
    continuity save WORKSPACE --phase P [--next N]... [--operation O]... [--file F]...
    continuity load [--workspace W] [--session-id ID]
    continuity recover [--workspace W]
    continuity decision log WORKSPACE CATEGORY DECISION RATIONALE [--alternative A]...
    continuity decision query [--workspace W] [--category C] [--keyword K] [--since S]
    continuity compress [FILE] [--target-tokens N] [--preserve P]...
    continuity score WORKSPACE [--phase P] [--next N]... [--file F]...

Every command except ``mcp`` prints its result as JSON. Running state is
process-local, so each ``checkpoint`` invocation starts from an empty
running state; long-lived callers should use the MCP server. Session
records carry over: ``checkpoint``, ``save`` and ``load`` resume the
workspace's open session rather than opening a new one per run, and
``save`` ends it cleanly.
"""

import argparse
import json
import logging
import sys

from continuity import Continuity
from continuity.errors import StorageError
from continuity.types import (
    CHECKPOINT_TRIGGERS,
    DECISION_CATEGORIES,
    IMPACT_LEVELS,
    OPERATION_RESULTS,
)

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


def _print(result) -> None:
    print(json.dumps(result, indent=2, default=str))


def cmd_checkpoint(args, c: Continuity):
    """Record one checkpoint."""
    result = c.checkpoint(
        args.workspace,
        args.operation,
        phase=args.phase,
        active_files=args.file,
        next_steps=args.next,
        decisions=args.decision,
        warnings=args.warning,
        trigger=args.trigger,
        result=args.result,
        git_hash=args.git_hash,
        git_branch=args.git_branch,
    )
    _print(result)


def cmd_save(args, c: Continuity):
    """Write a full handoff and end the session cleanly."""
    result = c.save_session(
        args.workspace,
        phase=args.phase,
        next_steps=args.next or [],
        completed_operations=args.operation,
        active_files=args.file,
        decisions_made=args.decision,
        git_branch=args.git_branch,
        warnings=args.warning,
    )
    _print(result)


def cmd_load(args, c: Continuity):
    """Load the latest matching session."""
    result = c.load_session(workspace=args.workspace, session_id=args.session_id)
    if args.markdown and result.get("success"):
        print(result["handoff_markdown"])
    else:
        _print(result)


def cmd_recover(args, c: Continuity):
    """Check for (and consume) an unclean session."""
    result = c.recover_crash(args.workspace)
    if args.prompt:
        print(result["recovery_prompt"])
    else:
        _print(result)


def cmd_decision(args, c: Continuity):
    """Handle decision subcommands."""
    if args.decision_action == "log":
        result = c.log_decision(
            args.workspace,
            args.category,
            args.decision,
            args.rationale,
            alternatives=args.alternative,
            impact=args.impact,
            revisit_trigger=args.revisit_trigger,
        )
        _print(result)
        if result.get("warning"):
            logger.warning(result["warning"])

    elif args.decision_action == "query":
        result = c.query_decisions(
            workspace=args.workspace,
            category=args.category,
            keyword=args.keyword,
            since=args.since,
        )
        _print(result)


def cmd_compress(args, c: Continuity):
    """Compress context read from a file or stdin."""
    if args.file and args.file != "-":
        with open(args.file, "r", encoding="utf-8") as f:
            text = f.read()
    else:
        text = sys.stdin.read()

    result = c.compress_context(text, target_tokens=args.target_tokens, preserve=args.preserve)
    if args.text:
        print(result["compressed"])
    else:
        _print(result)


def cmd_score(args, c: Continuity):
    """Score a candidate handoff."""
    result = c.score_handoff(
        workspace=args.workspace,
        phase=args.phase,
        next_steps=args.next or [],
        active_files=args.file or [],
        completed_operations=args.operation or [],
        git_branch=args.git_branch,
        warnings=args.warning or [],
        decisions_made=args.decision or [],
    )
    _print(result)


def cmd_mcp(args):
    """Start MCP server."""
    from continuity.mcp.server import main as mcp_main

    mcp_main(data_dir=args.data_dir, log_level=args.log_level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="continuity",
        description="Session continuity for stateless agents",
    )
    parser.add_argument(
        "--data-dir", "-d", default=None, help="Data directory (default: $CONTINUITY_DATA_DIR or ~/.continuity)"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # mcp
    p_mcp = subparsers.add_parser("mcp", help="Start MCP server (stdio transport)")
    p_mcp.add_argument("--log-level", default="INFO", help="Log level for the server log file")

    # checkpoint
    p_checkpoint = subparsers.add_parser("checkpoint", help="Record a checkpoint")
    p_checkpoint.add_argument("workspace", help="Workspace key")
    p_checkpoint.add_argument("operation", help="What was just completed")
    p_checkpoint.add_argument("--phase", help="Current work phase")
    p_checkpoint.add_argument("--file", "-f", action="append", help="Active file (repeatable)")
    p_checkpoint.add_argument("--next", "-n", action="append", help="Next step (repeatable)")
    p_checkpoint.add_argument("--decision", action="append", help="Decision made (repeatable)")
    p_checkpoint.add_argument("--warning", "-w", action="append", help="Warning (repeatable)")
    p_checkpoint.add_argument("--trigger", choices=CHECKPOINT_TRIGGERS, default="manual")
    p_checkpoint.add_argument("--result", choices=OPERATION_RESULTS, default="success")
    p_checkpoint.add_argument("--git-hash", help="Current commit hash")
    p_checkpoint.add_argument("--git-branch", help="Current branch")

    # save
    p_save = subparsers.add_parser("save", help="Save a full session handoff")
    p_save.add_argument("workspace", help="Workspace key")
    p_save.add_argument("--phase", required=True, help="Current work phase")
    p_save.add_argument("--next", "-n", action="append", help="Next step (repeatable)")
    p_save.add_argument("--operation", "-o", action="append", help="Completed operation (repeatable)")
    p_save.add_argument("--file", "-f", action="append", help="Active file (repeatable)")
    p_save.add_argument("--decision", action="append", help="Decision made (repeatable)")
    p_save.add_argument("--git-branch", help="Current branch")
    p_save.add_argument("--warning", "-w", action="append", help="Warning (repeatable)")

    # load
    p_load = subparsers.add_parser("load", help="Load the latest session")
    p_load.add_argument("--workspace", "-w", help="Workspace to load")
    p_load.add_argument("--session-id", help="Specific session to load")
    p_load.add_argument("--markdown", "-m", action="store_true", help="Print only the handoff markdown")

    # recover
    p_recover = subparsers.add_parser("recover", help="Detect and report a crashed session")
    p_recover.add_argument("--workspace", "-w", help="Workspace to check")
    p_recover.add_argument("--prompt", action="store_true", help="Print only the recovery prompt")

    # decision
    p_decision = subparsers.add_parser("decision", help="Decision log operations")
    dec_sub = p_decision.add_subparsers(dest="decision_action", required=True)

    dec_log = dec_sub.add_parser("log", help="Record a decision")
    dec_log.add_argument("workspace", help="Workspace key")
    dec_log.add_argument("category", choices=DECISION_CATEGORIES)
    dec_log.add_argument("decision", help="What was decided")
    dec_log.add_argument("rationale", help="Why")
    dec_log.add_argument("--alternative", "-a", action="append", help="Alternative considered (repeatable)")
    dec_log.add_argument("--impact", choices=IMPACT_LEVELS, default="medium")
    dec_log.add_argument("--revisit-trigger", help="When to reconsider")

    dec_query = dec_sub.add_parser("query", help="Search decisions")
    dec_query.add_argument("--workspace", "-w")
    dec_query.add_argument("--category", choices=DECISION_CATEGORIES)
    dec_query.add_argument("--keyword", "-k")
    dec_query.add_argument("--since", help="ISO timestamp lower bound")

    # compress
    p_compress = subparsers.add_parser("compress", help="Compress context text")
    p_compress.add_argument("file", nargs="?", help="Input file (default: stdin)")
    p_compress.add_argument("--target-tokens", "-t", type=int, default=None)
    p_compress.add_argument("--preserve", "-p", action="append", help="String to keep verbatim (repeatable)")
    p_compress.add_argument("--text", action="store_true", help="Print only the compressed text")

    # score
    p_score = subparsers.add_parser("score", help="Score a candidate handoff")
    p_score.add_argument("workspace", help="Workspace key")
    p_score.add_argument("--phase")
    p_score.add_argument("--next", "-n", action="append")
    p_score.add_argument("--file", "-f", action="append")
    p_score.add_argument("--operation", "-o", action="append")
    p_score.add_argument("--git-branch")
    p_score.add_argument("--warning", "-w", action="append")
    p_score.add_argument("--decision", action="append")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "mcp":
        cmd_mcp(args)
        return

    # Initialize Continuity with error handling
    try:
        c = Continuity(args.data_dir)
    except (ValueError, StorageError) as e:
        logger.error(f"Failed to initialize continuity: {e}")
        sys.exit(1)

    # Dispatch with error handling
    try:
        # Pick up the session a previous invocation left open
        workspace = getattr(args, "workspace", None)
        if workspace and args.command in ("checkpoint", "save", "load"):
            c.resume_session(workspace)

        if args.command == "checkpoint":
            cmd_checkpoint(args, c)
        elif args.command == "save":
            cmd_save(args, c)
        elif args.command == "load":
            cmd_load(args, c)
        elif args.command == "recover":
            cmd_recover(args, c)
        elif args.command == "decision":
            cmd_decision(args, c)
        elif args.command == "compress":
            cmd_compress(args, c)
        elif args.command == "score":
            cmd_score(args, c)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)
    finally:
        c.close()


if __name__ == "__main__":
    main()
