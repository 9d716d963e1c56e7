"""Human-readable renderings of continuity records.

Pure formatting functions: the markdown handoff written next to every
session snapshot, and the recovery prompt surfaced after a crash. Status
and warning markers match what the context compressor recognizes.
"""

from typing import Optional

from continuity.types import Checkpoint, SessionRecord, SessionState

STATUS_MARKERS = {
    "success": "[OK]",
    "failure": "[FAIL]",
    "partial": "[PARTIAL]",
}


def render_handoff_markdown(state: SessionState) -> str:
    """Render a session snapshot as a markdown handoff."""
    lines = [
        f"# Session Handoff: {state.workspace}",
        f"**Saved:** {state.timestamp}",
        f"**Phase:** {state.phase}",
        "",
    ]

    if state.completed_operations:
        lines.append("## Completed")
        for op in state.completed_operations:
            marker = STATUS_MARKERS.get(op.result, "[PARTIAL]")
            lines.append(f"{marker} {op.description}")
        lines.append("")

    if state.active_files:
        lines.append("## Active Files")
        lines.extend(f"- {f}" for f in state.active_files)
        lines.append("")

    if state.next_steps:
        lines.append("## Next Steps")
        for i, step in enumerate(state.next_steps, 1):
            lines.append(f"{i}. {step}")
        lines.append("")

    if state.decisions_made:
        lines.append("## Decisions")
        lines.extend(f"- {d}" for d in state.decisions_made)
        lines.append("")

    if state.git_state.branch != "unknown":
        suffix = " (uncommitted changes)" if state.git_state.uncommitted else ""
        lines.append(f"## Git: {state.git_state.branch}{suffix}")
        lines.append("")

    if state.warnings:
        lines.append("## Warnings")
        lines.extend(f"[WARN] {w}" for w in state.warnings)
        lines.append("")

    return "\n".join(lines)


def render_recovery_prompt(session: SessionRecord, checkpoint: Optional[Checkpoint]) -> str:
    """Render the prompt that briefs a new run after an unclean session."""
    lines = [
        f'[CRASH DETECTED] Session "{session.id}" in workspace "{session.workspace}" '
        "did not end cleanly.",
        f"Started: {session.start_time}",
        f"Operations completed: {session.operations_count}",
    ]

    if checkpoint is None:
        lines.append("No checkpoint found - context may be partially lost.")
        return "\n".join(lines)

    lines.append(f'Last checkpoint: "{checkpoint.operation}" at {checkpoint.timestamp}')
    next_steps = checkpoint.state.get("next_steps") or []
    if next_steps:
        lines.append(f"Resume from: {next_steps[0]}")
    active_files = checkpoint.state.get("active_files") or []
    if active_files:
        lines.append(f"Active files: {', '.join(active_files)}")

    return "\n".join(lines)
