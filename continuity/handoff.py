"""Handoff completeness scoring.

Point table (max 100):

    workspace            10   (missing otherwise)
    phase                10   (missing otherwise)
    next_steps           20   (missing otherwise)
    active_files         10   (missing otherwise)
    completed_operations 10   (missing otherwise)
    git_branch           10   (suggestion otherwise)
    warnings              5
    decisions_made       15   (suggestion otherwise)
    specific phase       10   (> 3 characters, suggestion otherwise)

Quality penalties of 5 each for a terse first next step (< 10 characters)
and for more than 10 next steps. The score is clamped to [0, 100].
"""

from typing import Any, Dict, Mapping

from continuity.types import HandoffQuality

MAX_SCORE = 100
MIN_FIRST_STEP_CHARS = 10
MAX_NEXT_STEPS = 10

REQUIRED_POINTS = {
    "workspace": 10,
    "phase": 10,
    "next_steps": 20,
    "active_files": 10,
    "completed_operations": 10,
}


def _present(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return bool(value)


def score_handoff(fields: Mapping[str, Any]) -> HandoffQuality:
    """Score how complete a candidate handoff is."""
    missing = []
    warnings = []
    suggestions = []
    score = 0

    for name, points in REQUIRED_POINTS.items():
        if _present(fields.get(name)):
            score += points
        else:
            missing.append(name)

    if fields.get("git_branch"):
        score += 10
    else:
        suggestions.append("Add git branch for context")

    if _present(fields.get("warnings")):
        score += 5

    if _present(fields.get("decisions_made")):
        score += 15
    else:
        suggestions.append("Log any decisions made this session")

    phase = fields.get("phase")
    if isinstance(phase, str) and len(phase) > 3:
        score += 10
    else:
        suggestions.append(
            'Be specific about the phase (e.g., "implementing checkpoint pruning" '
            'not just "impl")'
        )

    next_steps = fields.get("next_steps") or []
    if next_steps and len(str(next_steps[0])) < MIN_FIRST_STEP_CHARS:
        warnings.append("First next_step is very short - be specific about what to do")
        score -= 5
    if len(next_steps) > MAX_NEXT_STEPS:
        warnings.append(f"Too many next_steps (>{MAX_NEXT_STEPS}). Prioritize the top 3-5.")
        score -= 5

    return HandoffQuality(
        completeness_score=max(0, min(MAX_SCORE, score)),
        missing_elements=missing,
        warnings=warnings,
        suggestions=suggestions,
    )


def handoff_report(fields: Mapping[str, Any], threshold: int) -> Dict[str, Any]:
    """Score a handoff and report whether it clears ``threshold``."""
    quality = score_handoff(fields)
    report = quality.to_dict()
    report["threshold"] = threshold
    report["ready"] = quality.completeness_score >= threshold
    return report
