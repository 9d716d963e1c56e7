"""Line-oriented context compression under a token budget.

Token counts are estimated at ~4 characters per token. Above budget, every
line is put into exactly one bucket, checked in this order:

1. contains a preserve string          -> kept verbatim
2. starts with a heading marker (``#``) -> kept verbatim
3. mentions "decision" / "ratified"     -> kept verbatim
4. mentions "next" / "todo"             -> kept verbatim
5. carries [WARN] / [FAIL]              -> kept verbatim
6. carries [OK] / [DONE] / [WIP]        -> kept, marker stripped
7. anything else                        -> compressible

Kept lines stay in their original order. Compressible lines are then
admitted greedily, in order, until the first one that would overflow the
remaining budget.
"""

import math
import re
from typing import Iterable, List, Optional

from continuity.types import CompressionResult

CHARS_PER_TOKEN = 4

HEADING_MARKER = "#"
DECISION_WORDS = ("decision", "ratified")
NEXT_STEP_WORDS = ("next", "todo")
WARNING_MARKERS = ("[WARN]", "[FAIL]")
STATUS_MARKERS = ("[OK]", "[DONE]", "[WIP]")

_STATUS_MARKER_RE = re.compile(r"\[(?:OK|DONE|WIP)\]\s*")


def estimate_tokens(text: str) -> int:
    """Estimate token count as ceil(characters / 4)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def _round_ratio(value: float) -> float:
    # Half-up to one decimal
    return math.floor(value * 10 + 0.5) / 10


def _is_kept(line: str, preserve: List[str]) -> bool:
    if any(p in line for p in preserve):
        return True
    if line.startswith(HEADING_MARKER):
        return True
    lowered = line.lower()
    if any(word in lowered for word in DECISION_WORDS):
        return True
    if any(word in lowered for word in NEXT_STEP_WORDS):
        return True
    return any(marker in line for marker in WARNING_MARKERS)


def _strip_status(line: str) -> str:
    return _STATUS_MARKER_RE.sub("", line).strip()


def compress_context(
    text: str, target_tokens: int = 1000, preserve: Optional[Iterable[str]] = None
) -> CompressionResult:
    """Compress ``text`` towards ``target_tokens``.

    Kept lines are never dropped, so the result can still exceed the budget
    when the important lines alone are larger than it.

    Args:
        text: Verbose context, newline-delimited.
        target_tokens: Token budget for the output.
        preserve: Strings whose lines must survive verbatim.

    Returns:
        CompressionResult with token estimates and the compression ratio.
    """
    original_tokens = estimate_tokens(text)
    if original_tokens <= target_tokens:
        return CompressionResult(
            compressed=text,
            original_tokens=original_tokens,
            compressed_tokens=original_tokens,
            compression_ratio=1,
        )

    preserve_list = [p for p in (preserve or []) if p]
    kept: List[str] = []
    compressible: List[str] = []

    for line in text.split("\n"):
        if _is_kept(line, preserve_list):
            kept.append(line)
        elif any(marker in line for marker in STATUS_MARKERS):
            kept.append(_strip_status(line))
        else:
            compressible.append(line)

    compressed = "\n".join(kept)
    current_tokens = estimate_tokens(compressed)

    if current_tokens < target_tokens:
        budget_chars = (target_tokens - current_tokens) * CHARS_PER_TOKEN
        added = 0
        extra = []
        for line in compressible:
            if added + len(line) > budget_chars:
                break
            extra.append(line)
            added += len(line)
        if extra:
            compressed = "\n".join([compressed, *extra]) if kept else "\n".join(extra)

    compressed = compressed.strip()
    compressed_tokens = estimate_tokens(compressed)

    return CompressionResult(
        compressed=compressed,
        original_tokens=original_tokens,
        compressed_tokens=compressed_tokens,
        compression_ratio=_round_ratio(original_tokens / max(compressed_tokens, 1)),
    )
