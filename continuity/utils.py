"""Path and identifier helpers shared across continuity."""

import os
from pathlib import Path

from continuity.errors import ValidationError

DATA_DIR_ENV = "CONTINUITY_DATA_DIR"


def get_continuity_home() -> Path:
    """Return the continuity data directory.

    ``CONTINUITY_DATA_DIR`` wins when set; otherwise ``~/.continuity``.
    """
    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser()
    return Path.home() / ".continuity"


def validate_workspace(workspace: str) -> str:
    """Validate a workspace key.

    Workspaces end up in artifact filenames, so path traversal is rejected
    outright rather than sanitized away.
    """
    if not isinstance(workspace, str):
        raise ValidationError(f"workspace must be a string, got {type(workspace).__name__}")

    stripped = workspace.strip()
    if not stripped:
        raise ValidationError("workspace cannot be empty")
    if "/" in stripped or "\\" in stripped:
        raise ValidationError("workspace must not contain path separators")
    if stripped in (".", "..") or ".." in stripped:
        raise ValidationError("workspace must not contain path traversal sequences")
    if len(stripped) > 100:
        raise ValidationError("workspace too long (max 100 characters)")
    if any(ord(c) < 32 for c in stripped):
        raise ValidationError("workspace must not contain control characters")

    return stripped
