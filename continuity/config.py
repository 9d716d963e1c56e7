"""Configuration loading and defaults for continuity.

Resolution order for the data directory:
1. Explicit ``data_dir`` argument
2. ``CONTINUITY_DATA_DIR`` environment variable
3. ``~/.continuity``

On first run the resolved defaults are written to ``{data_dir}/config.json``
so later runs are reproducible. Later runs overlay that file on the defaults.
"""

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from continuity.errors import StorageError
from continuity.utils import get_continuity_home

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"

DEFAULT_CHECKPOINT_KEEP_COUNT = 50
DEFAULT_ESCALATION_THRESHOLD = 15
DEFAULT_COMPRESSION_TARGET_TOKENS = 1000
DEFAULT_HANDOFF_QUALITY_THRESHOLD = 80

_NUMERIC_OPTIONS = {
    "checkpoint_keep_count": DEFAULT_CHECKPOINT_KEEP_COUNT,
    "auto_escalation_threshold": DEFAULT_ESCALATION_THRESHOLD,
    "compression_target_tokens": DEFAULT_COMPRESSION_TARGET_TOKENS,
    "handoff_quality_threshold": DEFAULT_HANDOFF_QUALITY_THRESHOLD,
}

_PATH_OPTIONS = ("sessions_dir", "decisions_dir", "db_path")


@dataclass
class ContinuityConfig:
    data_dir: Path
    sessions_dir: Path
    decisions_dir: Path
    db_path: Path
    checkpoint_keep_count: int = DEFAULT_CHECKPOINT_KEEP_COUNT
    auto_escalation_threshold: int = DEFAULT_ESCALATION_THRESHOLD
    compression_target_tokens: int = DEFAULT_COMPRESSION_TARGET_TOKENS
    handoff_quality_threshold: int = DEFAULT_HANDOFF_QUALITY_THRESHOLD

    @classmethod
    def defaults(cls, data_dir: Path) -> "ContinuityConfig":
        return cls(
            data_dir=data_dir,
            sessions_dir=data_dir / "sessions",
            decisions_dir=data_dir / "decisions",
            db_path=data_dir / "state.db",
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            d[f.name] = str(value) if isinstance(value, Path) else value
        return d


def _overlay(config: ContinuityConfig, raw: Dict[str, Any]) -> ContinuityConfig:
    """Apply recognized keys from a parsed config file onto ``config``.

    Relative paths are taken relative to the data directory.
    """
    for key in _PATH_OPTIONS:
        value = raw.get(key)
        if value is None:
            continue
        if not isinstance(value, str) or not value.strip():
            logger.warning(f"Ignoring invalid {key} in config: {value!r}")
            continue
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = config.data_dir / path
        setattr(config, key, path)

    for key, default in _NUMERIC_OPTIONS.items():
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            logger.warning(f"Ignoring invalid {key} in config: {value!r} (using {default})")
            continue
        setattr(config, key, value)

    return config


def load_config(data_dir: Optional[Union[str, Path]] = None) -> ContinuityConfig:
    """Load configuration, bootstrapping the data directory on first run.

    Args:
        data_dir: Override for the data directory root.

    Returns:
        The resolved ContinuityConfig.

    Raises:
        StorageError: If the data directories cannot be created.
    """
    root = Path(data_dir).expanduser() if data_dir is not None else get_continuity_home()
    config = ContinuityConfig.defaults(root)
    config_path = root / CONFIG_FILENAME

    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        logger.error(f"Cannot create data directory {root}: {e}")
        raise StorageError(f"Cannot create data directory: {e}") from e

    if not config_path.exists():
        try:
            with open(config_path, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=2)
        except OSError as e:
            # Still usable with in-memory defaults
            logger.warning(
                f"Could not write default config: {e}",
                extra={"operation": "config_bootstrap", "error_type": type(e).__name__},
            )
    else:
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
            if not isinstance(raw, dict):
                raise ValueError("config root must be an object")
            config = _overlay(config, raw)
        except (json.JSONDecodeError, ValueError, OSError) as e:
            logger.warning(
                f"Could not parse {config_path}, using defaults: {e}",
                extra={"operation": "config_load", "error_type": type(e).__name__},
            )

    for directory in (config.sessions_dir, config.decisions_dir, config.db_path.parent):
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create directory {directory}: {e}")
            raise StorageError(f"Cannot create directory {directory}: {e}") from e

    return config
