"""
Continuity - session continuity for stateless agents.

Checkpoints, handoffs, crash recovery and a durable decision log.
"""

from .core import Continuity
from .errors import ContinuityError, NotFoundError, StorageError, ValidationError

try:
    from importlib.metadata import version

    __version__ = version("continuity")
except Exception:
    __version__ = "0.0.0"

__all__ = ["Continuity", "ContinuityError", "NotFoundError", "StorageError", "ValidationError"]
