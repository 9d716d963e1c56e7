"""Continuity Core - session continuity for stateless agent processes.

    from continuity.core import Continuity
"""

from continuity.core.accumulator import AccumulatorState, CheckpointUpdate, SessionAccumulator
from continuity.core.continuity_class import Continuity
from continuity.core.recovery import CrashDetector

__all__ = [
    "Continuity",
    "AccumulatorState",
    "CheckpointUpdate",
    "CrashDetector",
    "SessionAccumulator",
]
