"""Local-window loop closure.

Key components:
- LocalWindowGraph: bounded pose graph of recent keyframes
- LoopClosureScheduler: median-distance candidate selection and pair
  deduplication
- VerificationJob: data handed to verification tasks
"""

from .local_window import LocalWindowGraph, WindowEdge, pair_key
from .messages import VerificationJob
from .scheduler import (
    ADJACENT_ID_GAP,
    CORRECTION_EPSILON,
    MAX_CORRECTION_RATIO,
    CheckedPairSet,
    LoopClosureScheduler,
    LoopClosureVerdict,
    correction_percent,
    evaluate_loop_closure,
)

__all__ = [
    # Window
    "LocalWindowGraph",
    "WindowEdge",
    "pair_key",
    # Scheduler
    "LoopClosureScheduler",
    "CheckedPairSet",
    "LoopClosureVerdict",
    "VerificationJob",
    "correction_percent",
    "evaluate_loop_closure",
    "ADJACENT_ID_GAP",
    "MAX_CORRECTION_RATIO",
    "CORRECTION_EPSILON",
]
