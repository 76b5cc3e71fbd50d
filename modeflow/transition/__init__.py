"""
Transition System - Constrained and forced mode changes plus status.
"""

from .engine import (
    FORCED_EXPLANATION,
    STATUS_HISTORY_LIMIT,
    ModeStatus,
    StatusError,
    StatusResult,
    TransitionEngine,
)

__all__ = [
    "FORCED_EXPLANATION",
    "STATUS_HISTORY_LIMIT",
    "ModeStatus",
    "StatusError",
    "StatusResult",
    "TransitionEngine",
]
