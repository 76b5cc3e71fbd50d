"""
modeflow - Workflow modes and per-mode tool permissions for autonomous agents.

An agent works inside one mode of a declared workflow graph at a time.
Mode changes go through declared edges (or an explicit manual override),
are persisted atomically with an audit history, and each mode can carry
allow/deny rules that gate the agent's tool calls.
"""

from .config import (
    LoadedWorkflow,
    ModeOverlay,
    ModePermissions,
    ModeTransition,
    WorkflowConfig,
    WorkflowLoader,
    load_workflow,
)
from .errors import (
    ConfigValidationError,
    ModeflowError,
    PermissionRuleMalformed,
    StateCorruptionError,
    StatePersistenceError,
    TransitionRejected,
)
from .permission import PermissionDecision, PermissionResult, decide
from .service import ModeContext, ModeService
from .state import FileStateStore, HistoryEntry, InMemoryStateStore, PersistedState, StateStore
from .transition import FORCED_EXPLANATION, ModeStatus, StatusError, TransitionEngine

__version__ = "0.1.0"
__all__ = [
    "LoadedWorkflow",
    "ModeOverlay",
    "ModePermissions",
    "ModeTransition",
    "WorkflowConfig",
    "WorkflowLoader",
    "load_workflow",
    "ConfigValidationError",
    "ModeflowError",
    "PermissionRuleMalformed",
    "StateCorruptionError",
    "StatePersistenceError",
    "TransitionRejected",
    "PermissionDecision",
    "PermissionResult",
    "decide",
    "ModeContext",
    "ModeService",
    "FileStateStore",
    "HistoryEntry",
    "InMemoryStateStore",
    "PersistedState",
    "StateStore",
    "FORCED_EXPLANATION",
    "ModeStatus",
    "StatusError",
    "TransitionEngine",
]
