"""
Transition Engine - Constrained and forced mode changes.

Two ways to change mode:
1. Constrained: the agent asks to move along a declared edge and says why.
   Declared edges are never bypassed.
2. Forced: a manual override that may jump to any configured mode.

Both refuse to "move" to the mode the project is already in, so a
duplicate request surfaces as an error instead of silently succeeding.
Every successful change appends to the history before it is persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from ..config.loader import ModeTransition, WorkflowConfig
from ..errors import StateCorruptionError, TransitionRejected
from ..logger import get_logger
from ..state.store import HistoryEntry, PersistedState, StateStore, utc_timestamp

FORCED_EXPLANATION = "Forced transition via /mode command"

STATUS_HISTORY_LIMIT = 10


@dataclass(frozen=True)
class ModeStatus:
    """Read-only view of where the workflow stands.

    Attributes:
        current_mode: Mode the project is in
        initial_mode: Mode a fresh or reset project starts in
        last_transition: Timestamp of the most recent change, or None
        available_transitions: Edges declared out of the current mode
        history: Most recent history entries, oldest first
    """
    current_mode: str
    initial_mode: str
    last_transition: Optional[str]
    available_transitions: List[ModeTransition] = field(default_factory=list)
    history: List[HistoryEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentMode": self.current_mode,
            "initialMode": self.initial_mode,
            "lastTransition": self.last_transition,
            "transitionHistory": [entry.to_dict() for entry in self.history],
            "availableTransitions": [t.to_dict() for t in self.available_transitions],
        }


@dataclass(frozen=True)
class StatusError:
    """Status could not be determined because the state is corrupted."""
    error: str
    details: str

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.error, "details": self.details}


StatusResult = Union[ModeStatus, StatusError]


class TransitionEngine:
    """Validate and execute mode changes against a workflow graph.

    Example:
        engine = TransitionEngine(workflow.config, FileStateStore(path, "idle"))
        engine.constrained_transition("test-dev", "User described a bug")
        engine.forced_transition("idle")
        status = engine.status()
    """

    def __init__(
        self,
        config: WorkflowConfig,
        store: StateStore,
        clock: Callable[[], str] = utc_timestamp,
    ):
        """Initialize the engine.

        Args:
            config: Validated workflow graph
            store: Where the current mode and history live
            clock: Returns the timestamp recorded for each change
        """
        self.config = config
        self.store = store
        self._clock = clock

    def current_mode(self) -> str:
        """Current mode from the store.

        Raises:
            StateCorruptionError: If the persisted state is unreadable
        """
        return self.store.read().current_mode

    def constrained_transition(self, target_mode: str, explanation: str) -> str:
        """Move along a declared edge out of the current mode.

        Args:
            target_mode: Mode to move to
            explanation: Why the edge's constraint is satisfied

        Returns:
            The new current mode

        Raises:
            TransitionRejected: If the request is blank, the target is
                unknown, already current, or not a declared edge
            StateCorruptionError: If the persisted state is unreadable
        """
        if not _is_filled(target_mode):
            self._reject("constrained", target_mode, "target mode is required")
        if not _is_filled(explanation):
            self._reject("constrained", target_mode, "explanation is required")

        state = self.store.read()
        self._check_target(state, target_mode, "constrained")

        allowed = [t.to for t in self.config.transitions_from(state.current_mode)]
        if target_mode not in allowed:
            if allowed:
                options = ", ".join(f"'{m}'" for m in allowed)
                detail = f"allowed transitions: {options}"
            else:
                detail = "it has no outgoing transitions"
            self._reject(
                "constrained",
                target_mode,
                f"Transition from '{state.current_mode}' to '{target_mode}' "
                f"is not allowed; {detail}",
                current=state.current_mode,
            )

        return self._commit(state, target_mode, explanation, forced=False)

    def forced_transition(self, target_mode: str) -> str:
        """Jump to any configured mode, ignoring declared edges.

        Args:
            target_mode: Mode to move to

        Returns:
            The new current mode

        Raises:
            TransitionRejected: If the target is unknown or already current
            StateCorruptionError: If the persisted state is unreadable
        """
        if not _is_filled(target_mode):
            self._reject("forced", target_mode, "target mode is required")

        state = self.store.read()
        self._check_target(state, target_mode, "forced")
        return self._commit(state, target_mode, FORCED_EXPLANATION, forced=True)

    def reset(self) -> str:
        """Return to the initial mode and clear the history."""
        state = self.store.reset()
        get_logger().info("transition", "state_reset", {"mode": state.current_mode})
        return state.current_mode

    def status(self) -> StatusResult:
        """Current mode, its outgoing edges and the recent history.

        A corrupted state file is reported as a StatusError rather than
        replaced with the initial state.
        """
        try:
            state = self.store.read()
        except StateCorruptionError as e:
            return StatusError(error="State file is corrupted", details=e.details)

        last = state.last_entry
        return ModeStatus(
            current_mode=state.current_mode,
            initial_mode=self.config.initial,
            last_transition=last.timestamp if last else None,
            available_transitions=list(self.config.transitions_from(state.current_mode)),
            history=list(state.history[-STATUS_HISTORY_LIMIT:]),
        )

    def _check_target(self, state: PersistedState, target_mode: str, kind: str) -> None:
        if not self.config.has_mode(target_mode):
            self._reject(
                kind,
                target_mode,
                f"Mode '{target_mode}' does not exist",
                current=state.current_mode,
            )
        if target_mode == state.current_mode:
            self._reject(
                kind,
                target_mode,
                f"Already in mode '{target_mode}'",
                current=state.current_mode,
            )

    def _commit(
        self,
        state: PersistedState,
        target_mode: str,
        explanation: str,
        forced: bool,
    ) -> str:
        entry = HistoryEntry(
            from_mode=state.current_mode,
            to_mode=target_mode,
            timestamp=self._clock(),
            explanation=explanation,
        )
        self.store.write(state.with_transition(entry))

        get_logger().info("transition", "mode_changed", {
            "from": entry.from_mode,
            "to": entry.to_mode,
            "forced": forced,
            "explanation": explanation,
            "history_length": len(state.history) + 1,
        })
        return target_mode

    def _reject(
        self,
        kind: str,
        target_mode: Any,
        reason: str,
        current: Optional[str] = None,
    ) -> None:
        get_logger().info("transition", "transition_rejected", {
            "kind": kind,
            "target": target_mode,
            "current": current,
            "reason": reason,
        })
        raise TransitionRejected(reason)


def _is_filled(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())
