"""
State Store - Persisted current mode and transition history.

The state file is shared by every process working on the same project:

```json
{
  "currentMode": "test-dev",
  "history": [
    {"from": "idle", "to": "test-dev",
     "timestamp": "2024-01-15T10:00:00.000Z", "explanation": "User described a bug"}
  ]
}
```

Writes go to a temporary file in the same directory and are renamed over
the target, so a reader sees either the old or the new file, never a
partial one. There is no cross-process locking; the last writer wins.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..errors import StateCorruptionError, StatePersistenceError
from ..logger import LogLevel, get_logger


def utc_timestamp() -> str:
    """Current time as ISO 8601 UTC with millisecond precision."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


@dataclass(frozen=True)
class HistoryEntry:
    """One recorded mode change."""
    from_mode: str
    to_mode: str
    timestamp: str
    explanation: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "from": self.from_mode,
            "to": self.to_mode,
            "timestamp": self.timestamp,
            "explanation": self.explanation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryEntry":
        """Build from the persisted shape.

        Raises:
            ValueError: If a field is missing or not a string
        """
        values = {}
        for key in ("from", "to", "timestamp", "explanation"):
            value = data.get(key)
            if not isinstance(value, str):
                raise ValueError(f"history entry field '{key}' must be a string")
            values[key] = value
        return cls(
            from_mode=values["from"],
            to_mode=values["to"],
            timestamp=values["timestamp"],
            explanation=values["explanation"],
        )


@dataclass(frozen=True)
class PersistedState:
    """Current mode plus the append-only transition history."""
    current_mode: str
    history: List[HistoryEntry] = field(default_factory=list)

    def with_transition(self, entry: HistoryEntry) -> "PersistedState":
        """Return a new state with the entry appended and the mode moved."""
        return PersistedState(
            current_mode=entry.to_mode,
            history=list(self.history) + [entry],
        )

    @property
    def last_entry(self) -> Optional[HistoryEntry]:
        return self.history[-1] if self.history else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentMode": self.current_mode,
            "history": [entry.to_dict() for entry in self.history],
        }

    @classmethod
    def from_dict(cls, data: Any) -> "PersistedState":
        """Build from the persisted shape.

        Raises:
            ValueError: If the document does not have the expected shape
        """
        if not isinstance(data, dict):
            raise ValueError("state must be a JSON object")

        current_mode = data.get("currentMode")
        if not isinstance(current_mode, str) or not current_mode:
            raise ValueError("'currentMode' must be a non-empty string")

        raw_history = data.get("history", [])
        if not isinstance(raw_history, list):
            raise ValueError("'history' must be a list")

        history = []
        for index, raw_entry in enumerate(raw_history):
            if not isinstance(raw_entry, dict):
                raise ValueError(f"history entry {index} must be an object")
            try:
                history.append(HistoryEntry.from_dict(raw_entry))
            except ValueError as e:
                raise ValueError(f"history entry {index}: {e}") from e

        return cls(current_mode=current_mode, history=history)


class StateStore(ABC):
    """Read/write/reset interface over the persisted mode state."""

    def __init__(self, initial_mode: str):
        self.initial_mode = initial_mode

    @abstractmethod
    def read(self) -> PersistedState:
        """Return the current state, or the initial state if none is persisted.

        Raises:
            StateCorruptionError: If persisted content cannot be parsed
        """

    @abstractmethod
    def write(self, state: PersistedState) -> None:
        """Persist the state atomically."""

    def reset(self) -> PersistedState:
        """Replace the state with the initial mode and an empty history."""
        state = PersistedState(current_mode=self.initial_mode, history=[])
        self.write(state)
        return state

    def initial_state(self) -> PersistedState:
        return PersistedState(current_mode=self.initial_mode, history=[])


class InMemoryStateStore(StateStore):
    """State store kept in process memory."""

    def __init__(self, initial_mode: str, state: Optional[PersistedState] = None):
        super().__init__(initial_mode)
        self._state: Optional[PersistedState] = None
        if state is not None:
            self._state = _copy_state(state)
        self.write_count = 0

    def read(self) -> PersistedState:
        if self._state is None:
            return self.initial_state()
        return self._state

    def write(self, state: PersistedState) -> None:
        self._state = _copy_state(state)
        self.write_count += 1

    @property
    def has_state(self) -> bool:
        return self._state is not None


class FileStateStore(StateStore):
    """State store backed by a JSON file.

    Example:
        store = FileStateStore(".claude/mode-state.json", initial_mode="idle")
        state = store.read()
        store.write(state.with_transition(entry))
    """

    def __init__(self, path: Union[str, Path], initial_mode: str):
        super().__init__(initial_mode)
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> PersistedState:
        if not self.exists():
            if self.path.exists():
                raise StatePersistenceError(str(self.path), "not a regular file")
            return self.initial_state()

        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            # Removed between the check and the read
            return self.initial_state()
        except UnicodeDecodeError as e:
            raise self._corrupted(str(e)) from e
        except OSError as e:
            raise StatePersistenceError(str(self.path), str(e)) from e

        try:
            return PersistedState.from_dict(json.loads(content))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            raise self._corrupted(str(e)) from e

    def write(self, state: PersistedState) -> None:
        payload = json.dumps(state.to_dict(), indent=2) + "\n"

        with get_logger().span("state", "write", {
            "path": str(self.path),
            "current_mode": state.current_mode,
            "history_length": len(state.history),
        }, level=LogLevel.DEBUG):
            try:
                self._atomic_write(payload)
            except OSError as e:
                raise StatePersistenceError(str(self.path), str(e)) from e

    def _atomic_write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            dir=str(self.path.parent),
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    def _corrupted(self, details: str) -> StateCorruptionError:
        get_logger().error("state", "state_corrupted", {
            "path": str(self.path),
            "details": details,
        })
        return StateCorruptionError(str(self.path), details)


def _copy_state(state: PersistedState) -> PersistedState:
    return PersistedState(current_mode=state.current_mode, history=list(state.history))
