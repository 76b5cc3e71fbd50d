"""
Structured JSON-lines logger for modeflow.

Every record is one JSON object per line, so mode changes and permission
decisions can be reconstructed after the fact and correlated across the
processes that share a project through the session ID.

Usage:
    from modeflow.logger import get_logger

    logger = get_logger()
    logger.info("transition", "mode_changed", {"from": "idle", "to": "test-dev"})

    with logger.span("state", "write", {"path": str(path)}) as span:
        write_file()
        span.set_data({"entries": 3})
"""

import json
import os
import sys
import tempfile
import threading
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Generator, Optional, TextIO


class LogLevel(IntEnum):
    """Log level enumeration."""
    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40

    @classmethod
    def from_string(cls, level_str: str) -> "LogLevel":
        """Parse string to LogLevel, defaulting to INFO."""
        mapping = {
            "TRACE": cls.TRACE,
            "DEBUG": cls.DEBUG,
            "INFO": cls.INFO,
            "WARN": cls.WARN,
            "WARNING": cls.WARN,
            "ERROR": cls.ERROR,
        }
        return mapping.get(level_str.upper(), cls.INFO)


# Field names whose values are withheld when sensitive logging is off
SENSITIVE_KEYS = frozenset({
    "explanation",
    "instructions",
    "command",
    "url",
    "file_path",
    "token",
    "secret",
    "password",
})


class LogSpan:
    """Context manager for timed operations."""

    def __init__(
        self,
        logger: "StructuredLogger",
        level: LogLevel,
        component: str,
        event: str,
        data: Optional[Dict[str, Any]] = None,
    ):
        self.logger = logger
        self.level = level
        self.component = component
        self.event = event
        self.data = dict(data or {})
        self.start_time: Optional[float] = None

    def __enter__(self) -> "LogSpan":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration_ms = (time.perf_counter() - (self.start_time or 0.0)) * 1000

        if exc_type is not None:
            self.data["error"] = str(exc_val)
            self.data["error_type"] = exc_type.__name__
            self.logger._log(
                LogLevel.ERROR,
                self.component,
                f"{self.event}_error",
                self.data,
                duration_ms=duration_ms,
            )
        else:
            self.logger._log(
                self.level,
                self.component,
                f"{self.event}_complete",
                self.data,
                duration_ms=duration_ms,
            )

        return False  # Never suppress

    def set_data(self, data: Dict[str, Any]) -> None:
        """Update span data before completion."""
        self.data.update(data)


class StructuredLogger:
    """Thread-safe structured JSON-lines logger."""

    def __init__(self):
        self._lock = threading.RLock()
        self._session_id: str = self._generate_session_id()
        self._level: LogLevel = LogLevel.INFO
        self._enabled: bool = True
        self._log_sensitive_data: bool = True
        self._log_directory: Optional[Path] = None
        self._file_handle: Optional[TextIO] = None
        self._current_file_path: Optional[Path] = None
        self._max_file_size: int = 10 * 1024 * 1024  # 10 MB
        self._max_files: int = 10
        self._console_output: bool = False

    def _generate_session_id(self) -> str:
        """Generate unique session identifier."""
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        random_part = format((int(time.time() * 1000000) + os.getpid()) % 65536, "04X")
        return f"{timestamp}_{random_part}"

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def level(self) -> LogLevel:
        return self._level

    @level.setter
    def level(self, value: LogLevel) -> None:
        self._level = value

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    @property
    def log_sensitive_data(self) -> bool:
        return self._log_sensitive_data

    @log_sensitive_data.setter
    def log_sensitive_data(self, value: bool) -> None:
        self._log_sensitive_data = value

    @property
    def current_file_path(self) -> Optional[Path]:
        """Path of the file currently being written, if one is open."""
        return self._current_file_path

    def set_console_output(self, enabled: bool) -> None:
        """Echo records to stderr (stdout belongs to the transport)."""
        self._console_output = enabled

    def configure(
        self,
        enabled: bool = True,
        level: str = "INFO",
        log_directory: Optional[str] = None,
        log_sensitive_data: bool = True,
        max_file_size: int = 10485760,
        max_files: int = 10,
        session_id: Optional[str] = None,
        console_output: bool = False,
    ) -> None:
        """Configure logger from settings."""
        with self._lock:
            self._enabled = enabled
            self._level = LogLevel.from_string(level)
            self._log_sensitive_data = log_sensitive_data
            self._max_file_size = max_file_size
            self._max_files = max_files
            self._console_output = console_output
            self._log_directory = Path(log_directory) if log_directory else None

            if session_id:
                self._session_id = session_id

            self._close_file()

    def error(self, component: str, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.ERROR, component, event, data)

    def warn(self, component: str, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.WARN, component, event, data)

    def info(self, component: str, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.INFO, component, event, data)

    def debug(self, component: str, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.DEBUG, component, event, data)

    def trace(self, component: str, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        self._log(LogLevel.TRACE, component, event, data)

    @contextmanager
    def span(
        self,
        component: str,
        event: str,
        data: Optional[Dict[str, Any]] = None,
        level: LogLevel = LogLevel.INFO,
    ) -> Generator[LogSpan, None, None]:
        """Create a timed span for an operation.

        Emits `<event>_complete` with the duration on success, or
        `<event>_error` at ERROR level if the block raises. The exception
        is always re-raised.
        """
        span_obj = LogSpan(self, level, component, event, data)
        with span_obj:
            yield span_obj

    def close(self) -> None:
        """Close log file."""
        with self._lock:
            self._close_file()

    def _log(
        self,
        level: LogLevel,
        component: str,
        event: str,
        data: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ) -> None:
        """Core logging method. Logging failures never reach the caller."""
        if not self._enabled or level < self._level:
            return

        try:
            entry = self._create_entry(level, component, event, data, duration_ms)
            json_str = json.dumps(entry, default=str)

            if self._console_output:
                print(f"[{level.name}] {component}.{event}: {json_str}", file=sys.stderr)

            self._write_to_file(json_str)
        except (OSError, TypeError, ValueError) as e:
            if self._console_output:
                print(f"modeflow logger error: {e}", file=sys.stderr)

    def _create_entry(
        self,
        level: LogLevel,
        component: str,
        event: str,
        data: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Create structured log entry."""
        entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": level.name,
            "session_id": self._session_id,
            "pid": os.getpid(),
            "component": component,
            "event": event,
        }

        if data:
            if self._log_sensitive_data:
                entry["data"] = self._sanitize_data(data)
            else:
                entry["data"] = self._redact_sensitive(data)

        if duration_ms is not None:
            entry["duration_ms"] = round(duration_ms, 3)

        return entry

    def _sanitize_data(self, data: Any) -> Any:
        """Reduce data to JSON-encodable values."""
        if isinstance(data, dict):
            return {str(k): self._sanitize_data(v) for k, v in data.items()}
        elif isinstance(data, (list, tuple)):
            return [self._sanitize_data(v) for v in data]
        elif isinstance(data, (str, int, float, bool, type(None))):
            return data
        elif isinstance(data, bytes):
            return f"<bytes:{len(data)}>"
        elif isinstance(data, BaseException):
            return {"type": type(data).__name__, "message": str(data)}
        return str(data)

    def _redact_sensitive(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Redact potentially sensitive fields."""
        result = {}
        for k, v in data.items():
            if str(k).lower() in SENSITIVE_KEYS:
                if isinstance(v, str):
                    result[k] = f"<redacted:{len(v)} chars>"
                else:
                    result[k] = "<redacted>"
            elif isinstance(v, dict):
                result[k] = self._redact_sensitive(v)
            else:
                result[k] = self._sanitize_data(v)
        return result

    def _write_to_file(self, json_str: str) -> None:
        with self._lock:
            if self._file_handle is None:
                self._open_file()

            if self._file_handle is None:
                return

            self._file_handle.write(json_str + "\n")
            self._file_handle.flush()

            if self._current_file_path.stat().st_size >= self._max_file_size:
                self._rotate()

    def _open_file(self) -> None:
        log_path = self._get_log_path()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        self._file_handle = open(log_path, "a", encoding="utf-8")
        self._current_file_path = log_path

    def _close_file(self) -> None:
        if self._file_handle:
            try:
                self._file_handle.close()
            except OSError:
                pass
            self._file_handle = None
            self._current_file_path = None

    def _get_log_path(self) -> Path:
        log_dir = self._log_directory or Path(tempfile.gettempdir()) / "modeflow_logs"
        return log_dir / f"modeflow_{self._session_id}.jsonl"

    def _rotate(self) -> None:
        """Shift backups up by one and start a fresh file.

        modeflow_<session>.jsonl becomes modeflow_<session>.1.jsonl, .1
        becomes .2, and so on. At most max_files backups are kept.
        """
        current = self._current_file_path
        self._close_file()
        if current is None:
            return

        if self._max_files < 1:
            current.unlink()
            return

        oldest = _backup_path(current, self._max_files)
        if oldest.exists():
            oldest.unlink()
        for index in range(self._max_files - 1, 0, -1):
            backup = _backup_path(current, index)
            if backup.exists():
                backup.replace(_backup_path(current, index + 1))
        current.replace(_backup_path(current, 1))


def _backup_path(path: Path, index: int) -> Path:
    return path.with_name(f"{path.stem}.{index}{path.suffix}")


_logger_instance: Optional[StructuredLogger] = None
_logger_lock = threading.Lock()


def get_logger() -> StructuredLogger:
    """Get the global logger instance."""
    global _logger_instance
    with _logger_lock:
        if _logger_instance is None:
            _logger_instance = StructuredLogger()
        return _logger_instance


def configure_logger(
    enabled: bool = True,
    level: str = "INFO",
    log_directory: Optional[str] = None,
    log_sensitive_data: bool = True,
    max_file_size: int = 10485760,
    max_files: int = 10,
    session_id: Optional[str] = None,
    console_output: bool = False,
) -> None:
    """Configure the global logger."""
    get_logger().configure(
        enabled=enabled,
        level=level,
        log_directory=log_directory,
        log_sensitive_data=log_sensitive_data,
        max_file_size=max_file_size,
        max_files=max_files,
        session_id=session_id,
        console_output=console_output,
    )
