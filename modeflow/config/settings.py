"""
Runtime Settings - Load process settings from multiple sources.

Settings precedence (low → high):
1. ~/.modeflow/config.json (user defaults)
2. <project>/.modeflow/config.json (project settings)
3. Environment variables (MODEFLOW_*)

These are the knobs of the process hosting the workflow (where the
workflow lives, where logs go). The workflow itself is loaded by
modeflow.config.loader.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..logger import get_logger


@dataclass
class ModeflowSettings:
    """Parsed runtime settings.

    Attributes:
        config_dir: Directory holding modes.yaml and the mode overlays,
            relative to the project root unless absolute
        state_file: Name of the persisted state file inside config_dir
        log_enabled: Whether structured logging is on
        log_level: Minimum log level
        log_directory: Directory for log files (None = temp dir)
        log_sensitive_data: Log explanations, commands and URLs verbatim
    """
    config_dir: str = ".claude"
    state_file: str = "mode-state.json"
    log_enabled: bool = True
    log_level: str = "INFO"
    log_directory: Optional[str] = None
    log_sensitive_data: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "config_dir": self.config_dir,
            "state_file": self.state_file,
            "log_enabled": self.log_enabled,
            "log_level": self.log_level,
            "log_directory": self.log_directory,
            "log_sensitive_data": self.log_sensitive_data,
        }


class SettingsLoader:
    """Load settings from multiple sources with precedence.

    Example:
        loader = SettingsLoader(project_root="/path/to/project")
        settings = loader.load()
        print(loader.resolve_config_dir(settings))  # /path/to/project/.claude
    """

    ENV_MAPPINGS = {
        "MODEFLOW_CONFIG_DIR": "config_dir",
        "MODEFLOW_STATE_FILE": "state_file",
        "MODEFLOW_LOG_ENABLED": "log_enabled",
        "MODEFLOW_LOG_LEVEL": "log_level",
        "MODEFLOW_LOG_DIR": "log_directory",
        "MODEFLOW_LOG_SENSITIVE": "log_sensitive_data",
    }

    BOOL_KEYS = {"log_enabled", "log_sensitive_data"}

    def __init__(
        self,
        project_root: Optional[str] = None,
        home_dir: Optional[str] = None,
    ):
        """Initialize the settings loader.

        Args:
            project_root: Project root directory (default: current working dir)
            home_dir: Home directory (default: user's home)
        """
        self.project_root = Path(project_root) if project_root else Path.cwd()
        self.home_dir = Path(home_dir) if home_dir else Path.home()

        self.user_settings_path = self.home_dir / ".modeflow" / "config.json"
        self.project_settings_path = self.project_root / ".modeflow" / "config.json"

    def load(self) -> ModeflowSettings:
        """Load and merge settings from all sources.

        Returns:
            Merged ModeflowSettings object
        """
        merged: Dict[str, Any] = {}

        for path in (self.user_settings_path, self.project_settings_path):
            if path.exists():
                merged = self._deep_merge(merged, self._load_json(path))

        merged = self._apply_env_vars(merged)

        defaults = ModeflowSettings()
        return ModeflowSettings(
            config_dir=str(merged.get("config_dir", defaults.config_dir)),
            state_file=str(merged.get("state_file", defaults.state_file)),
            log_enabled=_as_bool(merged.get("log_enabled"), defaults.log_enabled),
            log_level=str(merged.get("log_level", defaults.log_level)),
            log_directory=merged.get("log_directory") or None,
            log_sensitive_data=_as_bool(
                merged.get("log_sensitive_data"), defaults.log_sensitive_data
            ),
        )

    def resolve_config_dir(self, settings: ModeflowSettings) -> Path:
        """Resolve the workflow config directory against the project root."""
        config_dir = Path(settings.config_dir)
        if config_dir.is_absolute():
            return config_dir
        return self.project_root / config_dir

    def _load_json(self, path: Path) -> Dict[str, Any]:
        """Load a JSON settings file; unreadable files are skipped."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            get_logger().warn("settings", "settings_file_skipped", {
                "path": str(path),
                "error": str(e),
            })
            return {}

        if not isinstance(data, dict):
            get_logger().warn("settings", "settings_file_skipped", {
                "path": str(path),
                "error": "top-level value is not an object",
            })
            return {}
        return data

    def _deep_merge(
        self,
        base: Dict[str, Any],
        override: Dict[str, Any]
    ) -> Dict[str, Any]:
        """Deep merge two dictionaries; override wins, nested dicts merge."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_vars(self, settings: Dict[str, Any]) -> Dict[str, Any]:
        """Apply MODEFLOW_* environment overrides."""
        result = settings.copy()
        for env_var, key in self.ENV_MAPPINGS.items():
            value = os.environ.get(env_var)
            if value is not None:
                result[key] = value
        return result


def _as_bool(value: Any, default: bool) -> bool:
    """Interpret JSON booleans and env-style strings."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def load_settings(project_root: Optional[str] = None) -> ModeflowSettings:
    """Convenience function to load settings.

    Args:
        project_root: Optional project root directory

    Returns:
        Loaded ModeflowSettings
    """
    return SettingsLoader(project_root=project_root).load()
