"""
Logging configuration utilities.

Usage:
    from modeflow.logging_config import configure_from_environment

    configure_from_environment()
"""

import os
from typing import Optional

from .config.settings import ModeflowSettings
from .logger import configure_logger


def configure_from_settings(settings: ModeflowSettings) -> None:
    """Configure the global logger from loaded runtime settings.

    Args:
        settings: Settings produced by SettingsLoader
    """
    configure_logger(
        enabled=settings.log_enabled,
        level=settings.log_level,
        log_directory=settings.log_directory,
        log_sensitive_data=settings.log_sensitive_data,
        session_id=os.environ.get("MODEFLOW_SESSION_ID"),
        console_output=_parse_bool(os.environ.get("MODEFLOW_LOG_CONSOLE"), False),
    )


def configure_from_environment() -> None:
    """Configure logger from environment variables.

    Environment variables:
        MODEFLOW_LOG_ENABLED: '0', '1', 'true', 'false'
        MODEFLOW_LOG_LEVEL: 'ERROR', 'WARN', 'INFO', 'DEBUG', 'TRACE'
        MODEFLOW_LOG_DIR: Path to log directory
        MODEFLOW_LOG_SENSITIVE: '0', '1', 'true', 'false'
        MODEFLOW_LOG_CONSOLE: echo records to stderr
        MODEFLOW_SESSION_ID: Session ID for cross-process correlation
    """
    configure_logger(
        enabled=_parse_bool(os.environ.get("MODEFLOW_LOG_ENABLED"), True),
        level=os.environ.get("MODEFLOW_LOG_LEVEL", "INFO"),
        log_directory=os.environ.get("MODEFLOW_LOG_DIR"),
        log_sensitive_data=_parse_bool(os.environ.get("MODEFLOW_LOG_SENSITIVE"), True),
        session_id=os.environ.get("MODEFLOW_SESSION_ID"),
        console_output=_parse_bool(os.environ.get("MODEFLOW_LOG_CONSOLE"), False),
    )


def _parse_bool(value: Optional[str], default: bool) -> bool:
    """Parse string to boolean."""
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


__all__ = [
    "configure_from_settings",
    "configure_from_environment",
]
