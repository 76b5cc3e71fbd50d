"""
Mode Overlays - Per-mode instructions and permission rules.

Each mode may carry two optional files next to modes.yaml:

    CLAUDE.<mode>.md        free-form instructions for the mode
    settings.<mode>.json    {"permissions": {"allow": [...], "deny": [...]}}

Both are best-effort. A missing, unreadable or invalid file means the mode
has no extra constraints; it is never a load failure.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Tuple

from ..logger import get_logger

INSTRUCTIONS_TEMPLATE = "CLAUDE.{mode}.md"
PERMISSIONS_TEMPLATE = "settings.{mode}.json"


@dataclass(frozen=True)
class ModePermissions:
    """Allow and deny rule strings for one mode, in declaration order.

    Entries are kept as found in the settings file. Anything that is not
    a well-formed rule string simply never matches.
    """
    allow: Tuple[Any, ...] = field(default_factory=tuple)
    deny: Tuple[Any, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ModeOverlay:
    """Optional per-mode configuration.

    Attributes:
        instructions: Instructions text, or None if absent or blank
        permissions: Permission rules, or None if none are configured
    """
    instructions: Optional[str] = None
    permissions: Optional[ModePermissions] = None


def instructions_path(config_dir: Path, mode: str) -> Path:
    return config_dir / INSTRUCTIONS_TEMPLATE.format(mode=mode)


def permissions_path(config_dir: Path, mode: str) -> Path:
    return config_dir / PERMISSIONS_TEMPLATE.format(mode=mode)


def load_overlay(config_dir: Path, mode: str) -> ModeOverlay:
    """Load the instructions and permissions overlay for one mode.

    Args:
        config_dir: Directory containing the overlay files
        mode: Mode identifier

    Returns:
        ModeOverlay with absent parts set to None
    """
    return ModeOverlay(
        instructions=_read_instructions(instructions_path(config_dir, mode), mode),
        permissions=_read_permissions(permissions_path(config_dir, mode), mode),
    )


def _read_instructions(path: Path, mode: str) -> Optional[str]:
    if not path.is_file():
        return None

    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        get_logger().warn("config", "instructions_unreadable", {
            "mode": mode,
            "path": str(path),
            "error": str(e),
        })
        return None

    if not content.strip():
        return None
    return content


def _read_permissions(path: Path, mode: str) -> Optional[ModePermissions]:
    if not path.is_file():
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            parsed = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        get_logger().warn("config", "permissions_unreadable", {
            "mode": mode,
            "path": str(path),
            "error": str(e),
        })
        return None

    if not isinstance(parsed, dict):
        get_logger().warn("config", "permissions_unreadable", {
            "mode": mode,
            "path": str(path),
            "error": "top-level value is not an object",
        })
        return None

    raw = parsed.get("permissions")
    if not isinstance(raw, dict):
        return None

    return ModePermissions(
        allow=_rule_list(raw.get("allow")),
        deny=_rule_list(raw.get("deny")),
    )


def _rule_list(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, list):
        return tuple(value)
    return ()
