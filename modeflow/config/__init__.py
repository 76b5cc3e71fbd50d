"""
Configuration System - Workflow definition, mode overlays and runtime settings.

Provides:
- WorkflowLoader: Load and validate modes.yaml plus per-mode overlays
- WorkflowConfig / ModeTransition: The validated mode graph
- ModeOverlay / ModePermissions: Optional per-mode instructions and rules
- SettingsLoader: Layered runtime settings (user, project, environment)

Files in a config directory:
1. modes.yaml (required workflow definition)
2. CLAUDE.<mode>.md (optional instructions)
3. settings.<mode>.json (optional permissions)
"""

from .loader import (
    LoadedWorkflow,
    ModeDefinition,
    ModeTransition,
    WorkflowConfig,
    WorkflowLoader,
    load_workflow,
    load_workflow_definition,
    parse_workflow,
)
from .overlay import ModeOverlay, ModePermissions, load_overlay
from .settings import ModeflowSettings, SettingsLoader, load_settings

__all__ = [
    "LoadedWorkflow",
    "ModeDefinition",
    "ModeTransition",
    "WorkflowConfig",
    "WorkflowLoader",
    "load_workflow",
    "load_workflow_definition",
    "parse_workflow",
    "ModeOverlay",
    "ModePermissions",
    "load_overlay",
    "ModeflowSettings",
    "SettingsLoader",
    "load_settings",
]
