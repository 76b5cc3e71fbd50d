"""
Mode Service - One object wiring the loaded workflow, the state store,
the transition engine and the permission matcher.

Transport shells (stdio RPC, HTTP over a Unix socket, hooks) hold a single
ModeService and call into it; the service itself does no transport I/O.

Example:
    service = ModeService.from_directory("/path/to/project/.claude")
    service.check_tool("Write", {"file_path": "/project/src/a.ts"})
    service.transition("test-dev", "User described a bug")
    print(service.status().to_dict())
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .config.loader import LoadedWorkflow, ModeTransition, WorkflowLoader
from .config.overlay import ModePermissions
from .config.settings import ModeflowSettings, SettingsLoader
from .errors import StateCorruptionError
from .logger import get_logger
from .logging_config import configure_from_settings
from .permission.matcher import PASS_RESULT, PermissionResult, decide
from .state.store import FileStateStore, StateStore
from .transition.engine import StatusResult, TransitionEngine

DEFAULT_STATE_FILENAME = "mode-state.json"


@dataclass(frozen=True)
class ModeContext:
    """What applies in the current mode.

    Attributes:
        current_mode: Mode the project is in
        instructions: The mode's instructions, or None
        permissions: The mode's permission rules, or None
        transitions: Edges declared out of the mode
    """
    current_mode: str
    instructions: Optional[str] = None
    permissions: Optional[ModePermissions] = None
    transitions: List[ModeTransition] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        permissions = None
        if self.permissions is not None:
            permissions = {
                "allow": list(self.permissions.allow),
                "deny": list(self.permissions.deny),
            }
        return {
            "currentMode": self.current_mode,
            "instructions": self.instructions,
            "permissions": permissions,
            "transitions": [t.to_dict() for t in self.transitions],
        }


class ModeService:
    """Facade over a loaded workflow and its persisted state."""

    def __init__(self, workflow: LoadedWorkflow, store: StateStore):
        """Initialize the service.

        Args:
            workflow: Workflow and overlays, loaded once at startup
            store: Persisted state for the project
        """
        self.workflow = workflow
        self.store = store
        self.engine = TransitionEngine(workflow.config, store)

    @classmethod
    def from_directory(
        cls,
        config_dir: Union[str, Path],
        state_file: str = DEFAULT_STATE_FILENAME,
    ) -> "ModeService":
        """Load the workflow in config_dir and keep state in a file beside it.

        Raises:
            ConfigValidationError: If modes.yaml is missing or invalid
        """
        config_dir = Path(config_dir)
        workflow = WorkflowLoader(config_dir).load()
        store = FileStateStore(config_dir / state_file, workflow.config.initial)
        return cls(workflow, store)

    @classmethod
    def from_settings(
        cls,
        settings: Optional[ModeflowSettings] = None,
        project_root: Optional[str] = None,
    ) -> "ModeService":
        """Build a service from layered runtime settings.

        Configures the global logger from the same settings.
        """
        loader = SettingsLoader(project_root=project_root)
        if settings is None:
            settings = loader.load()
        configure_from_settings(settings)
        return cls.from_directory(loader.resolve_config_dir(settings), settings.state_file)

    def current_mode(self) -> str:
        return self.engine.current_mode()

    def context(self) -> ModeContext:
        """Instructions, permissions and outgoing edges of the current mode.

        Raises:
            StateCorruptionError: If the persisted state is unreadable
        """
        mode = self.engine.current_mode()
        overlay = self.workflow.overlay_for(mode)
        return ModeContext(
            current_mode=mode,
            instructions=overlay.instructions,
            permissions=overlay.permissions,
            transitions=list(self.workflow.config.transitions_from(mode)),
        )

    def check_tool(
        self,
        tool_name: str,
        tool_input: Optional[Mapping[str, Any]] = None,
    ) -> PermissionResult:
        """Decide a tool call against the current mode's permissions.

        If the state cannot be read the call passes, leaving the decision
        to the host's own policy.
        """
        try:
            mode = self.engine.current_mode()
        except StateCorruptionError as e:
            get_logger().error("permission", "check_skipped_corrupt_state", {
                "tool": tool_name,
                "details": e.details,
            })
            return PASS_RESULT

        result = decide(tool_name, tool_input, self.workflow.overlay_for(mode).permissions)
        get_logger().debug("permission", "tool_checked", {
            "mode": mode,
            "tool": tool_name,
            "decision": result.decision.value,
            "rule": result.rule,
        })
        return result

    def transition(self, target_mode: str, explanation: str) -> str:
        """Constrained transition along a declared edge."""
        return self.engine.constrained_transition(target_mode, explanation)

    def force_transition(self, target_mode: str) -> str:
        """Forced transition to any configured mode."""
        return self.engine.forced_transition(target_mode)

    def reset(self) -> str:
        """Back to the initial mode with an empty history."""
        return self.engine.reset()

    def status(self) -> StatusResult:
        return self.engine.status()
