"""
Workflow Loader - Load and validate the mode graph from modes.yaml.

The workflow definition looks like:

```yaml
name: tdd
default: idle

modes:
  idle:
    transitions:
      - to: test-dev
        constraint: User has described a bug or feature
  test-dev:
    transitions:
      - to: feature-dev
        constraint: Test is failing
  feature-dev:
    transitions:
      - to: idle
        constraint: |
          Tests pass.
          Code has been reviewed.
```

Cycles are allowed. Validation stops at the first defect and raises
ConfigValidationError naming the offending identifier.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..errors import ConfigValidationError
from ..logger import get_logger
from .overlay import ModeOverlay, load_overlay

WORKFLOW_FILENAME = "modes.yaml"


@dataclass(frozen=True)
class ModeTransition:
    """A declared edge out of a mode.

    Attributes:
        to: Target mode identifier
        constraint: Condition shown to the agent deciding whether to move.
            Never evaluated mechanically.
    """
    to: str
    constraint: str

    def to_dict(self) -> Dict[str, str]:
        return {"to": self.to, "constraint": self.constraint}


@dataclass(frozen=True)
class ModeDefinition:
    """A mode and its outgoing transitions in declaration order."""
    name: str
    transitions: Tuple[ModeTransition, ...] = field(default_factory=tuple)

    @property
    def targets(self) -> List[str]:
        return [t.to for t in self.transitions]


@dataclass(frozen=True)
class WorkflowConfig:
    """Validated mode graph.

    Attributes:
        name: Workflow name
        initial: Mode a fresh or reset project starts in
        modes: Mode identifier to definition, in declaration order
    """
    name: str
    initial: str
    modes: Dict[str, ModeDefinition]

    def has_mode(self, mode: str) -> bool:
        return mode in self.modes

    def transitions_from(self, mode: str) -> Tuple[ModeTransition, ...]:
        """Outgoing transitions for a mode; empty for terminal or unknown modes."""
        definition = self.modes.get(mode)
        if definition is None:
            return ()
        return definition.transitions

    @property
    def mode_names(self) -> List[str]:
        return list(self.modes.keys())


@dataclass(frozen=True)
class LoadedWorkflow:
    """Everything read from a config directory at startup.

    Attributes:
        config: The validated mode graph
        overlays: Mode identifier to its optional instructions/permissions
        config_dir: Directory the workflow was loaded from
    """
    config: WorkflowConfig
    overlays: Dict[str, ModeOverlay]
    config_dir: Optional[Path] = None

    def overlay_for(self, mode: str) -> ModeOverlay:
        return self.overlays.get(mode) or ModeOverlay()


class WorkflowLoader:
    """Load a workflow definition and its per-mode overlays.

    Example:
        loader = WorkflowLoader("/path/to/project/.claude")
        workflow = loader.load()
        print(workflow.config.initial)  # idle
    """

    def __init__(self, config_dir: Union[str, Path]):
        self.config_dir = Path(config_dir)
        self.workflow_path = self.config_dir / WORKFLOW_FILENAME

    def load(self) -> LoadedWorkflow:
        """Load and validate modes.yaml, then every mode's overlay.

        Returns:
            LoadedWorkflow

        Raises:
            ConfigValidationError: If the workflow definition is invalid
        """
        config = self.load_definition()
        overlays = {
            mode: load_overlay(self.config_dir, mode)
            for mode in config.mode_names
        }

        get_logger().info("config", "workflow_loaded", {
            "workflow": config.name,
            "initial": config.initial,
            "modes": config.mode_names,
            "with_instructions": [m for m, o in overlays.items() if o.instructions is not None],
            "with_permissions": [m for m, o in overlays.items() if o.permissions is not None],
        })

        return LoadedWorkflow(config=config, overlays=overlays, config_dir=self.config_dir)

    def load_definition(self) -> WorkflowConfig:
        """Load and validate modes.yaml only.

        Raises:
            ConfigValidationError: If the file is missing, unparsable or invalid
        """
        document = self._read_document()
        try:
            return parse_workflow(document)
        except ConfigValidationError as e:
            get_logger().error("config", "workflow_invalid", {
                "path": str(self.workflow_path),
                "error": str(e),
                "identifier": e.identifier,
            })
            raise

    def _read_document(self) -> Any:
        if not self.workflow_path.is_file():
            raise ConfigValidationError(
                f"{WORKFLOW_FILENAME} not found in {self.config_dir}",
                identifier=WORKFLOW_FILENAME,
            )

        try:
            with open(self.workflow_path, "r", encoding="utf-8") as f:
                return yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(
                f"Failed to parse {WORKFLOW_FILENAME}: {e}",
                identifier=WORKFLOW_FILENAME,
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigValidationError(
                f"Failed to read {WORKFLOW_FILENAME}: {e}",
                identifier=WORKFLOW_FILENAME,
            ) from e


def parse_workflow(document: Any) -> WorkflowConfig:
    """Validate a parsed workflow document and build a WorkflowConfig.

    Args:
        document: Result of parsing modes.yaml

    Returns:
        Validated WorkflowConfig

    Raises:
        ConfigValidationError: On the first structural or referential defect
    """
    if not isinstance(document, dict):
        raise ConfigValidationError(
            f"{WORKFLOW_FILENAME} must be a mapping", identifier=WORKFLOW_FILENAME
        )

    name = document.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ConfigValidationError(
            f"{WORKFLOW_FILENAME} missing required field: name", identifier="name"
        )

    initial = document.get("default")
    if not isinstance(initial, str) or not initial.strip():
        raise ConfigValidationError(
            f"{WORKFLOW_FILENAME} missing required field: default", identifier="default"
        )

    raw_modes = document.get("modes")
    if not isinstance(raw_modes, dict) or not raw_modes:
        raise ConfigValidationError(
            f"{WORKFLOW_FILENAME} missing required field: modes", identifier="modes"
        )

    # YAML allows non-string keys (e.g. `1:`); mode ids are always strings
    raw_modes = {str(k): v for k, v in raw_modes.items()}

    if initial not in raw_modes:
        raise ConfigValidationError(
            f"default mode '{initial}' does not exist in modes", identifier=initial
        )

    modes: Dict[str, ModeDefinition] = {}
    for mode_name, mode_data in raw_modes.items():
        modes[mode_name] = ModeDefinition(
            name=mode_name,
            transitions=_parse_transitions(mode_name, mode_data),
        )

    for mode_name, definition in modes.items():
        for transition in definition.transitions:
            if transition.to not in modes:
                raise ConfigValidationError(
                    f"Transition from '{mode_name}' references non-existent mode "
                    f"'{transition.to}'",
                    identifier=transition.to,
                )

    return WorkflowConfig(name=name, initial=initial, modes=modes)


def _parse_transitions(mode_name: str, mode_data: Any) -> Tuple[ModeTransition, ...]:
    if mode_data is None:
        return ()
    if not isinstance(mode_data, dict):
        raise ConfigValidationError(
            f"Mode '{mode_name}' must be a mapping", identifier=mode_name
        )

    raw_transitions = mode_data.get("transitions")
    if raw_transitions is None:
        return ()
    if not isinstance(raw_transitions, list):
        raise ConfigValidationError(
            f"Invalid transitions in mode '{mode_name}': expected a list",
            identifier=mode_name,
        )

    transitions = []
    for entry in raw_transitions:
        target = entry.get("to") if isinstance(entry, dict) else None
        if not isinstance(target, str) or not target.strip():
            raise ConfigValidationError(
                f"Invalid transition in mode '{mode_name}': missing 'to' field",
                identifier=mode_name,
            )

        constraint = entry.get("constraint")
        if not isinstance(constraint, str) or not constraint.strip():
            raise ConfigValidationError(
                f"Invalid transition in mode '{mode_name}': missing 'constraint' field",
                identifier=mode_name,
            )

        transitions.append(ModeTransition(to=target, constraint=constraint.strip()))

    return tuple(transitions)


def load_workflow(config_dir: Union[str, Path]) -> LoadedWorkflow:
    """Convenience function to load a workflow and its overlays.

    Args:
        config_dir: Directory containing modes.yaml

    Returns:
        LoadedWorkflow
    """
    return WorkflowLoader(config_dir).load()


def load_workflow_definition(config_dir: Union[str, Path]) -> WorkflowConfig:
    """Convenience function to load only the validated mode graph."""
    return WorkflowLoader(config_dir).load_definition()
