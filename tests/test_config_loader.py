"""Tests for workflow loading, validation and mode overlays."""

import json

import pytest

from modeflow.config import (
    ModePermissions,
    WorkflowLoader,
    load_workflow,
    load_workflow_definition,
    parse_workflow,
)
from modeflow.errors import ConfigValidationError


def _workflow(**overrides):
    document = {
        "name": "tdd",
        "default": "idle",
        "modes": {
            "idle": {"transitions": [{"to": "test-dev", "constraint": "bug described"}]},
            "test-dev": {"transitions": [{"to": "idle", "constraint": "done"}]},
        },
    }
    document.update(overrides)
    return document


class TestValidWorkflow:

    def test_parses_modes_and_initial(self, config_dir):
        workflow = load_workflow(config_dir)

        assert workflow.config.name == "tdd"
        assert workflow.config.initial == "idle"
        assert workflow.config.mode_names == ["idle", "test-dev", "feature-dev", "done"]

    def test_transitions_keep_declaration_order(self, tmp_path, write_file):
        write_file(tmp_path / "modes.yaml", """
            name: docs
            default: idle
            modes:
              idle:
                transitions:
                  - to: test-dev
                    constraint: User described a bug
                  - to: docs
                    constraint: User wants documentation
              test-dev: {}
              docs:
        """)

        config = load_workflow_definition(tmp_path)

        assert [t.to for t in config.transitions_from("idle")] == ["test-dev", "docs"]
        assert config.transitions_from("idle")[0].constraint == "User described a bug"

    def test_multiline_constraint_trimmed_but_newlines_kept(self, config_dir):
        config = load_workflow_definition(config_dir)

        constraint = config.transitions_from("feature-dev")[0].constraint
        assert constraint == "Tests pass.\nCode is committed."

    def test_cyclic_graph_is_valid(self, config_dir):
        config = load_workflow_definition(config_dir)

        path = ["idle"]
        for _ in range(3):
            path.append(config.transitions_from(path[-1])[0].to)
        assert path == ["idle", "test-dev", "feature-dev", "idle"]

    def test_terminal_mode_has_no_transitions(self, config_dir):
        config = load_workflow_definition(config_dir)

        assert config.transitions_from("done") == ()
        assert config.transitions_from("unknown") == ()

    def test_every_target_resolves(self, config_dir):
        config = load_workflow_definition(config_dir)

        for definition in config.modes.values():
            for transition in definition.transitions:
                assert config.has_mode(transition.to)


class TestInvalidWorkflow:

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigValidationError, match="modes.yaml not found"):
            WorkflowLoader(tmp_path).load()

    def test_unparsable_yaml(self, tmp_path, write_file):
        write_file(tmp_path / "modes.yaml", "name: [unclosed\n")

        with pytest.raises(ConfigValidationError, match="Failed to parse"):
            load_workflow(tmp_path)

    def test_document_must_be_mapping(self):
        with pytest.raises(ConfigValidationError, match="must be a mapping"):
            parse_workflow(["idle"])

    def test_missing_name(self):
        document = _workflow()
        del document["name"]

        with pytest.raises(ConfigValidationError, match="name") as exc:
            parse_workflow(document)
        assert exc.value.identifier == "name"

    def test_missing_default(self):
        document = _workflow()
        del document["default"]

        with pytest.raises(ConfigValidationError, match="default"):
            parse_workflow(document)

    @pytest.mark.parametrize("modes", [None, {}, "idle"])
    def test_missing_or_empty_modes(self, modes):
        with pytest.raises(ConfigValidationError, match="modes"):
            parse_workflow(_workflow(modes=modes))

    def test_default_not_in_modes(self):
        with pytest.raises(ConfigValidationError, match="'missing' does not exist") as exc:
            parse_workflow(_workflow(default="missing"))
        assert exc.value.identifier == "missing"

    def test_transition_missing_to(self):
        modes = {"idle": {"transitions": [{"constraint": "x"}]}}

        with pytest.raises(ConfigValidationError, match="missing 'to'") as exc:
            parse_workflow(_workflow(modes=modes))
        assert exc.value.identifier == "idle"

    @pytest.mark.parametrize("constraint", [None, "", "   \n  "])
    def test_transition_missing_or_blank_constraint(self, constraint):
        transition = {"to": "idle"}
        if constraint is not None:
            transition["constraint"] = constraint
        modes = {"idle": {"transitions": [transition]}}

        with pytest.raises(ConfigValidationError, match="missing 'constraint'"):
            parse_workflow(_workflow(modes=modes))

    def test_transition_to_unknown_mode(self):
        modes = {"idle": {"transitions": [{"to": "nowhere", "constraint": "x"}]}}

        with pytest.raises(ConfigValidationError, match="non-existent mode 'nowhere'") as exc:
            parse_workflow(_workflow(modes=modes))
        assert exc.value.identifier == "nowhere"

    def test_transitions_must_be_list(self):
        modes = {"idle": {"transitions": "test-dev"}}

        with pytest.raises(ConfigValidationError, match="expected a list"):
            parse_workflow(_workflow(modes=modes))

    def test_structural_errors_reported_before_references(self):
        modes = {
            "idle": {"transitions": [{"to": "nowhere", "constraint": "x"}]},
            "other": {"transitions": [{"to": "idle"}]},
        }

        with pytest.raises(ConfigValidationError, match="missing 'constraint'"):
            parse_workflow(_workflow(modes=modes))


class TestOverlays:

    def test_instructions_and_permissions_loaded(self, config_dir):
        workflow = load_workflow(config_dir)
        overlay = workflow.overlay_for("test-dev")

        assert overlay.instructions == "Write a failing test first.\n"
        assert overlay.permissions == ModePermissions(
            allow=("Write(tests/**)", "Bash(npm test*)"),
            deny=("Write(src/**)",),
        )

    def test_missing_overlays_are_none(self, config_dir):
        overlay = load_workflow(config_dir).overlay_for("idle")

        assert overlay.instructions is None
        assert overlay.permissions is None

    def test_whitespace_only_instructions_are_none(self, config_dir, write_file):
        write_file(config_dir / "CLAUDE.idle.md", "  \n\t\n")

        assert load_workflow(config_dir).overlay_for("idle").instructions is None

    def test_invalid_permissions_json_is_absorbed(self, config_dir, write_file):
        write_file(config_dir / "settings.idle.json", "{ not json")

        workflow = load_workflow(config_dir)

        assert workflow.overlay_for("idle").permissions is None

    def test_settings_without_permissions_key(self, config_dir, write_file):
        write_file(config_dir / "settings.idle.json", json.dumps({"model": "x"}))

        assert load_workflow(config_dir).overlay_for("idle").permissions is None

    def test_missing_allow_or_deny_default_to_empty(self, config_dir, write_file):
        write_file(config_dir / "settings.idle.json", json.dumps({
            "permissions": {"deny": ["Bash(rm*)"], "allow": "Read(*)"}
        }))

        permissions = load_workflow(config_dir).overlay_for("idle").permissions

        assert permissions == ModePermissions(allow=(), deny=("Bash(rm*)",))

    def test_overlay_for_unknown_mode_is_empty(self, config_dir):
        overlay = load_workflow(config_dir).overlay_for("nope")

        assert overlay.instructions is None
        assert overlay.permissions is None
