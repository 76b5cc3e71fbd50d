"""Tests for constrained/forced transitions and status."""

import pytest

from modeflow.config import load_workflow_definition
from modeflow.errors import StateCorruptionError, TransitionRejected
from modeflow.state import FileStateStore, HistoryEntry, InMemoryStateStore, PersistedState
from modeflow.transition import (
    FORCED_EXPLANATION,
    STATUS_HISTORY_LIMIT,
    ModeStatus,
    StatusError,
    TransitionEngine,
)


@pytest.fixture
def config(config_dir):
    return load_workflow_definition(config_dir)


@pytest.fixture
def store(config):
    return InMemoryStateStore(config.initial)


@pytest.fixture
def engine(config, store):
    return TransitionEngine(config, store, clock=lambda: "2024-01-15T10:00:00.000Z")


class TestConstrainedTransition:

    def test_follows_declared_edge(self, engine, store):
        assert engine.constrained_transition("test-dev", "bug described") == "test-dev"

        state = store.read()
        assert state.current_mode == "test-dev"
        assert state.history == [HistoryEntry(
            from_mode="idle",
            to_mode="test-dev",
            timestamp="2024-01-15T10:00:00.000Z",
            explanation="bug described",
        )]

    def test_repeat_is_rejected_as_already_in_mode(self, engine, store):
        engine.constrained_transition("test-dev", "bug described")

        with pytest.raises(TransitionRejected, match="Already in mode 'test-dev'"):
            engine.constrained_transition("test-dev", "bug described")

        assert len(store.read().history) == 1

    def test_undeclared_edge_is_rejected(self, engine, store):
        with pytest.raises(TransitionRejected, match="not allowed") as exc:
            engine.constrained_transition("feature-dev", "skip tests")

        assert "'test-dev'" in exc.value.reason
        assert store.write_count == 0

    def test_unknown_mode_is_rejected(self, engine):
        with pytest.raises(TransitionRejected, match="Mode 'nowhere' does not exist"):
            engine.constrained_transition("nowhere", "why not")

    @pytest.mark.parametrize("target,explanation", [
        ("", "reason"),
        ("   ", "reason"),
        ("test-dev", ""),
        ("test-dev", "  \n"),
        (None, "reason"),
    ])
    def test_blank_arguments_are_rejected(self, engine, store, target, explanation):
        with pytest.raises(TransitionRejected, match="required"):
            engine.constrained_transition(target, explanation)

        assert store.write_count == 0

    def test_terminal_mode_cannot_move(self, config):
        store = InMemoryStateStore(config.initial, PersistedState("done"))
        engine = TransitionEngine(config, store)

        with pytest.raises(TransitionRejected, match="no outgoing transitions"):
            engine.constrained_transition("idle", "restart")

    def test_full_cycle(self, engine, store):
        engine.constrained_transition("test-dev", "bug described")
        engine.constrained_transition("feature-dev", "test fails")
        engine.constrained_transition("idle", "tests pass")

        history = store.read().history
        assert [(e.from_mode, e.to_mode) for e in history] == [
            ("idle", "test-dev"),
            ("test-dev", "feature-dev"),
            ("feature-dev", "idle"),
        ]

    def test_corrupted_state_fails_closed(self, config, tmp_path):
        path = tmp_path / "mode-state.json"
        path.write_text("{ invalid json")
        engine = TransitionEngine(config, FileStateStore(path, config.initial))

        with pytest.raises(StateCorruptionError):
            engine.constrained_transition("test-dev", "bug described")

        assert path.read_text() == "{ invalid json"


class TestForcedTransition:

    def test_ignores_declared_edges(self, engine, store):
        assert engine.forced_transition("done") == "done"

        entry = store.read().history[-1]
        assert (entry.from_mode, entry.to_mode) == ("idle", "done")
        assert entry.explanation == FORCED_EXPLANATION

    def test_reaches_every_mode_from_every_other(self, config):
        for source in config.mode_names:
            for target in config.mode_names:
                if source == target:
                    continue
                store = InMemoryStateStore(config.initial, PersistedState(source))
                engine = TransitionEngine(config, store)

                assert engine.forced_transition(target) == target
                assert store.read().current_mode == target

    def test_same_mode_is_rejected(self, engine):
        with pytest.raises(TransitionRejected, match="Already in mode 'idle'"):
            engine.forced_transition("idle")

    def test_unknown_mode_is_rejected(self, engine, store):
        with pytest.raises(TransitionRejected, match="does not exist"):
            engine.forced_transition("nowhere")

        assert store.write_count == 0

    def test_blank_target_reads_the_same_for_both_kinds(self, engine):
        with pytest.raises(TransitionRejected) as forced:
            engine.forced_transition(" ")
        with pytest.raises(TransitionRejected) as constrained:
            engine.constrained_transition("", "bug described")

        assert forced.value.reason == constrained.value.reason == "target mode is required"


class TestStatus:

    def test_fresh_project(self, engine):
        status = engine.status()

        assert isinstance(status, ModeStatus)
        assert status.current_mode == "idle"
        assert status.initial_mode == "idle"
        assert status.last_transition is None
        assert status.history == []
        assert [t.to for t in status.available_transitions] == ["test-dev"]

    def test_terminal_mode_has_empty_transitions(self, config):
        engine = TransitionEngine(config, InMemoryStateStore("idle", PersistedState("done")))

        status = engine.status()

        assert status.available_transitions == []

    def test_history_capped_to_most_recent_in_order(self, config):
        history = [
            HistoryEntry(f"mode-{i}", f"mode-{i + 1}", f"2024-01-15T{i:02d}:00:00.000Z", f"t{i}")
            for i in range(15)
        ]
        store = InMemoryStateStore("idle", PersistedState("mode-15", history))

        status = TransitionEngine(config, store).status()

        assert len(status.history) == STATUS_HISTORY_LIMIT
        assert status.history == history[-10:]
        assert status.history[-1].to_mode == "mode-15"
        assert status.last_transition == "2024-01-15T14:00:00.000Z"

    def test_corrupted_state_is_reported_not_defaulted(self, config, tmp_path):
        path = tmp_path / "mode-state.json"
        path.write_text("{ invalid json")
        engine = TransitionEngine(config, FileStateStore(path, config.initial))

        status = engine.status()

        assert isinstance(status, StatusError)
        assert status.error == "State file is corrupted"
        assert status.details
        assert set(status.to_dict()) == {"error", "details"}

    def test_to_dict_shape(self, engine):
        engine.constrained_transition("test-dev", "bug described")

        data = engine.status().to_dict()

        assert data["currentMode"] == "test-dev"
        assert data["initialMode"] == "idle"
        assert data["lastTransition"] == "2024-01-15T10:00:00.000Z"
        assert data["transitionHistory"][0]["explanation"] == "bug described"
        assert data["availableTransitions"] == [
            {"to": "feature-dev", "constraint": "Test is failing"},
        ]


class TestReset:

    def test_reset_returns_to_initial(self, engine, store):
        engine.constrained_transition("test-dev", "bug described")

        assert engine.reset() == "idle"
        assert store.read() == PersistedState("idle", [])


class TestScenario:

    def test_fresh_project_end_to_end(self, config, tmp_path):
        store = FileStateStore(tmp_path / "mode-state.json", config.initial)
        engine = TransitionEngine(config, store)

        status = engine.status()
        assert (status.current_mode, status.history) == ("idle", [])

        assert engine.constrained_transition("test-dev", "bug described") == "test-dev"
        assert len(store.read().history) == 1

        with pytest.raises(TransitionRejected, match="Already in mode"):
            engine.constrained_transition("test-dev", "bug described")

        assert engine.forced_transition("feature-dev") == "feature-dev"
        history = store.read().history
        assert len(history) == 2
        assert history[-1].explanation == FORCED_EXPLANATION
        assert history[0].explanation == "bug described"
