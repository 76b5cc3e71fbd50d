"""Shared fixtures for modeflow tests."""

import json
import textwrap
from pathlib import Path

import pytest

from modeflow.logger import configure_logger, get_logger

TDD_WORKFLOW = """
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
          Code is committed.
  done:
    transitions: []
"""


@pytest.fixture(autouse=True)
def isolated_logger(tmp_path):
    """Keep log files inside the test's temp directory."""
    configure_logger(level="DEBUG", log_directory=str(tmp_path / "logs"))
    yield get_logger()
    get_logger().close()


@pytest.fixture
def write_file():
    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return path
    return _write


@pytest.fixture
def config_dir(tmp_path, write_file):
    """A .claude directory holding the TDD workflow and a few overlays."""
    directory = tmp_path / ".claude"
    write_file(directory / "modes.yaml", TDD_WORKFLOW)
    write_file(directory / "CLAUDE.test-dev.md", "Write a failing test first.\n")
    write_file(directory / "settings.test-dev.json", json.dumps({
        "permissions": {
            "allow": ["Write(tests/**)", "Bash(npm test*)"],
            "deny": ["Write(src/**)"],
        }
    }))
    return directory
