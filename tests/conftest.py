"""Pytest configuration and shared fixtures for flowcheck tests.

Provides fixtures for:
- Test fixtures (workflow files, runner registries, message overrides)
- A temporary project tree with a workflow directory
- Raw YAML node composition for decoder tests
- Label snapshots and workflow entries
"""

import shutil
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from ruamel.yaml import YAML
from ruamel.yaml.nodes import Node

from flowcheck.types import AgentLabelSet, WorkflowEntry

# ============================================================================
# Fixture Paths
# ============================================================================


@pytest.fixture
def fixtures_dir() -> Path:
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def workflows_dir(fixtures_dir: Path) -> Path:
    """Return the path to workflow fixtures."""
    return fixtures_dir / "workflows"


@pytest.fixture
def runners_dir(fixtures_dir: Path) -> Path:
    """Return the path to runner registry fixtures."""
    return fixtures_dir / "runners"


@pytest.fixture
def messages_dir(fixtures_dir: Path) -> Path:
    """Return the path to message catalog fixtures."""
    return fixtures_dir / "messages"


# ============================================================================
# Fixture File Paths
# ============================================================================


@pytest.fixture
def build_test_workflow(workflows_dir: Path) -> Path:
    """Path to a runnable two-job workflow (build -> test)."""
    return workflows_dir / "build-test.yml"


@pytest.fixture
def deploy_workflow(workflows_dir: Path) -> Path:
    """Path to a workflow with a workflow_dispatch trigger and inputs."""
    return workflows_dir / "deploy.yml"


@pytest.fixture
def deadlock_workflow(workflows_dir: Path) -> Path:
    """Path to a workflow whose jobs all wait on each other."""
    return workflows_dir / "deadlock.yml"


@pytest.fixture
def malformed_workflow(workflows_dir: Path) -> Path:
    """Path to a workflow with a YAML syntax error."""
    return workflows_dir / "malformed.yml"


@pytest.fixture
def runners_yaml(runners_dir: Path) -> Path:
    """Path to a valid YAML runner registry."""
    return runners_dir / "runners.yaml"


@pytest.fixture
def runners_json(runners_dir: Path) -> Path:
    """Path to a valid JSON runner registry."""
    return runners_dir / "runners.json"


@pytest.fixture
def invalid_runners(runners_dir: Path) -> Path:
    """Path to a runner registry that fails schema validation."""
    return runners_dir / "invalid-runners.yaml"


# ============================================================================
# Temporary Project Trees
# ============================================================================


@pytest.fixture
def project_dir(tmp_path: Path, workflows_dir: Path) -> Path:
    """Create a project with every workflow fixture under .gitea/workflows."""
    root = tmp_path / "project"
    target = root / ".gitea" / "workflows"
    target.mkdir(parents=True)
    for path in workflows_dir.iterdir():
        shutil.copy(path, target / path.name)
    (target / "README.md").write_text("not a workflow\n", encoding="utf-8")
    return root


@pytest.fixture
def shared_dir(tmp_path: Path, build_test_workflow: Path) -> Path:
    """Create a shared workflow directory.

    Contains one new workflow and one that collides with a project workflow.
    """
    shared = tmp_path / "shared"
    shared.mkdir()
    (shared / "audit.yaml").write_text(
        "on: schedule\njobs:\n  audit:\n    runs-on: linux\n", encoding="utf-8"
    )
    shutil.copy(build_test_workflow, shared / "build-test.yml")
    return shared


# ============================================================================
# Analysis Helpers
# ============================================================================


@pytest.fixture
def compose() -> Callable[[str], Node | None]:
    """Return a function composing YAML text into a raw node tree."""

    def _compose(text: str) -> Node | None:
        return YAML(typ="safe", pure=True).compose(text)

    return _compose


@pytest.fixture
def alias_bomb() -> str:
    """Workflow text whose `x-i` anchor expands to a billion scalars."""
    lines = ["on: push", "x-a: &a [" + ", ".join(["lol"] * 10) + "]"]
    previous = "a"
    for name in "bcdefghi":
        lines.append(f"x-{name}: &{name} [" + ", ".join([f"*{previous}"] * 10) + "]")
        previous = name
    lines.append("jobs:\n  build:\n    runs-on: *i")
    return "\n".join(lines) + "\n"


@pytest.fixture
def linux_labels() -> AgentLabelSet:
    """Labels of a single online linux runner."""
    return AgentLabelSet(["linux", "x64"])


@pytest.fixture
def make_entry() -> Callable[..., WorkflowEntry]:
    """Return a factory for in-memory workflow entries."""

    def _make(name: str, text: str, is_global: bool = False) -> WorkflowEntry:
        return WorkflowEntry(name=name, content=text.encode("utf-8"), is_global=is_global)

    return _make


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
