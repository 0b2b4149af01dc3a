"""Shared pytest fixtures for the spackle test suite.

Provides reusable fixtures for:
- Building throwaway spackle projects on disk
- A sample project with static files, templates, slots and hooks
- Slot and hook model instances
- A fake identity builder for run-as tests
"""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Any, Callable, Optional

import pytest

from spackle.executor import IdentityCommandBuilder, RunAs
from spackle.hook import Hook, HookOptional
from spackle.slot import Slot, SlotType


# ---------------------------------------------------------------------------
# Project directories
# ---------------------------------------------------------------------------

ProjectFactory = Callable[..., Path]


@pytest.fixture
def make_project(tmp_path: Path) -> ProjectFactory:
    """Factory writing a project directory from a manifest and a file map.

    Usage::

        path = make_project('[[slots]]\\nkey = "a"', {"a.txt.j2": "{{ a }}"})
    """
    counter = {"n": 0}

    def _make(manifest: str, files: Optional[dict[str, str]] = None, name: str | None = None) -> Path:
        counter["n"] += 1
        project_dir = tmp_path / (name or f"project{counter['n']}")
        project_dir.mkdir(parents=True)
        (project_dir / "spackle.toml").write_text(textwrap.dedent(manifest), encoding="utf-8")
        for rel, contents in (files or {}).items():
            path = project_dir / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(contents, encoding="utf-8")
        return project_dir

    return _make


SAMPLE_MANIFEST = """\
name = "sample"
ignore = [".git", "node_modules"]

[[slots]]
key = "module"
type = "String"
description = "Python module name"

[[slots]]
key = "port"
type = "Number"
default = "8080"

[[slots]]
key = "with_docs"
type = "Boolean"
default = "false"

[[hooks]]
key = "touch_marker"
command = ["touch", "{{ module }}.marker"]

[[hooks]]
key = "docs"
command = ["mkdir", "docs"]
needs = ["with_docs"]

[[hooks]]
key = "announce"
command = ["echo", "built {{ _output_name }}"]
if = "{{ hook_ran_touch_marker }}"
optional = { default = true }
"""

SAMPLE_FILES = {
    "README.md": "# static readme\n",
    "src/{{ module }}/__init__.py": "",
    "src/{{ module }}/main.py.j2": "PORT = {{ port }}\nNAME = \"{{ module }}\"\n",
    "{{ module }}.cfg.j2": "[app]\nproject = {{ _project_name }}\noutput = {{ _output_name }}\n",
    ".git/HEAD": "ref: refs/heads/main\n",
    "node_modules/pkg/index.js": "module.exports = 1;\n",
}


@pytest.fixture
def sample_project(make_project: ProjectFactory) -> Path:
    """A project exercising static copies, templated names and hooks."""
    return make_project(SAMPLE_MANIFEST, SAMPLE_FILES, name="sample-template")


@pytest.fixture
def out_dir(tmp_path: Path) -> Path:
    """Output location that does not exist yet."""
    return tmp_path / "generated" / "my-app"


@pytest.fixture
def hook_cwd(tmp_path: Path) -> Path:
    """Existing working directory for hook processes."""
    path = tmp_path / "hook-cwd"
    path.mkdir()
    return path


# ---------------------------------------------------------------------------
# Model instances
# ---------------------------------------------------------------------------

@pytest.fixture
def string_slot() -> Slot:
    return Slot(key="module", type=SlotType.STRING)


@pytest.fixture
def optional_hook() -> Hook:
    return Hook(key="opt", command=["true"], optional=HookOptional(default=False))


# ---------------------------------------------------------------------------
# Identity builders
# ---------------------------------------------------------------------------

class RecordingIdentityBuilder(IdentityCommandBuilder):
    """Records run-as requests and adds no spawn arguments."""

    def __init__(self) -> None:
        self.requests: list[Optional[RunAs]] = []

    def spawn_kwargs(self, run_as: Optional[RunAs]) -> dict[str, Any]:
        self.requests.append(run_as)
        return {}


@pytest.fixture
def recording_builder() -> RecordingIdentityBuilder:
    return RecordingIdentityBuilder()
