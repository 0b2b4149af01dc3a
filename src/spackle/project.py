"""Generation pipeline.

``Project`` ties a loaded manifest to its directory and drives a fill end to
end: build the execution context, copy static files, render templates, then
run the hooks against the same context. ``generate`` covers the file half;
``Project.fill`` adds the hooks and rolls the output directory back on any
failure.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .config import Config
from .context import build_context
from .copier import CopyResult, copy_tree
from .executor import IdentityCommandBuilder, RunAs
from .hook import parse_hook_data
from .results import HookLifecycleEvent, HookResult, first_failure
from .scheduler import run_hooks, run_hooks_stream
from .settings import Settings
from .slot import apply_defaults, validate_slot_data
from .template import RenderedFile, validate_templates
from .template import fill as fill_templates

logger = logging.getLogger(__name__)


class OutputExistsError(Exception):
    """The output directory already exists; spackle never fills over one."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"output path already exists: {path}")


class HookFailedError(Exception):
    """A hook failed during ``Project.fill``; the output was rolled back."""

    def __init__(self, result: HookResult, results: list[HookResult]) -> None:
        self.result = result
        self.results = results
        super().__init__(f"hook {result.key} {result.outcome}")


@dataclass
class FillReport:
    """Everything a successful ``Project.fill`` produced."""

    copy: CopyResult
    files: list[RenderedFile] = field(default_factory=list)
    hooks: list[HookResult] = field(default_factory=list)


def rollback(out_dir: str | Path) -> None:
    """Delete a partially generated output directory.

    Best effort: a failure here is logged and otherwise ignored so it never
    hides the error that caused the rollback.
    """
    path = Path(out_dir)
    try:
        shutil.rmtree(path)
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove %s during rollback: %s", path, exc)
    else:
        logger.info("Rolled back %s", path)


class Project:
    """A spackle project directory and its manifest."""

    def __init__(self, path: str | Path, config: Config, settings: Optional[Settings] = None) -> None:
        self.path = Path(path)
        self.config = config
        self.settings = settings or Settings()

    @classmethod
    def load(cls, path: str | Path, settings: Optional[Settings] = None) -> "Project":
        """Load and validate the manifest of the project at *path*.

        Raises:
            ConfigError: If the manifest is missing, malformed or reuses keys.
        """
        settings = settings or Settings()
        config = Config.load(path, settings.config_file)
        config.validate_keys()
        return cls(path, config, settings)

    @property
    def name(self) -> str:
        if self.config.name:
            return self.config.name
        return self.path.resolve().name

    # -- Validation --------------------------------------------------------

    def check(self) -> None:
        """Render every template with blank slot values.

        Raises:
            TemplateValidationError: Listing each broken template.
        """
        validate_templates(self.path, self.config.slots, template_ext=self.settings.template_ext)

    def validate_data(
        self,
        slot_data: Mapping[str, str],
        hook_data: Optional[Mapping[str, str]] = None,
    ) -> dict[str, bool]:
        """Validate user slot values and hook toggles.

        Returns:
            The hook toggles as booleans.

        Raises:
            SlotDataError, HookDataError
        """
        validate_slot_data(slot_data, self.config.slots)
        return parse_hook_data(hook_data or {}, self.config.hooks)

    def context(self, slot_data: Mapping[str, str], out_dir: str | Path) -> dict[str, str]:
        """Execution context for filling into *out_dir*."""
        data = apply_defaults(slot_data, self.config.slots)
        return build_context(data, self.name, Path(out_dir).name)

    # -- Files -------------------------------------------------------------

    def copy_files(self, out_dir: str | Path, context: Mapping[str, str]) -> CopyResult:
        return copy_tree(
            self.path,
            out_dir,
            self.config.ignore,
            context,
            config_file=self.settings.config_file,
            template_ext=self.settings.template_ext,
        )

    def render_templates(self, out_dir: str | Path, context: Mapping[str, str]) -> list[RenderedFile]:
        return fill_templates(self.path, out_dir, context, template_ext=self.settings.template_ext)

    def generate(self, out_dir: str | Path, slot_data: Mapping[str, str]) -> list[RenderedFile]:
        """Copy and render the project into a new *out_dir*.

        Raises:
            OutputExistsError: If *out_dir* exists.
            CopyError: If copying static files fails.
            FillError: If any template fails; the others are still written.
        """
        return self.generate_report(out_dir, slot_data).files

    def generate_report(self, out_dir: str | Path, slot_data: Mapping[str, str]) -> FillReport:
        """Like ``generate`` but also returns the copy counts; ``hooks`` is empty."""
        out_path = Path(out_dir)
        if out_path.exists():
            raise OutputExistsError(out_path)

        context = self.context(slot_data, out_path)
        copied = self.copy_files(out_path, context)
        return FillReport(copy=copied, files=self.render_templates(out_path, context))

    # -- Hooks -------------------------------------------------------------

    def run_hooks_stream(
        self,
        out_dir: str | Path,
        slot_data: Mapping[str, str],
        hook_overrides: Optional[Mapping[str, bool]] = None,
        run_as: Optional[RunAs] = None,
        *,
        identity_builder: Optional[IdentityCommandBuilder] = None,
    ) -> AsyncIterator[HookLifecycleEvent]:
        """Stream the manifest's hooks, run inside *out_dir*."""
        return run_hooks_stream(
            self.config.hooks,
            out_dir,
            self.context(slot_data, out_dir),
            hook_overrides,
            run_as,
            slots=self.config.slots,
            identity_builder=identity_builder,
        )

    def run_hooks(
        self,
        out_dir: str | Path,
        slot_data: Mapping[str, str],
        hook_overrides: Optional[Mapping[str, bool]] = None,
        run_as: Optional[RunAs] = None,
        *,
        identity_builder: Optional[IdentityCommandBuilder] = None,
    ) -> list[HookResult]:
        return run_hooks(
            self.config.hooks,
            out_dir,
            self.context(slot_data, out_dir),
            hook_overrides,
            run_as,
            slots=self.config.slots,
            identity_builder=identity_builder,
        )

    # -- Full pipeline -----------------------------------------------------

    def fill(
        self,
        out_dir: str | Path,
        slot_data: Mapping[str, str],
        hook_overrides: Optional[Mapping[str, bool]] = None,
        run_as: Optional[RunAs] = None,
        *,
        identity_builder: Optional[IdentityCommandBuilder] = None,
    ) -> FillReport:
        """Generate *out_dir* and run the hooks in it.

        Any failure after the directory is created deletes it again before
        the error propagates.

        Raises:
            OutputExistsError, CopyError, FillError, HookFailedError
        """
        out_path = Path(out_dir)
        if out_path.exists():
            raise OutputExistsError(out_path)

        try:
            report = self.generate_report(out_path, slot_data)
            report.hooks = self.run_hooks(
                out_path,
                slot_data,
                hook_overrides,
                run_as,
                identity_builder=identity_builder,
            )
        except Exception:
            rollback(out_path)
            raise

        failure = first_failure(report.hooks)
        if failure is not None:
            rollback(out_path)
            raise HookFailedError(failure, report.hooks)

        return report


def generate(
    project_dir: str | Path,
    out_dir: str | Path,
    slot_data: Mapping[str, str],
    settings: Optional[Settings] = None,
) -> list[RenderedFile]:
    """Load the project at *project_dir* and generate it into *out_dir*.

    Raises:
        ConfigError, OutputExistsError, CopyError, FillError
    """
    return Project.load(project_dir, settings).generate(out_dir, slot_data)
