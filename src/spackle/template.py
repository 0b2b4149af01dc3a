"""Jinja2 template rendering for spackle projects.

Provides the ``TemplateRenderer`` used for every templated string in a run
(file contents, file and directory names, hook guards and command tokens),
plus the fill step that renders a project's ``.j2`` files into an output
directory and the check that validates those files against the declared
slots.

Undefined variables are errors rather than empty strings, so a typo in a
template surfaces as a ``TemplateError`` instead of silently rendering
blank.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import jinja2
from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .context import OUTPUT_NAME_KEY, PROJECT_NAME_KEY
from .settings import TEMPLATE_EXT

if TYPE_CHECKING:
    from .slot import Slot

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TemplateError(Exception):
    """Raised when a template string cannot be parsed or rendered."""

    def __init__(self, template: str, cause: Exception) -> None:
        self.template = template
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")


class FileErrorKind(str, Enum):
    """Stage of the fill step at which a single file failed."""
    RENDERING_CONTENTS = "error rendering template contents"
    RENDERING_NAME = "error rendering template name"
    CREATING_DEST = "error creating directory"
    WRITING_DEST = "error writing file"


class FileError(Exception):
    """A single template file that could not be filled."""

    def __init__(self, kind: FileErrorKind, file: str, cause: Exception) -> None:
        self.kind = kind
        self.file = file
        self.cause = cause
        super().__init__(f"{kind.value} for {file}: {cause}")


class FillError(Exception):
    """One or more template files failed to render.

    Files that did render are still written and listed in ``rendered``.
    """

    def __init__(self, errors: list[FileError], rendered: list["RenderedFile"]) -> None:
        self.errors = errors
        self.rendered = rendered
        names = ", ".join(e.file for e in errors)
        super().__init__(f"{len(errors)} template file(s) failed: {names}")


class TemplateValidationError(Exception):
    """Raised by ``validate_templates`` with every failing template."""

    def __init__(self, errors: list[tuple[str, TemplateError]]) -> None:
        self.errors = errors
        lines = [f"  {name}: {err}" for name, err in errors]
        super().__init__("Error rendering one or more templates:\n" + "\n".join(lines))


# ---------------------------------------------------------------------------
# Rendered output
# ---------------------------------------------------------------------------


@dataclass
class RenderedFile:
    """A template file written to the output directory."""

    path: Path
    contents: str
    elapsed: float = 0.0


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 templates against a string context.

    With a *template_dir* the renderer can also load ``.j2`` files by their
    path relative to that directory; without one it only renders inline
    strings.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        self.template_dir = Path(template_dir) if template_dir is not None else None
        loader = FileSystemLoader(str(self.template_dir)) if self.template_dir else None
        self.env = Environment(
            loader=loader,
            undefined=StrictUndefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        # Register custom filters
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter

    # -- Rendering ---------------------------------------------------------

    def render_string(self, template_string: str, context: Mapping[str, str]) -> str:
        """Render an inline template string with the provided context.

        Raises:
            TemplateError: On syntax errors or references to undefined keys.
        """
        try:
            template = self.env.from_string(template_string)
            return template.render(dict(context))
        except jinja2.TemplateError as exc:
            raise TemplateError(template_string, exc) from exc

    def render(self, template_path: str, context: Mapping[str, str]) -> str:
        """Render a template file relative to the template directory.

        Args:
            template_path: Posix-style path such as ``"src/main.py.j2"``.
            context: Variables available inside the template.
        """
        try:
            template = self.env.get_template(template_path)
            return template.render(dict(context))
        except jinja2.TemplateError as exc:
            raise TemplateError(template_path, exc) from exc

    # -- Utility -----------------------------------------------------------

    def list_templates(self, ext: str = TEMPLATE_EXT) -> list[str]:
        """Return a sorted list of all template paths under the template dir."""
        if self.template_dir is None or not self.template_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in self.template_dir.rglob(f"*{ext}")
            if p.is_file()
        )


_default_renderer: TemplateRenderer | None = None


def render(template_text: str, context: Mapping[str, str]) -> str:
    """Render *template_text* with the shared inline renderer."""
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = TemplateRenderer()
    return _default_renderer.render_string(template_text, context)


# ---------------------------------------------------------------------------
# Fill
# ---------------------------------------------------------------------------


def fill(
    project_dir: str | Path,
    out_dir: str | Path,
    context: Mapping[str, str],
    *,
    template_ext: str = TEMPLATE_EXT,
) -> list[RenderedFile]:
    """Render every template file under *project_dir* into *out_dir*.

    Contents and the relative file name are both rendered; the template
    suffix is stripped from the written name. A failing file does not stop
    the others.

    Returns:
        The rendered files, in sorted template order.

    Raises:
        FillError: If any file failed. Successful files are still written.
    """
    renderer = TemplateRenderer(project_dir)
    out_base = Path(out_dir)

    rendered: list[RenderedFile] = []
    errors: list[FileError] = []

    for template_name in renderer.list_templates(template_ext):
        start = time.monotonic()
        try:
            rendered.append(
                _fill_one(renderer, template_name, out_base, context, template_ext, start)
            )
        except FileError as exc:
            logger.debug("Template %s failed: %s", template_name, exc)
            errors.append(exc)

    if errors:
        raise FillError(errors, rendered)
    return rendered


def _fill_one(
    renderer: TemplateRenderer,
    template_name: str,
    out_base: Path,
    context: Mapping[str, str],
    template_ext: str,
    start: float,
) -> RenderedFile:
    try:
        output = renderer.render(template_name, context)
    except TemplateError as exc:
        raise FileError(FileErrorKind.RENDERING_CONTENTS, template_name, exc) from exc

    try:
        output_name = renderer.render_string(template_name, context)
    except TemplateError as exc:
        raise FileError(FileErrorKind.RENDERING_NAME, template_name, exc) from exc

    if output_name.endswith(template_ext):
        output_name = output_name[: -len(template_ext)]

    output_file = out_base / output_name
    try:
        output_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FileError(FileErrorKind.CREATING_DEST, output_name, exc) from exc

    try:
        _write_file(output_file, output)
    except OSError as exc:
        raise FileError(FileErrorKind.WRITING_DEST, output_name, exc) from exc

    return RenderedFile(
        path=Path(output_name),
        contents=output,
        elapsed=time.monotonic() - start,
    )


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_templates(
    project_dir: str | Path,
    slots: Iterable["Slot"],
    *,
    template_ext: str = TEMPLATE_EXT,
) -> None:
    """Render every template with blank slot values.

    Any template that references a key which is neither a slot nor a
    reserved key fails to render.

    Raises:
        TemplateValidationError: Listing every failing template.
    """
    renderer = TemplateRenderer(project_dir)
    context = {slot.key: "" for slot in slots}
    context[PROJECT_NAME_KEY] = ""
    context[OUTPUT_NAME_KEY] = ""

    errors: list[tuple[str, TemplateError]] = []
    for template_name in renderer.list_templates(template_ext):
        try:
            renderer.render(template_name, context)
        except TemplateError as exc:
            errors.append((template_name, exc))

    if errors:
        raise TemplateValidationError(errors)


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", value)
    return "".join(word.capitalize() for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", value)
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_file(path: Path, content: str) -> None:
    """Write content, creating parent dirs if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
