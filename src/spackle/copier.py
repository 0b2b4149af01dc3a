"""Copy a project's static files into the output directory.

Template files (``*.j2``) and the manifest are left for the fill step.
Destination paths are rendered as templates, so a file named
``{{ module }}.py`` lands under the slot's value.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path

from .settings import CONFIG_FILE, TEMPLATE_EXT
from .template import TemplateError, render

logger = logging.getLogger(__name__)


class CopyError(Exception):
    """A file-system or path-template failure while copying."""

    def __init__(self, path: Path, cause: Exception) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"{path}: {cause}")


@dataclass
class CopyResult:
    copied_count: int = 0
    skipped_count: int = 0


def copy_tree(
    src: str | Path,
    dest: str | Path,
    ignore: Iterable[str],
    context: Mapping[str, str],
    *,
    config_file: str = CONFIG_FILE,
    template_ext: str = TEMPLATE_EXT,
) -> CopyResult:
    """Copy every non-template entry of *src* into *dest*.

    Entries whose name is listed in *ignore* are skipped along with their
    contents and counted in ``skipped_count``.

    Raises:
        CopyError: On the first failure; nothing is rolled back here.
    """
    src_root = Path(src)
    dest_root = Path(dest)
    dest_resolved = dest_root.resolve()
    ignored = set(ignore)
    result = CopyResult()

    def _on_error(exc: OSError) -> None:
        raise CopyError(Path(exc.filename or src_root), exc)

    if not src_root.is_dir():
        raise CopyError(src_root, NotADirectoryError(f"not a directory: {src_root}"))

    # Collect every entry before writing; dest may sit inside src.
    dirs: list[Path] = []
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(src_root, onerror=_on_error):
        current = Path(dirpath)

        kept_dirs = []
        for name in sorted(dirnames):
            if name in ignored:
                result.skipped_count += 1
                continue
            if (current / name).resolve() == dest_resolved:
                continue
            kept_dirs.append(name)
            dirs.append(current / name)
        # Prune in place so os.walk does not descend into skipped dirs.
        dirnames[:] = kept_dirs

        for name in sorted(filenames):
            if name in ignored:
                result.skipped_count += 1
                continue
            if name == config_file or name.endswith(template_ext):
                continue
            files.append(current / name)

    _make_dir(dest_root)
    for path in dirs:
        _make_dir(_destination(src_root, dest_root, path, context))

    for src_path in files:
        dst_path = _destination(src_root, dest_root, src_path, context)
        _make_dir(dst_path.parent)
        try:
            shutil.copy2(src_path, dst_path)
        except OSError as exc:
            raise CopyError(dst_path, exc) from exc
        result.copied_count += 1

    logger.debug(
        "Copied %d files from %s (%d ignored)", result.copied_count, src_root, result.skipped_count
    )
    return result


def _destination(src_root: Path, dest_root: Path, path: Path, context: Mapping[str, str]) -> Path:
    relative = path.relative_to(src_root).as_posix()
    try:
        rendered = render(relative, context)
    except TemplateError as exc:
        raise CopyError(dest_root / relative, exc) from exc
    return dest_root / rendered


def _make_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CopyError(path, exc) from exc
