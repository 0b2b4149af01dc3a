"""Command-line interface for spackle.

Usage::

    spackle info
    spackle -p ./my-template check
    spackle -p ./my-template -o ./out fill -s module=app -H git_init=false

``fill`` streams hook progress to the terminal as each hook starts and
finishes. Any failure after the output directory is created removes it
again.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ConfigError
from .console import (
    console,
    format_duration,
    indent,
    plural,
    print_error,
    print_success,
    print_summary_table,
    print_warning,
    setup_logging,
)
from .copier import CopyError, CopyResult
from .executor import RunAs
from .hook import HookDataError
from .project import OutputExistsError, Project, rollback
from .results import Completed, Failed, HookDone, HookResult, HookStarted, Skipped
from .settings import Settings
from .slot import SlotDataError
from .template import FillError, TemplateValidationError

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_BAD_OUTPUT = 2


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def parse_pairs(values: Optional[Sequence[str]]) -> dict[str, str]:
    """Turn repeated ``key=value`` arguments into a dict.

    Raises:
        ValueError: If an entry has no ``=`` or an empty key.
    """
    pairs: dict[str, str] = {}
    for item in values or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise ValueError(f"expected key=value, got {item!r}")
        pairs[key] = value
    return pairs


def parse_run_as(value: Optional[str]) -> Optional[RunAs]:
    """``"user"`` or ``"user:group"`` to ``RunAs``."""
    if not value:
        return None
    user, _, group = value.partition(":")
    return RunAs(user=user, group=group or None)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spackle",
        description="spackle -- fill project templates and run their hooks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  spackle -p ./template info\n"
            "  spackle -p ./template check\n"
            "  spackle -p ./template -o ./app fill -s name=app -H git_init=true\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--project", "-p",
        default=".",
        help="Path to the spackle project (default: current directory)",
    )
    parser.add_argument(
        "--out", "-o",
        default=None,
        help="Output directory for fill (default: $SPACKLE_OUT_DIR)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show debug logging",
    )

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("info", help="List the project's slots and hooks")
    sub.add_parser("check", help="Validate the manifest and render every template")

    fill = sub.add_parser("fill", help="Generate the project and run its hooks")
    fill.add_argument(
        "--slot", "-s",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Slot value; repeatable",
    )
    fill.add_argument(
        "--hook", "-H",
        action="append",
        default=[],
        metavar="KEY=true|false",
        help="Toggle an optional hook; repeatable",
    )
    fill.add_argument(
        "--run-as",
        default=None,
        metavar="USER[:GROUP]",
        help="Run hooks as another OS user",
    )
    return parser


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_info(project: Project) -> int:
    console.print(f"[bold]{escape(project.name)}[/bold]  [dim]{escape(str(project.path))}[/dim]\n")

    slots = Table(title="Slots", header_style="bold cyan")
    slots.add_column("Key", no_wrap=True)
    slots.add_column("Type")
    slots.add_column("Default")
    slots.add_column("Needs")
    slots.add_column("Description")
    for slot in project.config.slots:
        slots.add_row(*map(escape, (
            slot.key,
            slot.type.value,
            slot.default if slot.default is not None else "",
            ", ".join(slot.needs),
            slot.description or slot.name or "",
        )))
    console.print(slots)

    hooks = Table(title="Hooks", header_style="bold cyan")
    hooks.add_column("Key", no_wrap=True)
    hooks.add_column("Command")
    hooks.add_column("Optional")
    hooks.add_column("If")
    hooks.add_column("Needs")
    for hook in project.config.hooks:
        if hook.optional is None:
            optional = "no"
        else:
            optional = f"yes (default {'on' if hook.optional.default else 'off'})"
        hooks.add_row(*map(escape, (
            hook.key,
            " ".join(hook.command),
            optional,
            hook.if_ or "",
            ", ".join(hook.needs),
        )))
    console.print(hooks)
    return 0


def cmd_check(project: Project) -> int:
    try:
        project.check()
    except TemplateValidationError as exc:
        print_error(str(exc))
        return EXIT_FAILURE

    print_success(f"{project.name}: manifest and templates are valid")
    return 0


def cmd_fill(project: Project, out_dir: Path, args: argparse.Namespace, verbose: bool = False) -> int:
    if out_dir.resolve() == project.path.resolve():
        print_error("Output directory cannot be the same as project directory")
        return EXIT_BAD_OUTPUT
    if out_dir.exists():
        print_error(f"Output path already exists: {out_dir}")
        return EXIT_BAD_OUTPUT

    try:
        slot_data = parse_pairs(args.slot)
        hook_data = parse_pairs(args.hook)
    except ValueError as exc:
        print_error(f"Error: {exc}")
        return EXIT_FAILURE

    try:
        project.check()
        hook_overrides = project.validate_data(slot_data, hook_data)
    except (TemplateValidationError, SlotDataError, HookDataError) as exc:
        print_error(str(exc))
        return EXIT_FAILURE

    start = time.monotonic()
    try:
        report = project.generate_report(out_dir, slot_data)
    except OutputExistsError as exc:
        print_error(str(exc))
        return EXIT_BAD_OUTPUT
    except FillError as exc:
        rollback(out_dir)
        print_error(str(exc))
        for error in exc.errors:
            console.print(indent(str(error)), markup=False)
        return EXIT_FAILURE
    except CopyError as exc:
        rollback(out_dir)
        print_error(f"Error copying files: {exc}")
        return EXIT_FAILURE

    print_copy_result(report.copy, time.monotonic() - start)
    if verbose:
        for rendered in report.files:
            console.print(
                f"Processed [bold]{escape(rendered.path.as_posix())}[/bold] "
                f"[dim]in {format_duration(rendered.elapsed)}[/dim]"
            )
            console.print(indent(rendered.contents), markup=False)
    console.print(f"Generated {plural(len(report.files), 'template')} into [bold]{escape(str(out_dir))}[/bold]")

    results: list[HookResult] = []
    if not project.config.hooks:
        console.print("[dim]No hooks to run[/dim]")
    else:
        console.print("Running hooks...")
        try:
            results = asyncio.run(
                stream_hooks(
                    project,
                    out_dir,
                    slot_data,
                    hook_overrides,
                    parse_run_as(args.run_as),
                    verbose=verbose,
                )
            )
        except BaseException:
            rollback(out_dir)
            raise

    failed = [r for r in results if r.failed]
    if failed:
        rollback(out_dir)
        print_error(f"Hook {failed[0].key} failed; removed {out_dir}")
        return EXIT_FAILURE

    print_summary_table(
        {
            "Output": str(out_dir),
            "Files copied": str(report.copy.copied_count),
            "Templates": str(len(report.files)),
            "Hooks run": str(sum(1 for r in results if r.completed)),
            "Hooks skipped": str(sum(1 for r in results if r.skipped)),
            "Duration": format_duration(time.monotonic() - start),
        },
        title=f"Filled {project.name}",
    )
    print_success("Done.")
    return 0


def print_copy_result(copied: CopyResult, elapsed: float) -> None:
    console.print(f"Copied {plural(copied.copied_count, 'file')} [dim]in {format_duration(elapsed)}[/dim]")
    if copied.skipped_count:
        console.print(f"[dim]Ignored {plural(copied.skipped_count, 'entry', 'entries')}[/dim]")


async def stream_hooks(
    project: Project,
    out_dir: Path,
    slot_data: dict[str, str],
    hook_overrides: dict[str, bool],
    run_as: Optional[RunAs],
    *,
    verbose: bool = False,
) -> list[HookResult]:
    """Consume the hook stream, printing each event as it arrives."""
    results: list[HookResult] = []
    started: dict[str, float] = {}

    async for event in project.run_hooks_stream(out_dir, slot_data, hook_overrides, run_as):
        if isinstance(event, HookStarted):
            started[event.key] = time.monotonic()
            console.print(f"[cyan]>[/cyan] {escape(event.key)}")
        elif isinstance(event, HookDone):
            result = event.result
            results.append(result)
            elapsed = time.monotonic() - started.get(result.key, time.monotonic())
            print_hook_result(result, elapsed, verbose=verbose)

    return results


def print_hook_result(result: HookResult, elapsed: float, *, verbose: bool = False) -> None:
    outcome = result.outcome
    if isinstance(outcome, Completed):
        console.print(f"  [green]completed[/green] {escape(result.key)} [dim]({format_duration(elapsed)})[/dim]")
        if verbose:
            _print_output(outcome.stdout_text, outcome.stderr_text)
    elif isinstance(outcome, Skipped):
        console.print(f"  [yellow]skipped[/yellow] {escape(result.key)} [dim]({outcome.reason.value})[/dim]")
    elif isinstance(outcome, Failed):
        error = outcome.error
        print_error(f"  failed {result.key}: {error}")
        _print_output(error.stdout_text, error.stderr_text)


def _print_output(stdout: str, stderr: str) -> None:
    if stdout:
        print_warning("  stdout:")
        console.print(indent(stdout), markup=False)
    if stderr:
        print_warning("  stderr:")
        console.print(indent(stderr), markup=False)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[Sequence[str]] = None) -> None:
    """CLI entry point for ``spackle`` and ``python -m spackle``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if args.verbose:
        settings = settings.model_copy(update={"verbose": True})
    setup_logging(settings.verbose)

    try:
        project = Project.load(args.project, settings)
    except ConfigError as exc:
        print_error(f"Error loading {settings.manifest_path(args.project)}")
        console.print(indent(str(exc)), markup=False)
        sys.exit(EXIT_FAILURE)

    logger.debug("Running %s for project %s", args.command, project.name)

    if args.command == "info":
        code = cmd_info(project)
    elif args.command == "check":
        code = cmd_check(project)
    else:
        out = args.out or settings.default_out_dir
        if out is None:
            print_error("Error: fill needs an output path (--out or SPACKLE_OUT_DIR)")
            sys.exit(EXIT_FAILURE)
        code = cmd_fill(project, Path(out), args, verbose=settings.verbose)

    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
