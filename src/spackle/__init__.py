"""spackle: project templating with slots and post-generation hooks.

A spackle project is a directory of static files and Jinja2 templates next
to a ``spackle.toml`` manifest declaring slots (typed user inputs) and hooks
(commands run inside the generated output).

Key classes:
    Project        - Loaded project; generate, run hooks, or fill end to end
    HookScheduler  - Sequential hook evaluation and execution
    Slot / Hook    - Manifest entries, both resolvable through ``needs``
    HookResult     - One immutable outcome per processed hook
"""

__version__ = "0.4.0"

from .config import Config, ConfigError
from .context import build_context
from .copier import CopyError, CopyResult, copy_tree
from .executor import ProcessResult, RunAs, SetupError, SpawnError, run_process
from .hook import (
    CommandRenderError,
    ConditionalError,
    ConditionalErrorKind,
    Hook,
    HookDataError,
    HookOptional,
    evaluate_conditional,
    render_command,
)
from .needs import NeedsState
from .project import FillReport, HookFailedError, OutputExistsError, Project, generate, rollback
from .results import (
    Completed,
    Failed,
    HookDone,
    HookError,
    HookErrorKind,
    HookLifecycleEvent,
    HookResult,
    HookStarted,
    SkipReason,
    Skipped,
    first_failure,
)
from .scheduler import HookScheduler, run_hooks, run_hooks_stream
from .settings import Settings
from .slot import Slot, SlotDataError, SlotType
from .template import FillError, RenderedFile, TemplateError, TemplateRenderer, TemplateValidationError

__all__ = [
    # Project pipeline
    "Project",
    "FillReport",
    "generate",
    "rollback",
    "OutputExistsError",
    "HookFailedError",
    # Manifest
    "Config",
    "ConfigError",
    "Settings",
    "Slot",
    "SlotType",
    "SlotDataError",
    "Hook",
    "HookOptional",
    "HookDataError",
    # Context and templates
    "build_context",
    "TemplateRenderer",
    "TemplateError",
    "TemplateValidationError",
    "RenderedFile",
    "FillError",
    "copy_tree",
    "CopyResult",
    "CopyError",
    # Hook evaluation
    "NeedsState",
    "evaluate_conditional",
    "ConditionalError",
    "ConditionalErrorKind",
    "render_command",
    "CommandRenderError",
    # Execution
    "RunAs",
    "ProcessResult",
    "run_process",
    "SetupError",
    "SpawnError",
    # Scheduling and results
    "HookScheduler",
    "run_hooks",
    "run_hooks_stream",
    "HookResult",
    "Skipped",
    "Completed",
    "Failed",
    "SkipReason",
    "HookError",
    "HookErrorKind",
    "HookStarted",
    "HookDone",
    "HookLifecycleEvent",
    "first_failure",
]
