"""Hook outcomes and the lifecycle events streamed to callers.

Every hook processed in a run produces exactly one ``HookResult``; results
are immutable once created. The scheduler streams a ``HookStarted`` before
and a ``HookDone`` after each hook.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Union

if TYPE_CHECKING:
    from .hook import Hook


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class SkipReason(str, Enum):
    """Why a hook did not run. Skips never abort a run."""
    USER_DISABLED = "user disabled"
    UNMET_DEPENDENCY = "unmet dependency"
    FALSE_CONDITIONAL = "false conditional"


class HookErrorKind(str, Enum):
    """Classification of a hook failure. Every failure aborts the run."""
    CONDITIONAL_FAILED = "conditional failed"
    RENDER_FAILED = "command render failed"
    SETUP_FAILED = "setup failed"
    COMMAND_LAUNCH_FAILED = "command launch failed"
    COMMAND_EXITED = "command exited"


# ---------------------------------------------------------------------------
# Errors carried by failed outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HookError:
    """Structured description of a failed hook.

    ``exit_code``, ``stdout`` and ``stderr`` are only populated for
    ``COMMAND_EXITED``.
    """

    kind: HookErrorKind
    message: str
    cause: Optional[BaseException] = None
    exit_code: Optional[int] = None
    stdout: bytes = b""
    stderr: bytes = b""

    def __str__(self) -> str:
        if self.kind is HookErrorKind.COMMAND_EXITED:
            return f"command exited with code {self.exit_code}"
        return f"{self.kind.value}: {self.message}"

    @property
    def stdout_text(self) -> str:
        return _decode(self.stdout)

    @property
    def stderr_text(self) -> str:
        return _decode(self.stderr)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Skipped:
    reason: SkipReason

    def __str__(self) -> str:
        return f"skipped: {self.reason.value}"


@dataclass(frozen=True)
class Completed:
    stdout: bytes = b""
    stderr: bytes = b""

    def __str__(self) -> str:
        return "completed"

    @property
    def stdout_text(self) -> str:
        return _decode(self.stdout)

    @property
    def stderr_text(self) -> str:
        return _decode(self.stderr)


@dataclass(frozen=True)
class Failed:
    error: HookError

    def __str__(self) -> str:
        return f"failed: {self.error}"


HookOutcome = Union[Skipped, Completed, Failed]


@dataclass(frozen=True)
class HookResult:
    """The single outcome of one hook in one run."""

    hook: "Hook"
    outcome: HookOutcome

    @property
    def key(self) -> str:
        return self.hook.key

    @property
    def skipped(self) -> bool:
        return isinstance(self.outcome, Skipped)

    @property
    def completed(self) -> bool:
        return isinstance(self.outcome, Completed)

    @property
    def failed(self) -> bool:
        return isinstance(self.outcome, Failed)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HookStarted:
    key: str


@dataclass(frozen=True)
class HookDone:
    result: HookResult


HookLifecycleEvent = Union[HookStarted, HookDone]


def first_failure(results: list[HookResult]) -> Optional[HookResult]:
    """Return the failed result of a run, if there was one."""
    return next((r for r in results if r.failed), None)
