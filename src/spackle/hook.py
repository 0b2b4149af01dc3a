"""Hooks: post-generation commands declared in a project manifest.

Besides the ``Hook`` model this module holds the two template-driven steps
the scheduler applies to a hook before running it: rendering its command
tokens and evaluating its ``if`` guard.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .needs import Needy, NeedsState, is_satisfied
from .template import TemplateError, render


class HookOptional(BaseModel):
    """Marks a hook as user-toggleable, with its default state."""

    model_config = ConfigDict(frozen=True)

    default: bool


class Hook(BaseModel):
    """A named post-generation command.

    ``if_`` is read from the manifest field ``if``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., description="Unique key, shared namespace with slots")
    command: list[str] = Field(..., min_length=1, description="argv; every token is a template")
    if_: Optional[str] = Field(default=None, alias="if", description="Guard rendered to true/false")
    optional: Optional[HookOptional] = Field(default=None)
    needs: list[str] = Field(default_factory=list)
    name: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)

    def __str__(self) -> str:
        return self.key

    def is_enabled(self, state: NeedsState) -> bool:
        """Required hooks are always enabled; optional ones follow the user's
        override, falling back to their declared default."""
        if self.optional is None:
            return True
        override = state.hook_overrides.get(self.key)
        if override is None:
            return self.optional.default
        return override

    def is_satisfied(
        self,
        nodes: Sequence[Needy],
        state: NeedsState,
        visiting: frozenset[str] = frozenset(),
    ) -> bool:
        return is_satisfied(self.needs, nodes, state, visiting | {self.key})

    def with_command(self, command: list[str]) -> "Hook":
        """Copy of this hook with *command* substituted."""
        return self.model_copy(update={"command": list(command)})


# ---------------------------------------------------------------------------
# Conditional evaluation
# ---------------------------------------------------------------------------


class ConditionalErrorKind(str, Enum):
    INVALID_CONTEXT = "invalid context"
    INVALID_TEMPLATE = "invalid template"
    NOT_BOOLEAN = "not a boolean"


class ConditionalError(Exception):
    """Raised when a hook's ``if`` guard cannot be turned into a boolean."""

    def __init__(self, kind: ConditionalErrorKind, detail: str, cause: Exception | None = None) -> None:
        self.kind = kind
        self.detail = detail
        self.cause = cause
        super().__init__(f"{kind.value}\n{detail}")


def evaluate_conditional(hook: Hook, context: Mapping[str, str]) -> bool:
    """Render the hook's guard and parse it as ``true`` or ``false``.

    The rendered text is stripped of surrounding whitespace and must then be
    exactly ``true`` or ``false``. A hook without a guard always runs.

    Raises:
        ConditionalError: If the context is not a string mapping, the guard
            fails to render, or the result is not a boolean literal.
    """
    if hook.if_ is None:
        return True

    bad_keys = [k for k, v in context.items() if not isinstance(k, str) or not isinstance(v, str)]
    if bad_keys:
        raise ConditionalError(
            ConditionalErrorKind.INVALID_CONTEXT,
            f"non-string entries: {', '.join(map(str, bad_keys))}",
        )

    try:
        rendered = render(hook.if_, context)
    except TemplateError as exc:
        raise ConditionalError(ConditionalErrorKind.INVALID_TEMPLATE, str(exc), exc) from exc

    text = rendered.strip()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ConditionalError(ConditionalErrorKind.NOT_BOOLEAN, text)


# ---------------------------------------------------------------------------
# Command rendering
# ---------------------------------------------------------------------------


class CommandRenderError(Exception):
    """A command token of *hook* failed to render."""

    def __init__(self, hook: Hook, error: TemplateError) -> None:
        self.hook = hook
        self.error = error
        super().__init__(f"error rendering template for hook {hook.key}: {error}")


def render_command(hook: Hook, context: Mapping[str, str]) -> list[str]:
    """Render every command token independently.

    The result has the same number of tokens as ``hook.command``.

    Raises:
        CommandRenderError: On the first token that fails to render.
    """
    rendered: list[str] = []
    for token in hook.command:
        try:
            rendered.append(render(token, context))
        except TemplateError as exc:
            raise CommandRenderError(hook, exc) from exc
    return rendered


# ---------------------------------------------------------------------------
# Hook toggle validation
# ---------------------------------------------------------------------------


class HookDataErrorKind(str, Enum):
    UNKNOWN_KEY = "unknown key"
    NOT_OPTIONAL = "not optional"
    NOT_A_BOOLEAN = "not a boolean"


class HookDataError(Exception):
    """Raised when a user hook toggle does not match the manifest."""

    def __init__(self, kind: HookDataErrorKind, key: str) -> None:
        self.kind = kind
        self.key = key
        super().__init__(f"{kind.value}: {key}")


def parse_hook_data(data: Mapping[str, str], hooks: Iterable[Hook]) -> dict[str, bool]:
    """Validate raw ``key=true|false`` toggles and convert them to booleans.

    Only optional hooks may be toggled.

    Raises:
        HookDataError: On the first invalid entry.
    """
    by_key = {hook.key: hook for hook in hooks}
    overrides: dict[str, bool] = {}

    for key, value in data.items():
        hook = by_key.get(key)
        if hook is None:
            raise HookDataError(HookDataErrorKind.UNKNOWN_KEY, key)
        if hook.optional is None:
            raise HookDataError(HookDataErrorKind.NOT_OPTIONAL, key)
        if value not in ("true", "false"):
            raise HookDataError(HookDataErrorKind.NOT_A_BOOLEAN, key)
        overrides[key] = value == "true"

    return overrides
