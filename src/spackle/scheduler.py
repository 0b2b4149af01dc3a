"""Hook scheduling.

Hooks run strictly one at a time, in manifest declaration order. For each
hook the scheduler decides, in this order, whether it is enabled, whether
its ``needs`` are satisfied, what its rendered command is, and whether its
``if`` guard holds, then runs it. The first failure of any kind ends the
run; skips never do.

The declaration order is the execution order. It is not a topological sort
of ``needs``: a hook's guard only sees ``hook_ran_*`` flags for hooks
declared before it.

Callers consume progress through ``run_hooks_stream``, an async iterator of
lifecycle events fed by the scheduler running as its own task, or through
``run_hooks``, a blocking wrapper that collects the results.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from pathlib import Path
from typing import Optional

from .context import with_hook_flags
from .executor import IdentityCommandBuilder, RunAs, SetupError, SpawnError, run_process
from .hook import CommandRenderError, ConditionalError, Hook, evaluate_conditional, render_command
from .needs import Needy, NeedsState
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
)
from .slot import Slot

logger = logging.getLogger(__name__)

Emit = Callable[[HookLifecycleEvent], Awaitable[None]]

_CLOSED = object()


class HookScheduler:
    """Runs a manifest's hooks against a fixed base context.

    The scheduler is the only writer of the "completed so far" list; every
    hook is evaluated against its own copy of the context.
    """

    def __init__(
        self,
        hooks: Sequence[Hook],
        out_dir: str | Path,
        context: Mapping[str, str],
        hook_overrides: Optional[Mapping[str, bool]] = None,
        run_as: Optional[RunAs] = None,
        *,
        slots: Sequence[Slot] = (),
        identity_builder: Optional[IdentityCommandBuilder] = None,
    ) -> None:
        self.hooks = list(hooks)
        self.out_dir = Path(out_dir)
        self.context = dict(context)
        self.hook_overrides = dict(hook_overrides or {})
        self.run_as = run_as
        self.slots = list(slots)
        self.identity_builder = identity_builder

    async def run(self, emit: Emit) -> list[HookResult]:
        """Process every hook, passing each lifecycle event to *emit*.

        Returns the results in processing order. Stops after the first
        failed hook.
        """
        state = NeedsState(data=self.context, hook_overrides=self.hook_overrides)
        nodes: list[Needy] = [*self.slots, *self.hooks]
        hook_keys = [hook.key for hook in self.hooks]
        completed: list[str] = []
        results: list[HookResult] = []

        for hook in self.hooks:
            await emit(HookStarted(hook.key))

            result = await self._process(hook, nodes, state, hook_keys, completed)
            results.append(result)

            await emit(HookDone(result))

            if result.failed:
                logger.info("Hook %s failed, aborting remaining hooks", hook.key)
                break

        return results

    async def _process(
        self,
        hook: Hook,
        nodes: Sequence[Needy],
        state: NeedsState,
        hook_keys: Sequence[str],
        completed: list[str],
    ) -> HookResult:
        if not hook.is_enabled(state):
            logger.debug("Hook %s disabled", hook.key)
            return HookResult(hook, Skipped(SkipReason.USER_DISABLED))

        if not hook.is_satisfied(nodes, state):
            logger.debug("Hook %s has unmet needs %s", hook.key, hook.needs)
            return HookResult(hook, Skipped(SkipReason.UNMET_DEPENDENCY))

        context = with_hook_flags(self.context, hook_keys, completed)

        try:
            command = render_command(hook, context)
        except CommandRenderError as exc:
            return _failed(hook, HookErrorKind.RENDER_FAILED, str(exc.error), exc)
        rendered = hook.with_command(command)

        try:
            condition = evaluate_conditional(rendered, context)
        except ConditionalError as exc:
            return _failed(rendered, HookErrorKind.CONDITIONAL_FAILED, str(exc), exc)

        if not condition:
            return HookResult(rendered, Skipped(SkipReason.FALSE_CONDITIONAL))

        try:
            output = await run_process(
                command,
                self.out_dir,
                self.run_as,
                identity_builder=self.identity_builder,
            )
        except SetupError as exc:
            return _failed(rendered, HookErrorKind.SETUP_FAILED, str(exc), exc)
        except SpawnError as exc:
            return _failed(rendered, HookErrorKind.COMMAND_LAUNCH_FAILED, str(exc.cause), exc)

        if not output.success:
            error = HookError(
                kind=HookErrorKind.COMMAND_EXITED,
                message=f"exit code {output.exit_code}",
                exit_code=output.exit_code,
                stdout=output.stdout,
                stderr=output.stderr,
            )
            return HookResult(rendered, Failed(error))

        completed.append(hook.key)
        return HookResult(rendered, Completed(stdout=output.stdout, stderr=output.stderr))


def _failed(hook: Hook, kind: HookErrorKind, message: str, cause: BaseException) -> HookResult:
    return HookResult(hook, Failed(HookError(kind=kind, message=message, cause=cause)))


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


async def run_hooks_stream(
    hooks: Sequence[Hook],
    out_dir: str | Path,
    context: Mapping[str, str],
    hook_overrides: Optional[Mapping[str, bool]] = None,
    run_as: Optional[RunAs] = None,
    *,
    slots: Sequence[Slot] = (),
    identity_builder: Optional[IdentityCommandBuilder] = None,
) -> AsyncIterator[HookLifecycleEvent]:
    """Run hooks and yield ``HookStarted``/``HookDone`` events as they happen.

    The iterator ends when every hook has been processed or right after the
    first ``Failed`` result. Leaving the iteration early cancels the run.

    Usage::

        async for event in run_hooks_stream(hooks, out_dir, context):
            ...
    """
    scheduler = HookScheduler(
        hooks,
        out_dir,
        context,
        hook_overrides,
        run_as,
        slots=slots,
        identity_builder=identity_builder,
    )
    queue: asyncio.Queue[object] = asyncio.Queue()

    async def produce() -> None:
        try:
            await scheduler.run(queue.put)
        finally:
            queue.put_nowait(_CLOSED)

    task = asyncio.create_task(produce())
    try:
        while True:
            event = await queue.get()
            if event is _CLOSED:
                break
            yield event  # type: ignore[misc]
        # Surface unexpected scheduler errors to the consumer.
        await task
    finally:
        if not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task


def run_hooks(
    hooks: Sequence[Hook],
    out_dir: str | Path,
    context: Mapping[str, str],
    hook_overrides: Optional[Mapping[str, bool]] = None,
    run_as: Optional[RunAs] = None,
    *,
    slots: Sequence[Slot] = (),
    identity_builder: Optional[IdentityCommandBuilder] = None,
) -> list[HookResult]:
    """Blocking wrapper around ``run_hooks_stream`` returning every result.

    A failed run ends with exactly one failed result; see
    ``results.first_failure``.
    """

    async def drain() -> list[HookResult]:
        results: list[HookResult] = []
        async for event in run_hooks_stream(
            hooks,
            out_dir,
            context,
            hook_overrides,
            run_as,
            slots=slots,
            identity_builder=identity_builder,
        ):
            if isinstance(event, HookDone):
                results.append(event.result)
        return results

    return asyncio.run(drain())
