"""Execution context assembly.

The execution context is the flat ``str -> str`` mapping every template in a
run is rendered against: slot values, the reserved project/output names and,
while hooks are evaluated, one ``hook_ran_<key>`` flag per hook.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping


PROJECT_NAME_KEY = "_project_name"
OUTPUT_NAME_KEY = "_output_name"
HOOK_RAN_PREFIX = "hook_ran_"


def build_context(
    slot_data: Mapping[str, str],
    project_name: str,
    output_name: str,
) -> dict[str, str]:
    """Assemble the base context for a run.

    Reserved keys are written last so caller data can never shadow them.
    """
    context = dict(slot_data)
    context[PROJECT_NAME_KEY] = project_name
    context[OUTPUT_NAME_KEY] = output_name
    return context


def hook_ran_key(hook_key: str) -> str:
    return f"{HOOK_RAN_PREFIX}{hook_key}"


def with_hook_flags(
    context: Mapping[str, str],
    hook_keys: Iterable[str],
    completed: Iterable[str],
) -> dict[str, str]:
    """Return a copy of *context* with a ``hook_ran_*`` flag for every hook."""
    done = set(completed)
    flagged = dict(context)
    for key in hook_keys:
        flagged[hook_ran_key(key)] = "true" if key in done else "false"
    return flagged
