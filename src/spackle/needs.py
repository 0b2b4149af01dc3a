"""Prerequisite resolution shared by slots and hooks.

Slots and hooks can both declare ``needs``: keys of other slots or hooks that
must be enabled and themselves satisfied. Both types implement the ``Needy``
protocol so a single resolver walks a mixed list of them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NeedsState:
    """Runtime inputs that decide whether a node is enabled.

    ``data`` holds slot values; ``hook_overrides`` holds the user's on/off
    choices for optional hooks. The two maps are kept apart so a slot value
    can never toggle a hook.
    """

    data: Mapping[str, str] = field(default_factory=dict)
    hook_overrides: Mapping[str, bool] = field(default_factory=dict)


class Needy(Protocol):
    key: str

    def is_enabled(self, state: NeedsState) -> bool: ...

    def is_satisfied(
        self,
        nodes: Sequence["Needy"],
        state: NeedsState,
        visiting: frozenset[str] = frozenset(),
    ) -> bool: ...


def is_satisfied(
    needs: Sequence[str],
    nodes: Sequence[Needy],
    state: NeedsState,
    visiting: frozenset[str] = frozenset(),
) -> bool:
    """Return True if every key in *needs* is enabled and satisfied.

    A key that names no node makes the result False; it is reported as a
    skip by callers, never as an error. *visiting* holds the keys on the
    current resolution path: a key that reappears on its own path is a
    cycle and counts as unsatisfied.
    """
    for key in needs:
        if key in visiting:
            logger.debug("Dependency cycle through %r", key)
            return False

        node = next((n for n in nodes if n.key == key), None)
        if node is None:
            logger.debug("Unknown need %r", key)
            return False

        if not node.is_enabled(state):
            return False
        if not node.is_satisfied(nodes, state, visiting):
            return False

    return True
