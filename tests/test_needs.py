"""Unit tests for need resolution across slots and hooks."""

from __future__ import annotations

import pytest

from spackle.hook import Hook, HookOptional
from spackle.needs import NeedsState, is_satisfied
from spackle.slot import Slot


def _hook(key: str, needs=(), optional=None) -> Hook:
    return Hook(key=key, command=["true"], needs=list(needs), optional=optional)


class TestIsSatisfied:
    @pytest.mark.unit
    def test_no_needs_is_satisfied(self):
        assert is_satisfied([], [], NeedsState())

    @pytest.mark.unit
    def test_unknown_key_is_unsatisfied(self):
        nodes = [Slot(key="a")]
        assert not is_satisfied(["missing"], nodes, NeedsState(data={"a": "x"}))

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["", "0", "false", "False", "FALSE"])
    def test_disabled_slot_value(self, value):
        nodes = [Slot(key="flag")]
        assert not is_satisfied(["flag"], nodes, NeedsState(data={"flag": value}))

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["true", "1", "yes", "anything"])
    def test_enabled_slot_value(self, value):
        nodes = [Slot(key="flag")]
        assert is_satisfied(["flag"], nodes, NeedsState(data={"flag": value}))

    @pytest.mark.unit
    def test_missing_slot_value_counts_as_disabled(self):
        assert not is_satisfied(["flag"], [Slot(key="flag")], NeedsState())

    @pytest.mark.unit
    def test_disabled_optional_hook(self):
        nodes = [_hook("h", optional=HookOptional(default=False))]
        assert not is_satisfied(["h"], nodes, NeedsState())
        assert is_satisfied(["h"], nodes, NeedsState(hook_overrides={"h": True}))

    @pytest.mark.unit
    def test_slot_value_does_not_toggle_hook(self):
        nodes = [_hook("h", optional=HookOptional(default=False))]
        assert not is_satisfied(["h"], nodes, NeedsState(data={"h": "true"}))

    @pytest.mark.unit
    def test_transitive_chain(self):
        nodes = [
            _hook("a", optional=HookOptional(default=False)),
            _hook("b", needs=["a"]),
            _hook("c", needs=["b"]),
        ]
        assert not is_satisfied(["c"], nodes, NeedsState())
        assert is_satisfied(["c"], nodes, NeedsState(hook_overrides={"a": True}))

    @pytest.mark.unit
    def test_hook_needing_slot(self):
        nodes = [Slot(key="with_ci"), _hook("ci", needs=["with_ci"])]
        hook = nodes[1]
        assert not hook.is_satisfied(nodes, NeedsState(data={"with_ci": "false"}))
        assert hook.is_satisfied(nodes, NeedsState(data={"with_ci": "true"}))


class TestCycles:
    @pytest.mark.unit
    def test_self_cycle(self):
        hook = _hook("a", needs=["a"])
        assert not hook.is_satisfied([hook], NeedsState())

    @pytest.mark.unit
    def test_two_node_cycle_terminates(self):
        a = _hook("a", needs=["b"])
        b = _hook("b", needs=["a"])
        nodes = [a, b]
        assert not a.is_satisfied(nodes, NeedsState())
        assert not b.is_satisfied(nodes, NeedsState())

    @pytest.mark.unit
    def test_diamond_is_not_a_cycle(self):
        nodes = [
            _hook("base"),
            _hook("left", needs=["base"]),
            _hook("right", needs=["base"]),
            _hook("top", needs=["left", "right"]),
        ]
        assert nodes[3].is_satisfied(nodes, NeedsState())
