"""Slots: typed user inputs declared in a project manifest."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .needs import Needy, NeedsState, is_satisfied


class SlotType(str, Enum):
    """Declared type of a slot's value."""
    STRING = "String"
    NUMBER = "Number"
    BOOLEAN = "Boolean"

    def accepts(self, value: str) -> bool:
        """Return True if *value* parses as this type."""
        if self is SlotType.NUMBER:
            try:
                float(value)
            except ValueError:
                return False
            return True
        if self is SlotType.BOOLEAN:
            return value in ("true", "false")
        return True


class Slot(BaseModel):
    """A named, typed input value supplied by the user for templating."""

    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Unique key, shared namespace with hooks")
    type: SlotType = Field(default=SlotType.STRING)
    name: Optional[str] = Field(default=None, description="Human-readable name")
    description: Optional[str] = Field(default=None)
    default: Optional[str] = Field(default=None, description="Value used when none is supplied")
    needs: list[str] = Field(default_factory=list, description="Keys that must be enabled first")

    def is_enabled(self, state: NeedsState) -> bool:
        """A slot is enabled when its value differs from the type's "off" values.

        Empty, ``"0"`` and any casing of ``"false"`` count as disabled; every
        other string, type-mismatched or not, counts as enabled.
        """
        value = state.data.get(self.key, "")
        return value != "" and value != "0" and value.lower() != "false"

    def is_satisfied(
        self,
        nodes: Sequence[Needy],
        state: NeedsState,
        visiting: frozenset[str] = frozenset(),
    ) -> bool:
        return is_satisfied(self.needs, nodes, state, visiting | {self.key})


# ---------------------------------------------------------------------------
# Slot data validation
# ---------------------------------------------------------------------------


class SlotDataErrorKind(str, Enum):
    UNKNOWN_SLOT = "unknown slot"
    TYPE_MISMATCH = "type mismatch"
    UNDEFINED_SLOT = "slot was not defined"


class SlotDataError(Exception):
    """Raised when user-supplied slot data does not match the manifest."""

    def __init__(self, kind: SlotDataErrorKind, key: str, expected: SlotType | None = None) -> None:
        self.kind = kind
        self.key = key
        self.expected = expected
        if kind is SlotDataErrorKind.TYPE_MISMATCH and expected is not None:
            message = f"type mismatch for key {key}: expected a {expected.value}"
        else:
            message = f"{kind.value}: {key}"
        super().__init__(message)


def validate_slot_data(data: Mapping[str, str], slots: Iterable[Slot]) -> None:
    """Check user data against the declared slots.

    Every key must name a slot, every value must parse as the slot's type,
    and every slot without a default must be given a value.

    Raises:
        SlotDataError: On the first problem found.
    """
    by_key = {slot.key: slot for slot in slots}

    for key, value in data.items():
        slot = by_key.get(key)
        if slot is None:
            raise SlotDataError(SlotDataErrorKind.UNKNOWN_SLOT, key)
        if not slot.type.accepts(value):
            raise SlotDataError(SlotDataErrorKind.TYPE_MISMATCH, key, slot.type)

    for slot in by_key.values():
        if slot.key not in data and slot.default is None:
            raise SlotDataError(SlotDataErrorKind.UNDEFINED_SLOT, slot.key)


def apply_defaults(data: Mapping[str, str], slots: Iterable[Slot]) -> dict[str, str]:
    """Return a copy of *data* with defaults filled in for missing slots."""
    filled = dict(data)
    for slot in slots:
        if slot.key not in filled and slot.default is not None:
            filled[slot.key] = slot.default
    return filled
