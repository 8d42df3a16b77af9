"""Format-agnostic document tree produced by the decoders.

Every decoded document is converted into these frozen node types before it
reaches the flattener, so traversal only has to handle a closed set of
variants regardless of whether the bytes were JSON, YAML or CSV.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Null:
    pass


@dataclass(frozen=True)
class Boolean:
    value: bool


@dataclass(frozen=True)
class Number:
    value: float


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Sequence:
    items: tuple["Value", ...] = ()


@dataclass(frozen=True)
class Mapping:
    """Ordered key/value pairs; keys are unique and keep insertion order."""

    entries: tuple[tuple[str, "Value"], ...] = ()


Value = Union[Null, Boolean, Number, Text, Sequence, Mapping]

NULL = Null()


def _number(value: int | float) -> Value:
    try:
        return Number(float(value))
    except OverflowError:
        # ints beyond float range are not representable as a gauge value
        return Text(str(value))


def from_native(obj: Any) -> Value:
    """Convert decoder output (dicts, lists, scalars) into a value tree."""
    if obj is None:
        return NULL
    if isinstance(obj, bool):
        return Boolean(obj)
    if isinstance(obj, (int, float)):
        return _number(obj)
    if isinstance(obj, str):
        return Text(obj)
    if isinstance(obj, dict):
        entries: dict[str, Value] = {}
        for key, value in obj.items():
            entries[key if isinstance(key, str) else str(key)] = from_native(value)
        return Mapping(tuple(entries.items()))
    if isinstance(obj, (list, tuple)):
        return Sequence(tuple(from_native(item) for item in obj))
    return Text(str(obj))


def parse_number(text: str) -> Number | None:
    """Parse a textual cell as a float, rejecting blanks."""
    candidate = text.strip()
    if not candidate or "_" in candidate:
        return None
    try:
        value = float(candidate)
    except ValueError:
        return None
    return Number(value)
