"""Turn a decoded value tree into flat (metric name, value) pairs.

Names are built from the path of mapping keys and sequence indices leading
to each numeric leaf, joined with ``_`` and appended to the configured
prefix. Each run of characters outside ``[A-Za-z0-9_]`` becomes a single ``_``,
swallowing any underscores it touches, so ``{"cpu.load": [0.5]}`` becomes
``cpu_load_0``. Underscores already in a key are kept as written. A name that
would start with a digit gets a leading ``_`` so it stays a valid Prometheus
name.

Flattening is best-effort: leaves that are not numeric are skipped and the
walk never raises, so one odd field cannot hide the rest of a document.
"""

from __future__ import annotations

import re
from typing import AbstractSet, Iterable

from epimetheus.services.value_tree import (
    Boolean,
    Mapping,
    Null,
    Number,
    Sequence,
    Text,
    Value,
    parse_number,
)

SEPARATOR = "_"

# a run of non-alphanumerics holding at least one disallowed character;
# pure underscore runs never match
_DISALLOWED_RUN = re.compile(r"[^A-Za-z0-9]*[^A-Za-z0-9_][^A-Za-z0-9]*")


def sanitize_name(raw: str) -> str:
    """Replace each run of disallowed characters with one separator."""
    return _DISALLOWED_RUN.sub(SEPARATOR, raw)


def metric_name(prefix: str, path: Iterable[str]) -> str:
    joined = SEPARATOR.join(segment for segment in path if segment)
    name = sanitize_name(f"{prefix}{joined}")
    if name[:1].isdigit():
        name = SEPARATOR + name
    return name


def _leaf_value(node: Value, parse_numeric_strings: bool) -> float | None:
    if isinstance(node, Boolean):
        return 1.0 if node.value else 0.0
    if isinstance(node, Number):
        return node.value
    if isinstance(node, Text) and parse_numeric_strings:
        parsed = parse_number(node.value)
        return parsed.value if parsed is not None else None
    return None


def flatten(
    tree: Value,
    ignore_keys: AbstractSet[str] | Iterable[str] = frozenset(),
    prefix: str = "",
    *,
    parse_numeric_strings: bool = False,
) -> list[tuple[str, float]]:
    """Depth-first walk of ``tree`` returning ordered (name, value) pairs.

    Mapping keys found in ``ignore_keys`` prune their whole subtree; sequence
    indices are never ignored. When two paths sanitize to the same name the
    later value wins and the name keeps its first position.
    """
    ignored = ignore_keys if isinstance(ignore_keys, (set, frozenset)) else frozenset(ignore_keys)
    out: dict[str, float] = {}
    path: list[str] = []

    def walk(node: Value) -> None:
        if isinstance(node, Mapping):
            for key, child in node.entries:
                if key in ignored:
                    continue
                path.append(key)
                walk(child)
                path.pop()
        elif isinstance(node, Sequence):
            for index, child in enumerate(node.items):
                path.append(str(index))
                walk(child)
                path.pop()
        elif isinstance(node, Null):
            return
        else:
            value = _leaf_value(node, parse_numeric_strings)
            if value is not None:
                out[metric_name(prefix, path)] = value

    walk(tree)
    return list(out.items())
