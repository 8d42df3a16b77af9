"""In-memory store of published metrics, owned per source.

Each commit replaces everything a source published last time. State is
copy-on-write: a commit builds a new immutable table under the writer lock
and swaps a single reference, so readers never lock and never see half of a
commit.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Literal, Mapping, NamedTuple

LOG = logging.getLogger(__name__)

CollisionPolicy = Literal["overwrite", "keep"]


class MetricEntry(NamedTuple):
    name: str
    value: float
    source_id: str


class Collision(NamedTuple):
    name: str
    owner: str
    contender: str
    winner: str


@dataclass
class CommitResult:
    source_id: str
    added: int = 0
    updated: int = 0
    evicted: int = 0
    collisions: list[Collision] = field(default_factory=list)

    @property
    def published(self) -> int:
        return self.added + self.updated


@dataclass(frozen=True)
class _State:
    entries: Mapping[str, MetricEntry]
    by_source: Mapping[str, frozenset[str]]


_EMPTY = _State(MappingProxyType({}), MappingProxyType({}))


class MetricRegistry:
    def __init__(self, collision_policy: CollisionPolicy = "overwrite") -> None:
        if collision_policy not in ("overwrite", "keep"):
            raise ValueError(f"unknown collision policy: {collision_policy}")
        self.collision_policy: CollisionPolicy = collision_policy
        self._write_lock = threading.Lock()
        self._state: _State = _EMPTY

    def commit(self, source_id: str, pairs: Iterable[tuple[str, float]]) -> CommitResult:
        """Atomically replace every entry owned by ``source_id`` with ``pairs``."""
        incoming: dict[str, float] = {}
        for name, value in pairs:
            incoming[name] = float(value)

        result = CommitResult(source_id=source_id)
        with self._write_lock:
            current = self._state
            entries = dict(current.entries)
            by_source = {sid: set(names) for sid, names in current.by_source.items()}
            previous = by_source.pop(source_id, set())
            owned: set[str] = set()

            for name, value in incoming.items():
                existing = entries.get(name)
                if existing is not None and existing.source_id != source_id:
                    if self.collision_policy == "keep":
                        result.collisions.append(
                            Collision(name, existing.source_id, source_id, existing.source_id)
                        )
                        continue
                    result.collisions.append(Collision(name, existing.source_id, source_id, source_id))
                    by_source.get(existing.source_id, set()).discard(name)
                    result.added += 1
                elif existing is None:
                    result.added += 1
                else:
                    result.updated += 1
                entries[name] = MetricEntry(name, value, source_id)
                owned.add(name)

            for name in previous - owned:
                existing = entries.get(name)
                if existing is not None and existing.source_id == source_id:
                    del entries[name]
                    result.evicted += 1

            if owned:
                by_source[source_id] = owned
            self._state = _State(
                MappingProxyType(entries),
                MappingProxyType({sid: frozenset(names) for sid, names in by_source.items() if names}),
            )

        for c in result.collisions:
            LOG.warning(
                "metric name collision name=%s owner=%s contender=%s winner=%s policy=%s",
                c.name,
                c.owner,
                c.contender,
                c.winner,
                self.collision_policy,
            )
        LOG.debug(
            "committed source=%s added=%d updated=%d evicted=%d",
            source_id,
            result.added,
            result.updated,
            result.evicted,
        )
        return result

    def snapshot(self) -> list[tuple[str, float]]:
        """Point-in-time (name, value) pairs sorted by name."""
        return [(e.name, e.value) for e in self.entries()]

    def entries(self) -> list[MetricEntry]:
        state = self._state
        return [state.entries[name] for name in sorted(state.entries)]

    def names_for(self, source_id: str) -> frozenset[str]:
        return self._state.by_source.get(source_id, frozenset())

    def __len__(self) -> int:
        return len(self._state.entries)
