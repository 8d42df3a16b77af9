from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable

from fastapi import FastAPI

from epimetheus.core.errors import DecodeError, FetchError
from epimetheus.schemas.source import SourceDescriptor, SourceState
from epimetheus.services.decoders import decode
from epimetheus.services.exposition import InternalMetrics
from epimetheus.services.flattener import flatten
from epimetheus.services.registry import MetricRegistry
from epimetheus.streams.fetchers.base import FetchResult, Fetcher
from epimetheus.streams.fetchers.registry import create_fetcher

# Ensure built-in fetchers are imported so they register
from epimetheus.streams.fetchers import local as _local  # noqa: F401
from epimetheus.streams.fetchers import remote as _remote  # noqa: F401


LOG = logging.getLogger(__name__)


@dataclass
class SourceStatus:
    source_id: str
    origin: str
    format: str | None
    state: SourceState = SourceState.IDLE
    last_attempt: datetime | None = None
    last_success: datetime | None = None
    last_error: str | None = None
    consecutive_failures: int = 0
    metric_count: int = 0


class RefreshScheduler:
    """Re-reads every source on a fixed interval and commits its metrics.

    One timer task ticks every ``interval`` seconds and launches an
    independent refresh task per source. A source still busy from the
    previous tick is skipped rather than queued, so a hung fetch only stalls
    itself.
    """

    def __init__(
        self,
        sources: Iterable[SourceDescriptor],
        registry: MetricRegistry,
        *,
        interval: float = 60.0,
        ignore_keys: Iterable[str] = (),
        prefix: str = "",
        fetch_timeout: float = 30.0,
        parse_numeric_strings: bool = False,
        internal: InternalMetrics | None = None,
        fetcher_config: dict[str, Any] | None = None,
        fetchers: dict[str, Fetcher] | None = None,
    ) -> None:
        self.sources: list[SourceDescriptor] = list(sources)
        self.registry = registry
        self.interval = float(interval)
        self.ignore_keys = frozenset(ignore_keys)
        self.prefix = prefix
        self.fetch_timeout = float(fetch_timeout)
        self.parse_numeric_strings = parse_numeric_strings
        self.internal = internal
        self.fetcher_config: dict[str, Any] = dict(fetcher_config or {})
        self.fetchers: dict[str, Fetcher] = dict(fetchers or {})
        self.tasks: dict[str, asyncio.Task] = {}
        self.status: dict[str, SourceStatus] = {
            s.id: SourceStatus(source_id=s.id, origin=s.origin, format=s.format) for s in self.sources
        }
        self._timer: asyncio.Task | None = None
        if self.internal is not None:
            self.internal.sources_total.set(len(self.sources))

    def _fetcher_for(self, source: SourceDescriptor) -> Fetcher:
        fetcher = self.fetchers.get(source.origin)
        if fetcher is None:
            fetcher = create_fetcher(source.origin, self.fetcher_config)
            self.fetchers[source.origin] = fetcher
        return fetcher

    async def _fetch(self, source: SourceDescriptor) -> FetchResult:
        fetcher = self._fetcher_for(source)
        try:
            return await asyncio.wait_for(fetcher.fetch(source), timeout=self.fetch_timeout)
        except asyncio.TimeoutError as exc:
            raise FetchError(source.id, f"timed out after {self.fetch_timeout:g}s") from exc

    def _record_failure(self, status: SourceStatus, exc: BaseException) -> None:
        status.state = SourceState.FAILED
        status.last_error = str(exc)
        status.consecutive_failures += 1
        if self.internal is not None:
            self.internal.source_read_failures_total.inc()

    async def refresh(self, source: SourceDescriptor) -> bool:
        """Run one fetch/decode/flatten/commit cycle; False when it failed."""
        status = self.status[source.id]
        status.last_attempt = datetime.now(timezone.utc)
        if self.internal is not None:
            self.internal.source_reads_total.inc()
        try:
            status.state = SourceState.FETCHING
            result = await self._fetch(source)
            status.state = SourceState.DECODING
            tree = decode(result.content, result.format, source.id)
        except (FetchError, DecodeError) as exc:
            self._record_failure(status, exc)
            LOG.error(
                "refresh failed source=%s kind=%s err=%s failures=%d",
                source.id,
                exc.kind,
                exc.cause,
                status.consecutive_failures,
            )
            return False
        except Exception as exc:  # noqa: BLE001
            self._record_failure(status, exc)
            LOG.exception("refresh crashed source=%s err=%s", source.id, exc)
            return False

        status.state = SourceState.FLATTENING
        pairs = flatten(
            tree,
            self.ignore_keys,
            self.prefix,
            parse_numeric_strings=self.parse_numeric_strings,
        )
        status.state = SourceState.COMMITTING
        committed = self.registry.commit(source.id, pairs)

        status.state = SourceState.IDLE
        status.last_success = datetime.now(timezone.utc)
        status.last_error = None
        status.consecutive_failures = 0
        status.metric_count = len(self.registry.names_for(source.id))
        if self.internal is not None:
            self.internal.metrics_total.set(len(self.registry))
            self.internal.source_last_success.labels(source=source.id).set(time.time())
        LOG.info(
            "refreshed source=%s format=%s metrics=%d added=%d evicted=%d collisions=%d",
            source.id,
            result.format,
            status.metric_count,
            committed.added,
            committed.evicted,
            len(committed.collisions),
        )
        return True

    async def refresh_all(self) -> None:
        """Refresh every source concurrently and wait for all of them."""
        await asyncio.gather(*(self.refresh(s) for s in self.sources))

    def _dispatch(self) -> None:
        loop = asyncio.get_running_loop()
        for source in self.sources:
            task = self.tasks.get(source.id)
            if task is not None and not task.done():
                LOG.warning(
                    "previous refresh still running; skipping tick source=%s state=%s",
                    source.id,
                    self.status[source.id].state.value,
                )
                continue
            self.tasks[source.id] = loop.create_task(
                self.refresh(source), name=f"refresh:{source.id}"
            )

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while True:
            self._dispatch()
            LOG.debug(
                "refresh tick sources=%d metrics=%d in_flight=%d",
                len(self.sources),
                len(self.registry),
                sum(1 for t in self.tasks.values() if not t.done()),
            )
            next_tick += self.interval
            delay = next_tick - loop.time()
            if delay < 0:
                # fell behind; realign instead of firing a burst of ticks
                next_tick = loop.time() + self.interval
                delay = self.interval
            await asyncio.sleep(delay)

    def start(self) -> None:
        """Start the timer on the running event loop."""
        if self._timer is not None and not self._timer.done():
            return
        self._timer = asyncio.get_running_loop().create_task(self._run(), name="refresh-timer")
        LOG.info(
            "refresh scheduler started sources=%d interval=%gs",
            len(self.sources),
            self.interval,
        )

    async def stop(self) -> None:
        """Cancel the timer and in-flight refreshes, then close fetchers."""
        pending: list[asyncio.Task] = []
        if self._timer is not None:
            self._timer.cancel()
            pending.append(self._timer)
            self._timer = None
        for task in self.tasks.values():
            if not task.done():
                task.cancel()
                pending.append(task)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self.tasks.clear()
        for fetcher in self.fetchers.values():
            with suppress(Exception):
                await fetcher.aclose()
        LOG.info("refresh scheduler stopped")

    def statuses(self) -> list[SourceStatus]:
        return [self.status[s.id] for s in self.sources]


def refresher_lifespan(scheduler: RefreshScheduler):
    """FastAPI lifespan running the scheduler for the life of the app."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()

    return _lifespan
