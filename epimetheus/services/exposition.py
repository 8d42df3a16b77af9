"""Prometheus exposition of the metric registry plus exporter self-metrics."""

from __future__ import annotations

import logging
import re
from typing import Iterable

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, generate_latest
from prometheus_client.core import GaugeMetricFamily, Metric
from prometheus_client.registry import Collector

from epimetheus.services.registry import MetricRegistry

LOG = logging.getLogger(__name__)

_VALID_NAME = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")

RESERVED_NAMES = frozenset(
    {
        "epimetheus_sources_total",
        "epimetheus_source_reads_total",
        "epimetheus_source_reads_created",
        "epimetheus_source_read_failures_total",
        "epimetheus_source_read_failures_created",
        "epimetheus_metrics_total",
        "epimetheus_source_last_success_timestamp_seconds",
    }
)


def is_valid_metric_name(name: str) -> bool:
    return bool(_VALID_NAME.match(name))


class InternalMetrics:
    """Counters and gauges describing the exporter itself."""

    def __init__(self, registry: CollectorRegistry) -> None:
        self.sources_total = Gauge(
            "epimetheus_sources_total",
            "Total number of file/url sources",
            registry=registry,
        )
        self.source_reads_total = Counter(
            "epimetheus_source_reads_total",
            "Total number of source read attempts",
            registry=registry,
        )
        self.source_read_failures_total = Counter(
            "epimetheus_source_read_failures_total",
            "Total number of source read failures",
            registry=registry,
        )
        self.metrics_total = Gauge(
            "epimetheus_metrics_total",
            "Total number of metrics being tracked",
            registry=registry,
        )
        self.source_last_success = Gauge(
            "epimetheus_source_last_success_timestamp_seconds",
            "Unix time of the last successful refresh per source",
            ["source"],
            registry=registry,
        )


class SourceMetricsCollector(Collector):
    """Yields one gauge per registry entry on every scrape."""

    def __init__(self, registry: MetricRegistry) -> None:
        self.registry = registry
        self._dropped: set[str] = set()

    def _drop(self, name: str, source_id: str, reason: str) -> None:
        if name in self._dropped:
            return
        self._dropped.add(name)
        LOG.warning("not exposing metric name=%r source=%s reason=%s", name, source_id, reason)

    def collect(self) -> Iterable[Metric]:
        for entry in self.registry.entries():
            if not is_valid_metric_name(entry.name):
                self._drop(entry.name, entry.source_id, "invalid name")
                continue
            if entry.name in RESERVED_NAMES:
                self._drop(entry.name, entry.source_id, "reserved name")
                continue
            yield GaugeMetricFamily(entry.name, f"value from {entry.source_id}", value=entry.value)


class MetricsExporter:
    """Owns the prometheus_client registry served on the metrics path."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self, registry: MetricRegistry) -> None:
        self.collector_registry = CollectorRegistry(auto_describe=False)
        self.internal = InternalMetrics(self.collector_registry)
        self.collector_registry.register(SourceMetricsCollector(registry))

    def render(self) -> bytes:
        return generate_latest(self.collector_registry)
