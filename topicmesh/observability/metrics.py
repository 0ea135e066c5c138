"""
Metrics Collector: Prometheus-Compatible Counters for Search and Export

Thread-safe counters, gauges and histograms shared by the export workers
and the request handlers. ``PipelineMetrics`` names the instruments the
package records:

    topicmesh_pairs_computed_total      pairs scored by export workers
    topicmesh_edges_emitted_total       pairs that passed the threshold
    topicmesh_shards_sealed_total       shards handed to a sink
    topicmesh_worker_failures_total     partitions that ended in error
    topicmesh_active_workers            export tasks currently running
    topicmesh_query_latency_seconds     handler latency per endpoint
"""

from __future__ import annotations

import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence

LabelKey = tuple[tuple[str, str], ...]


class _Metric:
    """Label bookkeeping shared by every instrument."""

    __slots__ = ("_name", "_help", "_label_names", "_lock")

    kind = "untyped"

    def __init__(self, name: str, label_names: Sequence[str] = (), help_text: str = "") -> None:
        self._name = name
        self._help = help_text
        self._label_names = tuple(label_names)
        self._lock = threading.Lock()

    def _key(self, labels: dict[str, Any]) -> LabelKey:
        return tuple(sorted((k, str(labels.get(k, ""))) for k in self._label_names))

    @property
    def name(self) -> str:
        return self._name

    @property
    def help_text(self) -> str:
        return self._help


class Counter(_Metric):
    """
    Monotonically increasing counter.

    Usage:
        edges = Counter("topicmesh_edges_emitted_total", ["worker"])
        edges.inc(120, worker="0")
    """

    __slots__ = ("_values",)

    kind = "counter"

    def __init__(self, name: str, label_names: Sequence[str] = (), help_text: str = "") -> None:
        super().__init__(name, label_names, help_text)
        self._values: dict[LabelKey, float] = defaultdict(float)

    def inc(self, value: float = 1.0, **labels: Any) -> None:
        if value < 0:
            raise ValueError("Counter can only increase")
        key = self._key(labels)
        with self._lock:
            self._values[key] += value

    def get(self, **labels: Any) -> float:
        key = self._key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def total(self) -> float:
        """Sum over every label combination."""
        with self._lock:
            return sum(self._values.values())

    def collect(self) -> Iterator[tuple[dict[str, str], float]]:
        with self._lock:
            items = list(self._values.items())
        for key, value in items:
            yield dict(key), value


class Gauge(_Metric):
    """Value that can go up and down."""

    __slots__ = ("_values",)

    kind = "gauge"

    def __init__(self, name: str, label_names: Sequence[str] = (), help_text: str = "") -> None:
        super().__init__(name, label_names, help_text)
        self._values: dict[LabelKey, float] = {}

    def set(self, value: float, **labels: Any) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key] = value

    def inc(self, value: float = 1.0, **labels: Any) -> None:
        key = self._key(labels)
        with self._lock:
            self._values[key] = self._values.get(key, 0.0) + value

    def dec(self, value: float = 1.0, **labels: Any) -> None:
        self.inc(-value, **labels)

    def get(self, **labels: Any) -> float:
        key = self._key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def collect(self) -> Iterator[tuple[dict[str, str], float]]:
        with self._lock:
            items = list(self._values.items())
        for key, value in items:
            yield dict(key), value


class Histogram(_Metric):
    """
    Histogram with cumulative buckets.

    Usage:
        latency = Histogram("topicmesh_query_latency_seconds", ["endpoint"])

        with latency.time(endpoint="view"):
            handle_request()
    """

    __slots__ = ("_buckets", "_bucket_counts", "_sums", "_counts")

    kind = "histogram"

    DEFAULT_BUCKETS = (
        0.001, 0.005, 0.01, 0.025, 0.05, 0.1,
        0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 60.0, float("inf"),
    )

    def __init__(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
        buckets: Optional[Sequence[float]] = None,
    ) -> None:
        super().__init__(name, label_names, help_text)
        bounds = tuple(sorted(buckets or self.DEFAULT_BUCKETS))
        if bounds[-1] != float("inf"):
            bounds = bounds + (float("inf"),)
        self._buckets = bounds
        self._bucket_counts: dict[LabelKey, list[int]] = {}
        self._sums: dict[LabelKey, float] = defaultdict(float)
        self._counts: dict[LabelKey, int] = defaultdict(int)

    def observe(self, value: float, **labels: Any) -> None:
        key = self._key(labels)
        with self._lock:
            counts = self._bucket_counts.setdefault(key, [0] * len(self._buckets))
            for i, bound in enumerate(self._buckets):
                if value <= bound:
                    counts[i] += 1
            self._sums[key] += value
            self._counts[key] += 1

    def time(self, **labels: Any) -> HistogramTimer:
        """Context manager for timing operations."""
        return HistogramTimer(self, labels)

    def count(self, **labels: Any) -> int:
        key = self._key(labels)
        with self._lock:
            return self._counts.get(key, 0)

    def collect(self) -> Iterator[dict[str, Any]]:
        with self._lock:
            snapshot = [
                (key, list(counts), self._sums[key], self._counts[key])
                for key, counts in self._bucket_counts.items()
            ]
        for key, counts, total, n in snapshot:
            yield {
                "labels": dict(key),
                "buckets": list(zip(self._buckets, counts)),
                "sum": total,
                "count": n,
            }


class HistogramTimer:
    """Context manager for histogram timing."""

    __slots__ = ("_histogram", "_labels", "_start")

    def __init__(self, histogram: Histogram, labels: dict[str, Any]) -> None:
        self._histogram = histogram
        self._labels = labels
        self._start = 0.0

    def __enter__(self) -> HistogramTimer:
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        self._histogram.observe(time.perf_counter() - self._start, **self._labels)


class MetricsCollector:
    """
    Central registry for all metrics.

    Usage:
        collector = MetricsCollector.get_instance()
        edges = collector.counter("topicmesh_edges_emitted_total")
        text = collector.export_prometheus()
    """

    __slots__ = ("_counters", "_gauges", "_histograms", "_lock")

    _instance: Optional[MetricsCollector] = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> MetricsCollector:
        """Get process-wide instance."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def counter(self, name: str, label_names: Sequence[str] = (), help_text: str = "") -> Counter:
        with self._lock:
            if name not in self._counters:
                self._counters[name] = Counter(name, label_names, help_text)
            return self._counters[name]

    def gauge(self, name: str, label_names: Sequence[str] = (), help_text: str = "") -> Gauge:
        with self._lock:
            if name not in self._gauges:
                self._gauges[name] = Gauge(name, label_names, help_text)
            return self._gauges[name]

    def histogram(
        self,
        name: str,
        label_names: Sequence[str] = (),
        help_text: str = "",
        buckets: Optional[Sequence[float]] = None,
    ) -> Histogram:
        with self._lock:
            if name not in self._histograms:
                self._histograms[name] = Histogram(name, label_names, help_text, buckets)
            return self._histograms[name]

    def export_prometheus(self) -> str:
        """Export all metrics in Prometheus text format."""
        with self._lock:
            scalars: list[Counter | Gauge] = [*self._counters.values(), *self._gauges.values()]
            histograms = list(self._histograms.values())

        lines: list[str] = []
        for metric in scalars:
            if metric.help_text:
                lines.append(f"# HELP {metric.name} {metric.help_text}")
            lines.append(f"# TYPE {metric.name} {metric.kind}")
            for labels, value in metric.collect():
                lines.append(f"{metric.name}{_format_labels(labels)} {value}")

        for histogram in histograms:
            name = histogram.name
            if histogram.help_text:
                lines.append(f"# HELP {name} {histogram.help_text}")
            lines.append(f"# TYPE {name} histogram")
            for data in histogram.collect():
                labels = data["labels"]
                for bound, count in data["buckets"]:
                    le = "+Inf" if bound == float("inf") else str(bound)
                    lines.append(f"{name}_bucket{_format_labels({**labels, 'le': le})} {count}")
                lines.append(f"{name}_sum{_format_labels(labels)} {data['sum']}")
                lines.append(f"{name}_count{_format_labels(labels)} {data['count']}")

        return "\n".join(lines)


def _format_labels(labels: dict[str, str]) -> str:
    if not labels:
        return ""
    pairs = [f'{k}="{v}"' for k, v in sorted(labels.items())]
    return "{" + ",".join(pairs) + "}"


# =============================================================================
# PACKAGE INSTRUMENTS
# =============================================================================
@dataclass(frozen=True)
class PipelineMetrics:
    """Named instruments recorded by the export and the handlers."""

    pairs_computed: Counter
    edges_emitted: Counter
    shards_sealed: Counter
    worker_failures: Counter
    active_workers: Gauge
    query_latency: Histogram

    @classmethod
    def register(cls, collector: Optional[MetricsCollector] = None) -> PipelineMetrics:
        """Get or create the instruments on ``collector`` (default: global)."""
        c = collector or MetricsCollector.get_instance()
        return cls(
            pairs_computed=c.counter(
                "topicmesh_pairs_computed_total", ["worker"], "Pairs scored by export workers",
            ),
            edges_emitted=c.counter(
                "topicmesh_edges_emitted_total", ["worker"], "Pairs below the threshold",
            ),
            shards_sealed=c.counter(
                "topicmesh_shards_sealed_total", ["worker"], "Shards handed to a sink",
            ),
            worker_failures=c.counter(
                "topicmesh_worker_failures_total", ["code"], "Partitions ended in error",
            ),
            active_workers=c.gauge(
                "topicmesh_active_workers", (), "Export tasks currently running",
            ),
            query_latency=c.histogram(
                "topicmesh_query_latency_seconds", ["endpoint"], "Handler latency",
            ),
        )
