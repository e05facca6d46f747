"""Metric recording: registry, per-request samples and metric sinks.

A ``MetricsRegistry`` fans each recording out to its sinks as
``(series_name, tags, value, timestamp)``. Request timings go through a
``MetricSample``: started when the request arrives, tagged while it is
handled, stopped exactly once when it completes.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Histogram,
    generate_latest,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricRecord:
    series_name: str
    tags: Mapping[str, str]
    value: float
    timestamp: float


class MetricsSink(Protocol):
    def record(
        self,
        series_name: str,
        tags: Mapping[str, str],
        value: float,
        timestamp: float,
    ) -> None: ...

    def close(self) -> None: ...


class InMemoryMetricsSink:
    """Keeps the most recent ``capacity`` recordings."""

    def __init__(self, capacity: int = 10_000) -> None:
        self._records: deque[MetricRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(
        self,
        series_name: str,
        tags: Mapping[str, str],
        value: float,
        timestamp: float,
    ) -> None:
        with self._lock:
            self._records.append(MetricRecord(series_name, dict(tags), value, timestamp))

    @property
    def records(self) -> list[MetricRecord]:
        with self._lock:
            return list(self._records)

    def series(self, series_name: str) -> list[MetricRecord]:
        return [r for r in self.records if r.series_name == series_name]

    def close(self) -> None:
        pass


class PrometheusMetricsSink:
    """Exposes recordings as Prometheus histograms.

    One histogram per series, created on first use with the tag keys of
    that first recording as its label names. Later recordings for the
    same series must carry the same keys.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        namespace: str = "",
    ) -> None:
        self.registry = registry or CollectorRegistry()
        self.namespace = namespace
        self._histograms: dict[str, Histogram] = {}
        self._lock = threading.Lock()

    @staticmethod
    def metric_name(series_name: str) -> str:
        # http.server.requests -> http_server_requests_seconds
        return series_name.replace(".", "_").replace("-", "_") + "_seconds"

    def _histogram(self, series_name: str, label_names: tuple[str, ...]) -> Histogram:
        with self._lock:
            histogram = self._histograms.get(series_name)
            if histogram is None:
                histogram = Histogram(
                    self.metric_name(series_name),
                    f"Timings recorded for {series_name}",
                    labelnames=label_names,
                    namespace=self.namespace,
                    registry=self.registry,
                )
                self._histograms[series_name] = histogram
            return histogram

    def record(
        self,
        series_name: str,
        tags: Mapping[str, str],
        value: float,
        timestamp: float,
    ) -> None:
        histogram = self._histogram(series_name, tuple(sorted(tags)))
        histogram.labels(**tags).observe(value)

    def render(self) -> tuple[bytes, str]:
        return generate_latest(self.registry), CONTENT_TYPE_LATEST

    def close(self) -> None:
        pass


class MetricSample:
    """Timer handle for a single request.

    Tags may be added until ``stop`` is called; ``stop`` records once.
    """

    def __init__(
        self,
        registry: MetricsRegistry,
        series_name: str,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        self._registry = registry
        self.series_name = series_name
        self.tags: dict[str, str] = dict(tags or {})
        self._started = time.perf_counter()
        self.stopped = False

    def tag(self, key: str, value: str) -> None:
        if self.stopped:
            raise RuntimeError(f"sample for {self.series_name!r} already stopped")
        self.tags[key] = value

    def stop(self) -> float:
        if self.stopped:
            raise RuntimeError(f"sample for {self.series_name!r} already stopped")
        self.stopped = True
        elapsed = time.perf_counter() - self._started
        self._registry.record(self.series_name, self.tags, elapsed)
        return elapsed


class MetricsRegistry:
    """Process-wide entry point for metric recordings."""

    def __init__(
        self,
        sinks: Iterable[MetricsSink] = (),
        common_tags: Mapping[str, str] | None = None,
    ) -> None:
        self.sinks: list[MetricsSink] = list(sinks)
        self.common_tags = dict(common_tags or {})

    def start_sample(self, series_name: str) -> MetricSample:
        return MetricSample(self, series_name, self.common_tags)

    def record(
        self,
        series_name: str,
        tags: Mapping[str, str],
        value: float,
        timestamp: float | None = None,
    ) -> None:
        timestamp = time.time() if timestamp is None else timestamp
        merged = {**self.common_tags, **tags}
        for sink in self.sinks:
            try:
                sink.record(series_name, merged, value, timestamp)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Metrics sink %s failed: %s", type(sink).__name__, exc)

    def find_sink(self, sink_type: type) -> object | None:
        for sink in self.sinks:
            if isinstance(sink, sink_type):
                return sink
        return None

    def close(self) -> None:
        for sink in self.sinks:
            try:
                sink.close()
            except Exception as exc:  # noqa: BLE001
                logger.debug("Metrics sink %s close failed: %s", type(sink).__name__, exc)
