from __future__ import annotations

"""
Process-wide telemetry.

``init_telemetry`` builds the tracer and metrics registry from settings
when the process starts; ``shutdown_telemetry`` flushes and closes every
sink when it stops. In between, ``get_telemetry`` returns the shared
instance (initializing it lazily if startup was skipped, e.g. in scripts).
"""

import logging
import threading

from availability.config import Settings, get_settings
from availability.services.telemetry.context import SERIES_NAME, RequestContext, Telemetry
from availability.services.telemetry.hooks import default_hooks
from availability.services.telemetry.metrics import (
    InMemoryMetricsSink,
    MetricsRegistry,
    MetricsSink,
    PrometheusMetricsSink,
)
from availability.services.telemetry.tagger import DOMAIN_TAG_KEY, tag_classification
from availability.services.telemetry.tracing import (
    HttpTraceSink,
    InMemoryTraceSink,
    LoggingTraceSink,
    Tracer,
    TraceSink,
)

__all__ = [
    "DOMAIN_TAG_KEY",
    "SERIES_NAME",
    "RequestContext",
    "Telemetry",
    "build_telemetry",
    "get_telemetry",
    "init_telemetry",
    "shutdown_telemetry",
    "tag_classification",
]

logger = logging.getLogger(__name__)

_telemetry: Telemetry | None = None
_lock = threading.Lock()


def _metrics_sinks(settings: Settings) -> list[MetricsSink]:
    sinks: list[MetricsSink] = []
    for name in settings.metrics_sinks:
        if name == "memory":
            sinks.append(InMemoryMetricsSink(settings.memory_sink_capacity))
        elif name == "prometheus":
            sinks.append(PrometheusMetricsSink())
        elif name == "statsig":
            # Imported here so the Statsig SDK is only loaded when enabled.
            from availability.services.statsig_client import StatsigMetricsSink

            sinks.append(
                StatsigMetricsSink(settings.statsig_server_secret, settings.environment)
            )
    return sinks


def _trace_sinks(settings: Settings) -> list[TraceSink]:
    sinks: list[TraceSink] = []
    for name in settings.trace_sinks:
        if name == "memory":
            sinks.append(InMemoryTraceSink(settings.memory_sink_capacity))
        elif name == "log":
            sinks.append(LoggingTraceSink(level=logging.DEBUG))
        elif name == "http":
            sinks.append(
                HttpTraceSink(
                    settings.telemetry_endpoint,
                    flush_interval=settings.trace_flush_interval_seconds,
                    batch_size=settings.trace_batch_size,
                )
            )
    return sinks


def build_telemetry(settings: Settings) -> Telemetry:
    """Construct a Telemetry instance with the sinks named in ``settings``."""
    common_tags = {
        "application": settings.application_name,
        "source": settings.source,
    }
    return Telemetry(
        tracer=Tracer(_trace_sinks(settings), common_tags),
        metrics=MetricsRegistry(_metrics_sinks(settings), common_tags),
        hooks=default_hooks(),
    )


def init_telemetry(settings: Settings | None = None) -> Telemetry:
    global _telemetry
    with _lock:
        if _telemetry is None:
            settings = settings or get_settings()
            _telemetry = build_telemetry(settings)
            logger.info(
                "Telemetry initialized for %s (metrics=%s, traces=%s)",
                settings.application_name,
                ",".join(settings.metrics_sinks) or "none",
                ",".join(settings.trace_sinks) or "none",
            )
        return _telemetry


def get_telemetry() -> Telemetry:
    if _telemetry is None:
        return init_telemetry()
    return _telemetry


def shutdown_telemetry() -> None:
    global _telemetry
    with _lock:
        if _telemetry is None:
            return
        telemetry, _telemetry = _telemetry, None
    telemetry.flush()
    telemetry.close()
    logger.info("Telemetry shut down")
