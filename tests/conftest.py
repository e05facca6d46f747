"""Shared pytest fixtures for the availability service tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient

from availability.config import Settings
from availability.services.telemetry import (
    Telemetry,
    init_telemetry,
    shutdown_telemetry,
)
from availability.services.telemetry.metrics import InMemoryMetricsSink
from availability.services.telemetry.tracing import InMemoryTraceSink


@pytest.fixture
def settings() -> Settings:
    """Settings with in-process sinks only."""
    return Settings(
        _env_file=None,
        application_name="availability-test",
        source="test-host",
        metrics_sinks=["memory", "prometheus"],
        trace_sinks=["memory"],
    )


@pytest.fixture
def telemetry(settings: Settings) -> Generator[Telemetry]:
    """Process-wide telemetry initialized from the test settings."""
    shutdown_telemetry()
    instance = init_telemetry(settings)
    try:
        yield instance
    finally:
        shutdown_telemetry()


@pytest.fixture
def metric_sink(telemetry: Telemetry) -> InMemoryMetricsSink:
    sink = telemetry.metrics.find_sink(InMemoryMetricsSink)
    assert isinstance(sink, InMemoryMetricsSink)
    return sink


@pytest.fixture
def trace_sink(telemetry: Telemetry) -> InMemoryTraceSink:
    for sink in telemetry.tracer.sinks:
        if isinstance(sink, InMemoryTraceSink):
            return sink
    raise AssertionError("memory trace sink not configured")


@pytest.fixture
def client(telemetry: Telemetry) -> Generator[TestClient]:
    """TestClient bound to the already-initialized telemetry."""
    from availability.main import app

    with TestClient(app) as test_client:
        yield test_client
