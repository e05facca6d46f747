"""End-to-end tests for GET /availability/{console}."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from availability.services.classifier import known_values
from availability.services.handler import AvailabilityHandler
from availability.services.telemetry import DOMAIN_TAG_KEY, SERIES_NAME, Telemetry
from availability.services.telemetry.metrics import InMemoryMetricsSink
from availability.services.telemetry.tracing import InMemoryTraceSink


def _last_pair(metric_sink: InMemoryMetricsSink, trace_sink: InMemoryTraceSink):
    return metric_sink.series(SERIES_NAME)[-1], trace_sink.spans[-1]


class TestScenarios:
    def test_xbox_available(self, client: TestClient, metric_sink, trace_sink) -> None:
        response = client.get("/availability/xbox")
        assert response.status_code == 200
        assert response.json() == {"console": "xbox", "available": True}

        record, span = _last_pair(metric_sink, trace_sink)
        assert record.tags[DOMAIN_TAG_KEY] == span.tags[DOMAIN_TAG_KEY] == "xbox"
        assert span.annotations["state"] == "RESPONDED"
        assert span.annotations["transitions"] == ["RECEIVED", "CLASSIFIED", "TAGGED", "RESPONDED"]

    def test_switch_unavailable(self, client: TestClient) -> None:
        response = client.get("/availability/switch")
        assert response.status_code == 200
        assert response.json() == {"console": "switch", "available": False}

    def test_ps5_server_error(self, client: TestClient, metric_sink, trace_sink) -> None:
        response = client.get("/availability/ps5")
        assert response.status_code == 500
        assert "detail" in response.json()

        record, span = _last_pair(metric_sink, trace_sink)
        assert record.tags[DOMAIN_TAG_KEY] == span.tags[DOMAIN_TAG_KEY] == "ps5"
        assert record.tags["status"] == "500"
        assert record.tags["outcome"] == "SERVER_ERROR"
        assert record.tags["exception"] == "SimulatedServiceError"
        assert span.annotations == {
            "transitions": ["RECEIVED", "CLASSIFIED", "TAGGED", "FAULTED"],
            "state": "FAULTED",
            "fault": "simulated-service-error",
        }

    def test_dreamcast_client_error(self, client: TestClient, metric_sink, trace_sink) -> None:
        response = client.get("/availability/dreamcast")
        assert response.status_code == 400
        assert "dreamcast" in response.json()["detail"]

        record, span = _last_pair(metric_sink, trace_sink)
        assert record.tags[DOMAIN_TAG_KEY] == span.tags[DOMAIN_TAG_KEY] == "UNKNOWN"
        assert record.tags["status"] == "400"
        assert record.tags["outcome"] == "CLIENT_ERROR"
        assert "dreamcast" not in record.tags.values()
        assert "dreamcast" not in span.tags.values()

    @pytest.mark.parametrize("path", ["/availability/", "/availability/a%2Fb", "/availability/a/b"])
    def test_empty_and_slashed_consoles_are_recorded(
        self, client: TestClient, metric_sink, trace_sink, path: str
    ) -> None:
        response = client.get(path)
        assert response.status_code == 400

        records = metric_sink.series(SERIES_NAME)
        spans = trace_sink.spans
        assert len(records) == len(spans) == 1
        assert records[0].tags[DOMAIN_TAG_KEY] == spans[0].tags[DOMAIN_TAG_KEY] == "UNKNOWN"
        assert records[0].tags["status"] == "400"
        assert spans[0].tags["uri"] == "/availability/{console}"


class TestCorrelation:
    @pytest.mark.parametrize("console", ["ps5", "xbox", "switch", "ps4", "dreamcast", "PS5"])
    def test_metric_and_span_tags_identical(
        self, client: TestClient, metric_sink, trace_sink, console: str
    ) -> None:
        client.get(f"/availability/{console}")
        records = metric_sink.series(SERIES_NAME)
        spans = trace_sink.spans
        assert len(records) == len(spans) == 1
        assert dict(records[0].tags) == spans[0].tags

    def test_common_tags_present(self, client: TestClient, trace_sink) -> None:
        client.get("/availability/ps4")
        tags = trace_sink.spans[-1].tags
        assert tags["application"] == "availability-test"
        assert tags["source"] == "test-host"
        assert tags["method"] == "GET"
        assert tags["uri"] == "/availability/{console}"

    def test_cardinality_is_bounded(self, client: TestClient, metric_sink, trace_sink) -> None:
        raw_inputs = [f"console-{i}" for i in range(40)] + ["ps5", "xbox", "switch", "ps4", "Xbox"]
        for raw in raw_inputs:
            client.get(f"/availability/{raw}")

        metric_values = {r.tags[DOMAIN_TAG_KEY] for r in metric_sink.series(SERIES_NAME)}
        span_values = {s.tags[DOMAIN_TAG_KEY] for s in trace_sink.spans}
        assert metric_values <= known_values()
        assert span_values <= known_values()
        assert len(metric_values) <= len(known_values())
        assert {s.tags["uri"] for s in trace_sink.spans} == {"/availability/{console}"}

    def test_every_request_recorded_once(self, client: TestClient, metric_sink, trace_sink) -> None:
        for raw in ["ps5", "xbox", "nope", "switch"] * 5:
            client.get(f"/availability/{raw}")
        assert len(metric_sink.series(SERIES_NAME)) == 20
        assert len(trace_sink.spans) == 20


class TestSinkFailures:
    def test_broken_sinks_do_not_change_response(
        self, client: TestClient, telemetry: Telemetry, metric_sink
    ) -> None:
        class Broken:
            def record(self, *args, **kwargs) -> None:
                raise RuntimeError("backend down")

            def flush(self) -> None:
                pass

            def close(self) -> None:
                pass

        telemetry.metrics.sinks.insert(0, Broken())
        telemetry.tracer.sinks.insert(0, Broken())

        response = client.get("/availability/xbox")
        assert response.status_code == 200
        assert response.json() == {"console": "xbox", "available": True}
        assert len(metric_sink.records) == 1


class TestOperations:
    def test_health(self, client: TestClient) -> None:
        assert client.get("/health").json() == {"status": "ok"}

    def test_prometheus_exposition(self, client: TestClient) -> None:
        client.get("/availability/ps5")
        client.get("/availability/xbox")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert 'domain_value="ps5"' in response.text
        assert 'domain_value="xbox"' in response.text
        assert 'status="500"' in response.text

    def test_metrics_not_instrumented(self, client: TestClient, metric_sink) -> None:
        client.get("/metrics")
        assert metric_sink.records == []


class TestHandler:
    def test_unrecognised_outcome_is_a_server_error(
        self, telemetry: Telemetry, metric_sink, trace_sink, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setattr("availability.services.handler.decide", lambda _: object())
        with pytest.raises(TypeError):
            AvailabilityHandler(telemetry).handle("xbox")

        record, span = _last_pair(metric_sink, trace_sink)
        assert record.tags["status"] == "500"
        assert record.tags["exception"] == "TypeError"
        assert span.annotations["state"] == "TAGGED"
