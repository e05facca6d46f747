# backend/availability/api/operations.py
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response

from availability.services.telemetry import get_telemetry
from availability.services.telemetry.metrics import PrometheusMetricsSink

router = APIRouter(tags=["operations"])


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    """
    Prometheus exposition of the request series.

    Only available when the prometheus metrics sink is enabled. This
    endpoint is not itself instrumented.
    """
    sink = get_telemetry().metrics.find_sink(PrometheusMetricsSink)
    if sink is None:
        raise HTTPException(status_code=404, detail="Prometheus sink not enabled")
    body, content_type = sink.render()
    return Response(content=body, media_type=content_type)
