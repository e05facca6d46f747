# backend/availability/main.py
from __future__ import annotations

"""
FastAPI application setup.

This module depends on:
- availability.config.get_settings for configuration
- availability.services.telemetry for the process-wide tracer/metrics
- availability.api.api_router for route registration
"""

from fastapi import FastAPI

from availability import __version__
from availability.api import api_router
from availability.config import get_settings
from availability.services.telemetry import init_telemetry, shutdown_telemetry

settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    version=__version__,
)


# ---- Routes ----

app.include_router(api_router)


# ---- Lifecycle ----


@app.on_event("startup")
def on_startup() -> None:
    """Build metric and trace sinks before the first request."""
    init_telemetry(get_settings())


@app.on_event("shutdown")
def on_shutdown() -> None:
    """Flush buffered spans and close every telemetry sink."""
    shutdown_telemetry()


# ---- Healthcheck ----


@app.get("/health", tags=["health"])
def health() -> dict:
    return {"status": "ok"}
