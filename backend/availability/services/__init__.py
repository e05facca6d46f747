from __future__ import annotations

"""
Domain services for the availability API.

- classifier: raw input -> bounded Classification
- policy: Classification -> Outcome (deterministic fault simulation)
- handler: per-request orchestration
- telemetry: tracer, metrics registry, correlation tagging
"""
