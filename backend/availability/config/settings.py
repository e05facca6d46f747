from __future__ import annotations

"""backend/availability/config/settings.py

Application configuration using environment-driven settings.

This module centralizes:
- HTTP listen address for the availability service
- telemetry grouping (application name, per-process source identifier)
- which metric and trace sinks are enabled, and where they deliver
- Load Driver defaults (target URL, pacing, concurrency)

Every field can be overridden with an ``AVAILABILITY_``-prefixed
environment variable or a ``.env`` file.
"""
import socket
from functools import lru_cache
from typing import List, Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

MetricsSinkName = Literal["memory", "prometheus", "statsig"]
TraceSinkName = Literal["memory", "log", "http"]


class Settings(BaseSettings):
  app_name: str = "console-availability"
  environment: str = "development"

  # HTTP listen address
  host: str = "127.0.0.1"
  port: int = 8080

  # Telemetry grouping. Service and client must agree on application_name
  # for their series and spans to line up.
  application_name: str = "console-availability"
  source: str = socket.gethostname()

  # Sinks
  metrics_sinks: List[MetricsSinkName] = ["memory", "prometheus"]
  trace_sinks: List[TraceSinkName] = ["memory", "log"]
  memory_sink_capacity: int = 10_000

  # HTTP trace sink delivery
  telemetry_endpoint: str = "http://localhost:9411/api/spans"
  trace_flush_interval_seconds: float = 5.0
  trace_batch_size: int = 100

  statsig_server_secret: str | None = None

  log_level: str = "INFO"

  # Load Driver
  base_url: str = "http://127.0.0.1:8080"
  client_consoles: List[str] = ["ps5", "xbox", "switch", "ps4"]
  client_interval_seconds: float = 0.1
  client_repetitions: int | None = None
  client_concurrency: int = 4
  client_timeout_seconds: float = 5.0
  client_drain_on_shutdown: bool = True

  model_config = SettingsConfigDict(
      env_prefix="AVAILABILITY_",
      env_file=".env",
      env_file_encoding="utf-8",
  )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Return a cached Settings instance."""
  return Settings()
