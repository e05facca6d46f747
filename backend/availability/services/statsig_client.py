"""Statsig metrics sink: forwards each metric recording as a Statsig event."""
from __future__ import annotations

import logging
from collections.abc import Mapping

from statsig import StatsigEvent, StatsigOptions, StatsigUser
from statsig.statsig_server import StatsigServer

logger = logging.getLogger(__name__)


class StatsigMetricsSink:
    """Metrics sink backed by a private StatsigServer instance.

    Without a secret key the sink stays disabled and drops recordings.
    The ``source`` tag, when present, is used as the Statsig user id so
    events from one host group together.
    """

    def __init__(self, secret_key: str | None, environment: str):
        self._client: StatsigServer | None = None
        if not secret_key:
            return

        try:
            client = StatsigServer()
            client.initialize(secret_key, StatsigOptions(tier=environment))
            self._client = client
        except Exception as exc:  # noqa: BLE001
            logger.warning("Statsig initialization failed: %s", exc)
            self._client = None

    @property
    def enabled(self) -> bool:
        return self._client is not None

    def record(
        self,
        series_name: str,
        tags: Mapping[str, str],
        value: float,
        timestamp: float,
    ) -> None:
        if not self._client:
            return

        user = StatsigUser(user_id=tags.get("source", "availability"))
        metadata = {**tags, "timestamp": str(int(timestamp * 1000))}
        try:
            self._client.log_event(
                StatsigEvent(user, series_name, value=value, metadata=metadata)
            )
        except Exception as exc:  # noqa: BLE001
            logger.debug("Statsig event failed: %s", exc)

    def close(self) -> None:
        if not self._client:
            return

        try:
            self._client.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Statsig shutdown failed: %s", exc)
