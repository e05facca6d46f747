"""Tracing primitives: Span, Tracer and the trace sinks spans are handed to.

A span is opened per inbound request and finished exactly once. On
finish the tracer hands it to every configured sink. Sinks must be
thread-safe; the service records from its worker threads.
"""

from __future__ import annotations

import json
import logging
import secrets
import threading
import time
from collections import deque
from collections.abc import Iterable
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)


def _new_id() -> str:
    return secrets.token_hex(8)


# ── Span ─────────────────────────────────────────────────────────────


@dataclass
class Span:
    """One timed unit of work with string tags."""

    name: str
    trace_id: str = field(default_factory=lambda: secrets.token_hex(16))
    span_id: str = field(default_factory=_new_id)
    parent_id: str | None = None
    start: float = field(default_factory=time.time)
    end: float | None = None
    tags: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def finished(self) -> bool:
        return self.end is not None

    @property
    def duration_ms(self) -> float:
        if self.end is None:
            return 0.0
        return (self.end - self.start) * 1000

    def set_tag(self, key: str, value: str) -> None:
        if self.finished:
            raise RuntimeError(f"span {self.name!r} already finished")
        self.tags[key] = value

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_id": self.parent_id,
            "start": self.start,
            "end": self.end,
            "duration_ms": round(self.duration_ms, 2),
            "tags": dict(self.tags),
        }
        if self.annotations:
            result["annotations"] = dict(self.annotations)
        return result


# ── Sinks ────────────────────────────────────────────────────────────


class TraceSink(Protocol):
    """Receives finished spans."""

    def record(self, span: Span) -> None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


class InMemoryTraceSink:
    """Keeps the most recent ``capacity`` spans."""

    def __init__(self, capacity: int = 10_000) -> None:
        self._spans: deque[Span] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    def record(self, span: Span) -> None:
        with self._lock:
            self._spans.append(span)

    @property
    def spans(self) -> list[Span]:
        with self._lock:
            return list(self._spans)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


class LoggingTraceSink:
    """Writes each finished span as one JSON log line."""

    def __init__(self, level: int = logging.INFO) -> None:
        self._level = level

    def record(self, span: Span) -> None:
        logger.log(self._level, "span %s", json.dumps(span.to_dict(), sort_keys=True))

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass


class HttpTraceSink:
    """Buffers spans and POSTs them as JSON batches to ``endpoint``.

    Delivery happens on a background thread every ``flush_interval``
    seconds, or as soon as ``batch_size`` spans are waiting. A failed
    batch is dropped and logged; spans are never retried.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        flush_interval: float = 5.0,
        batch_size: int = 100,
        client: httpx.Client | None = None,
    ) -> None:
        self.endpoint = endpoint
        self._batch_size = batch_size
        self._flush_interval = flush_interval
        self._client = client or httpx.Client(timeout=5.0)
        self._buffer: list[Span] = []
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._stopped = threading.Event()
        self._thread = threading.Thread(
            target=self._run, name="http-trace-sink", daemon=True
        )
        self._thread.start()

    def record(self, span: Span) -> None:
        with self._lock:
            self._buffer.append(span)
            full = len(self._buffer) >= self._batch_size
        if full:
            self._wakeup.set()

    def _run(self) -> None:
        while not self._stopped.is_set():
            self._wakeup.wait(self._flush_interval)
            self._wakeup.clear()
            self.flush()

    def flush(self) -> None:
        with self._lock:
            batch, self._buffer = self._buffer, []
        if not batch:
            return
        try:
            response = self._client.post(
                self.endpoint, json=[span.to_dict() for span in batch]
            )
            response.raise_for_status()
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "Dropping %d spans, delivery to %s failed: %s",
                len(batch),
                self.endpoint,
                exc,
            )

    def close(self) -> None:
        self._stopped.set()
        self._wakeup.set()
        self._thread.join(timeout=self._flush_interval + 1)
        self.flush()
        self._client.close()


# ── Tracer ───────────────────────────────────────────────────────────


class Tracer:
    """Creates spans and hands finished ones to its sinks."""

    def __init__(
        self,
        sinks: Iterable[TraceSink] = (),
        common_tags: dict[str, str] | None = None,
    ) -> None:
        self.sinks: list[TraceSink] = list(sinks)
        self.common_tags = dict(common_tags or {})

    def start_span(self, name: str, parent: Span | None = None) -> Span:
        parent = parent if parent is not None else _current_span.get()
        span = Span(name=name, tags=dict(self.common_tags))
        if parent is not None:
            span.trace_id = parent.trace_id
            span.parent_id = parent.span_id
        return span

    def finish(self, span: Span) -> None:
        if span.finished:
            return
        span.end = time.time()
        for sink in self.sinks:
            try:
                sink.record(span)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Trace sink %s failed: %s", type(sink).__name__, exc)

    def activate(self, span: Span):
        return _current_span.set(span)

    def deactivate(self, token) -> None:
        _current_span.reset(token)

    def flush(self) -> None:
        for sink in self.sinks:
            sink.flush()

    def close(self) -> None:
        for sink in self.sinks:
            try:
                sink.close()
            except Exception as exc:  # noqa: BLE001
                logger.debug("Trace sink %s close failed: %s", type(sink).__name__, exc)
