"""Per-request telemetry context.

A ``RequestContext`` owns one span and one metric sample. ``Telemetry.request``
opens it, runs the before-hooks, yields it to the handler, runs the
after-hooks and then finishes the span and stops the sample. The last
step happens on every exit path, including exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from availability.services.telemetry.metrics import MetricSample, MetricsRegistry
from availability.services.telemetry.tracing import Span, Tracer

if TYPE_CHECKING:
    from availability.services.telemetry.hooks import RequestHook

logger = logging.getLogger(__name__)

SERIES_NAME = "http.server.requests"


class RequestContext:
    """Telemetry handles for one inbound request.

    Owned by exactly one handling task; never shared between requests.
    """

    def __init__(self, *, method: str, uri: str, span: Span, sample: MetricSample) -> None:
        self.method = method
        self.uri = uri
        self.span = span
        self.sample = sample
        self.status: int | None = None
        self.error: BaseException | None = None

    def tag(self, key: str, value: str) -> None:
        """Attach the same tag to the span and the metric sample."""
        self.span.set_tag(key, value)
        self.sample.tag(key, value)

    def has_tag(self, key: str) -> bool:
        return key in self.span.tags and key in self.sample.tags

    @property
    def closed(self) -> bool:
        return self.sample.stopped and self.span.finished


@dataclass
class Telemetry:
    """Process-wide tracer, metrics registry and request hooks."""

    tracer: Tracer
    metrics: MetricsRegistry
    hooks: Sequence[RequestHook] = field(default_factory=list)

    @contextmanager
    def request(self, method: str, uri: str) -> Iterator[RequestContext]:
        ctx = RequestContext(
            method=method,
            uri=uri,
            span=self.tracer.start_span(f"{method} {uri}"),
            sample=self.metrics.start_sample(SERIES_NAME),
        )
        token = self.tracer.activate(ctx.span)
        self._run_hooks("before", ctx)
        try:
            yield ctx
        except Exception as exc:
            ctx.error = exc
            raise
        finally:
            self._run_hooks("after", ctx)
            self.tracer.deactivate(token)
            self._close(ctx)

    def _run_hooks(self, phase: str, ctx: RequestContext) -> None:
        for hook in self.hooks:
            try:
                getattr(hook, phase)(ctx)
            except Exception as exc:  # noqa: BLE001
                logger.warning("Request hook %s.%s failed: %s", type(hook).__name__, phase, exc)

    def _close(self, ctx: RequestContext) -> None:
        if not ctx.sample.stopped:
            ctx.sample.stop()
        self.tracer.finish(ctx.span)

    def flush(self) -> None:
        self.tracer.flush()

    def close(self) -> None:
        self.tracer.close()
        self.metrics.close()
