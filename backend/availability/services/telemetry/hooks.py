"""Before/after request hooks.

Cross-cutting tags are added here rather than in the handler:

- HttpTagsHook: method, route template, status, outcome and exception,
  in the shape of the usual ``http.server.requests`` series.
- DomainValueGuardHook: a request that ends without a ``domain_value``
  tag (the handler failed before classifying) is tagged ``UNKNOWN`` so
  every sample and span carries the same tag keys.
"""

from __future__ import annotations

import logging
from typing import Protocol

from availability.services.classifier import UNKNOWN
from availability.services.telemetry.context import RequestContext
from availability.services.telemetry.tagger import DOMAIN_TAG_KEY, tag_classification

logger = logging.getLogger(__name__)


class RequestHook(Protocol):
    def before(self, ctx: RequestContext) -> None: ...

    def after(self, ctx: RequestContext) -> None: ...


def _outcome(status: int) -> str:
    if status < 200:
        return "INFORMATIONAL"
    if status < 300:
        return "SUCCESS"
    if status < 400:
        return "REDIRECTION"
    if status < 500:
        return "CLIENT_ERROR"
    return "SERVER_ERROR"


def resolve_status(ctx: RequestContext) -> int:
    if ctx.status is not None:
        return ctx.status
    if ctx.error is not None:
        return getattr(ctx.error, "status_code", 500)
    return 200


class HttpTagsHook:
    def before(self, ctx: RequestContext) -> None:
        ctx.tag("method", ctx.method)
        # Route template, never the concrete path.
        ctx.tag("uri", ctx.uri)

    def after(self, ctx: RequestContext) -> None:
        status = resolve_status(ctx)
        ctx.tag("status", str(status))
        ctx.tag("outcome", _outcome(status))
        ctx.tag("exception", type(ctx.error).__name__ if ctx.error else "none")


class DomainValueGuardHook:
    def before(self, ctx: RequestContext) -> None:
        pass

    def after(self, ctx: RequestContext) -> None:
        if ctx.has_tag(DOMAIN_TAG_KEY):
            return
        logger.warning("%s %s finished untagged, recording UNKNOWN", ctx.method, ctx.uri)
        tag_classification(ctx, UNKNOWN)


def default_hooks() -> list[RequestHook]:
    return [HttpTagsHook(), DomainValueGuardHook()]
