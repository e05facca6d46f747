from __future__ import annotations

"""backend/availability/services/handler.py

Availability request orchestration.

Each call to ``AvailabilityHandler.handle`` walks one request through

    RECEIVED -> CLASSIFIED -> TAGGED -> RESPONDED | FAULTED

inside a single telemetry RequestContext:

- the raw console string is classified (never trusted as a tag),
- the classification is tagged on both the span and the metric sample,
  whatever the eventual outcome,
- the outcome policy decides between a response and a fault.

Faults are raised as AvailabilityError subclasses after tagging; the
handler never retries and never swallows them.
"""

import enum
import logging

from availability import schemas
from availability.services.classifier import classify
from availability.services.errors import error_for
from availability.services.policy import Available, Fault, FaultReason, decide
from availability.services.telemetry import RequestContext, Telemetry, tag_classification

logger = logging.getLogger(__name__)

ROUTE_TEMPLATE = "/availability/{console}"


class RequestState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    CLASSIFIED = "CLASSIFIED"
    TAGGED = "TAGGED"
    RESPONDED = "RESPONDED"
    FAULTED = "FAULTED"


class AvailabilityHandler:
    def __init__(self, telemetry: Telemetry) -> None:
        self.telemetry = telemetry

    def handle(self, raw: str) -> schemas.ConsoleAvailability:
        with self.telemetry.request("GET", ROUTE_TEMPLATE) as ctx:
            _enter(ctx, RequestState.RECEIVED)

            classification = classify(raw)
            _enter(ctx, RequestState.CLASSIFIED)

            tag_classification(ctx, classification)
            _enter(ctx, RequestState.TAGGED)

            outcome = decide(classification)
            if isinstance(outcome, Fault):
                _enter(ctx, RequestState.FAULTED)
                ctx.span.annotate("fault", outcome.reason.value)
                logger.debug("%s faulted: %s", classification.value, outcome.reason.value)
                error_cls = error_for(outcome.reason)
                raise error_cls(
                    _fault_message(raw, outcome),
                    classification=classification.value,
                )
            elif isinstance(outcome, Available):
                _enter(ctx, RequestState.RESPONDED)
                ctx.status = 200
                logger.debug("%s available=%s", classification.value, outcome.available)
                return schemas.ConsoleAvailability(
                    console=classification.value,
                    available=outcome.available,
                )
            else:
                raise TypeError(f"unexpected outcome {outcome!r}")


def _enter(ctx: RequestContext, state: RequestState) -> None:
    """Record a state transition on the request span."""
    ctx.span.annotations.setdefault("transitions", []).append(state.value)
    ctx.span.annotate("state", state.value)
    logger.debug("%s %s -> %s", ctx.method, ctx.uri, state.value)


def _fault_message(raw: str, fault: Fault) -> str:
    if fault.reason is FaultReason.INVALID_INPUT:
        return f"Unknown console {raw!r}"
    return f"Availability backend for {raw!r} failed"
