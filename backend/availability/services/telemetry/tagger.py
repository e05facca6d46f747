"""Correlation tag shared by metrics and traces.

``tag_classification`` is the only writer of the ``domain_value`` tag. It
writes the same value to the request's span and to its metric sample, so
a data point for console X at time T can be matched with a span tagged X
recorded around T.
"""

from __future__ import annotations

from availability.services.classifier import Classification, Console, Unknown
from availability.services.telemetry.context import RequestContext

DOMAIN_TAG_KEY = "domain_value"


def tag_classification(ctx: RequestContext, classification: Classification) -> None:
    """Attach ``classification`` to both channels of ``ctx``.

    Raises:
        TypeError: if given anything but a Classification (raw input is
            never a valid tag value).
        RuntimeError: if the context was already tagged.
    """
    if not isinstance(classification, (Console, Unknown)):
        raise TypeError(
            f"domain tag must be a Classification, got {type(classification).__name__}"
        )
    if ctx.has_tag(DOMAIN_TAG_KEY):
        raise RuntimeError("domain_value already tagged for this request")
    ctx.tag(DOMAIN_TAG_KEY, classification.value)
