from __future__ import annotations

"""backend/availability/services/classifier.py

Validation of raw console identifiers.

Every tag value that reaches telemetry comes out of ``classify``. The
result is either a member of the closed ``Console`` enumeration or the
``UNKNOWN`` sentinel, so the number of distinct tag values is bounded by
``len(Console) + 1`` no matter what callers send.
"""

import enum
from typing import Union


class Console(str, enum.Enum):
    PS5 = "ps5"
    XBOX = "xbox"
    SWITCH = "switch"
    PS4 = "ps4"


class Unknown(str, enum.Enum):
    UNKNOWN = "UNKNOWN"


UNKNOWN = Unknown.UNKNOWN

Classification = Union[Console, Unknown]

# Tag cardinality ceiling for domain values.
MAX_DOMAIN_SIZE = 16
if len(Console) > MAX_DOMAIN_SIZE:
    raise RuntimeError(f"Console has {len(Console)} members, limit is {MAX_DOMAIN_SIZE}")

_BY_VALUE: dict[str, Console] = {console.value: console for console in Console}


def classify(raw: str | None) -> Classification:
    """Map ``raw`` onto a Console, or UNKNOWN.

    Matching is exact and case-sensitive; no trimming is applied.
    Never raises.
    """
    if not raw:
        return UNKNOWN
    return _BY_VALUE.get(raw, UNKNOWN)


def known_values() -> frozenset[str]:
    """All tag values ``classify`` can ever produce."""
    return frozenset(_BY_VALUE) | {UNKNOWN.value}
