from __future__ import annotations

"""backend/availability/services/policy.py

Deterministic fault simulation.

``decide`` looks a Classification up in a static, read-only table. There
is no randomness and no runtime state, so a demonstration run always
produces the same outcome for the same console.
"""

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Union

from availability.services.classifier import UNKNOWN, Classification, Console


class FaultReason(str, enum.Enum):
    INVALID_INPUT = "invalid-input"
    SIMULATED_SERVICE_ERROR = "simulated-service-error"


@dataclass(frozen=True)
class Available:
    available: bool


@dataclass(frozen=True)
class Fault:
    reason: FaultReason


Outcome = Union[Available, Fault]

# The console that always fails.
PROBLEM_CHILD = Console.PS5

OUTCOMES: Mapping[Classification, Outcome] = MappingProxyType(
    {
        UNKNOWN: Fault(FaultReason.INVALID_INPUT),
        PROBLEM_CHILD: Fault(FaultReason.SIMULATED_SERVICE_ERROR),
        Console.XBOX: Available(True),
        Console.SWITCH: Available(False),
        Console.PS4: Available(False),
    }
)

_missing = (set(Console) | {UNKNOWN}) - set(OUTCOMES)
if _missing:
    raise RuntimeError(f"no outcome configured for {sorted(c.value for c in _missing)}")


def decide(classification: Classification) -> Outcome:
    return OUTCOMES[classification]
