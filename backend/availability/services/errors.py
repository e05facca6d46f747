from __future__ import annotations

"""backend/availability/services/errors.py

Faults surfaced by the request handler.

Both carry the HTTP status the route layer should answer with:

- InvalidInputError: the caller asked for something outside the console
  set (client misuse, 400).
- SimulatedServiceError: the designated console failed on purpose
  (internal failure, 500).
"""

from availability.services.policy import FaultReason


class AvailabilityError(Exception):
    """Base class for faults raised by the availability handler."""

    status_code: int = 500
    reason: FaultReason

    def __init__(self, message: str, *, classification: str) -> None:
        super().__init__(message)
        self.message = message
        self.classification = classification


class InvalidInputError(AvailabilityError):
    status_code = 400
    reason = FaultReason.INVALID_INPUT


class SimulatedServiceError(AvailabilityError):
    status_code = 500
    reason = FaultReason.SIMULATED_SERVICE_ERROR


_BY_REASON: dict[FaultReason, type[AvailabilityError]] = {
    FaultReason.INVALID_INPUT: InvalidInputError,
    FaultReason.SIMULATED_SERVICE_ERROR: SimulatedServiceError,
}


def error_for(reason: FaultReason) -> type[AvailabilityError]:
    return _BY_REASON[reason]
