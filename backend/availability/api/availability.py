# backend/availability/api/availability.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from availability import schemas
from availability.services.errors import AvailabilityError
from availability.services.handler import AvailabilityHandler
from availability.services.telemetry import get_telemetry

router = APIRouter(prefix="/availability", tags=["availability"])


def get_handler() -> AvailabilityHandler:
    """FastAPI dependency returning a handler bound to process telemetry."""
    return AvailabilityHandler(get_telemetry())


# ":path" also matches the empty string and values containing "/", so
# every request under the prefix is classified and recorded.
@router.get(
    "/{console:path}",
    response_model=schemas.ConsoleAvailability,
    responses={
        400: {"model": schemas.ErrorDetail},
        500: {"model": schemas.ErrorDetail},
    },
)
def get_availability(
    console: str,
    handler: AvailabilityHandler = Depends(get_handler),
) -> schemas.ConsoleAvailability:
    try:
        return handler.handle(console)
    except AvailabilityError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc
