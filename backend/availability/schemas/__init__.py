# backend/availability/schemas/__init__.py
from __future__ import annotations

"""
Pydantic schemas for request/response models.

This module is the API contract layer and is used by:
- API routes (response models)
- the request handler (building responses)
- the Load Driver (validating responses it receives)
"""

from pydantic import BaseModel, ConfigDict, Field


class ConsoleAvailability(BaseModel):
    """Successful availability answer for one console."""

    console: str
    available: bool

    model_config = ConfigDict(extra="forbid")


class ErrorDetail(BaseModel):
    detail: str


class AvailabilityResult(BaseModel):
    """What the Load Driver observed for one request.

    ``fallback`` is true when the request failed and ``available`` is the
    substituted default rather than the service's answer.
    """

    console: str
    available: bool = False
    fallback: bool = False
    error: str | None = Field(default=None, description="Failure summary when fallback is set")
