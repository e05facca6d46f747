# backend/availability/api/__init__.py
from __future__ import annotations

"""
API router aggregation.

This module exposes a single `api_router` that the FastAPI app
includes at the root, so routes are served as `/availability/{console}`.
"""

from fastapi import APIRouter

from . import availability, operations

api_router = APIRouter()
api_router.include_router(availability.router)
api_router.include_router(operations.router)
