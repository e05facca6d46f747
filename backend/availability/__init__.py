# backend/availability/__init__.py
from __future__ import annotations

"""
Console availability service and load driver.

Routers live in availability/api, services in availability/services,
the client-side Load Driver in availability/client.
"""

__version__ = "0.1.0"
