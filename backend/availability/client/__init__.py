from __future__ import annotations

"""
Client-side Load Driver for the availability service.
"""

from .driver import LoadDriver, LoadDriverState, log_result, run_from_settings  # noqa: F401
