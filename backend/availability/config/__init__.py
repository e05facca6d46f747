from __future__ import annotations

"""
Shortcut imports for configuration.
"""

from .logging import configure_logging  # noqa: F401
from .settings import Settings, get_settings  # noqa: F401
