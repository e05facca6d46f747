from __future__ import annotations

"""Logging setup shared by the service and the Load Driver."""

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Route ``availability.*`` loggers to stderr at ``level``.

    Safe to call more than once; the previous handler is replaced.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger = logging.getLogger("availability")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False

    logging.getLogger("httpx").setLevel(logging.WARNING)
