"""
Logging setup for MetaStore entry points.

Library modules only create module loggers; the CLI and HTTP entry points
call setup_logging() once to install a handler on the root logger.

JSON output carries the ``extra={...}`` context of each record (table,
parent id, key, type tag) as top-level fields.
"""

from __future__ import annotations

import logging

import json_log_formatter

from .config import Settings

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: Settings, verbose: bool = False) -> None:
    """Configure logging based on settings.

    Args:
        settings: MetaStore settings
        verbose: Force DEBUG level
    """
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
