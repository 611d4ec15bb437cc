# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Structured logging for Aurum Ledger.

The engine logs key-value events through structlog (e.g.
``ledger.reconciled``, ``currency.unknown_code``). Every logger wraps a
stdlib logger under the ``aurum_ledger`` namespace, which carries a
``NullHandler``: the engine stays silent until the host application
configures logging, either with :func:`configure_logging` or with its own
stdlib handlers.
"""

import logging
from typing import Any, Optional

import structlog

from .config import LoggingOptions

PACKAGE_LOGGER = "aurum_ledger"


def configure_logging(
    level: Optional[str] = None,
    json: Optional[bool] = None,
    options: Optional[LoggingOptions] = None,
) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Minimum log level name (DEBUG, INFO, WARNING, ...).
        json: Render events as JSON lines instead of the console renderer.
        options: The ``[logging]`` section of an :class:`AppConfig`.
            Explicit ``level`` and ``json`` arguments take precedence.
    """
    opts = options or LoggingOptions()
    level = opts.level if level is None else level
    json = opts.json if json is None else json

    numeric_level = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=numeric_level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric_level)

    renderer: Any
    if json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> Any:
    """Return a structlog logger wrapping the stdlib logger ``name``."""
    return structlog.wrap_logger(
        logging.getLogger(name), wrapper_class=structlog.stdlib.BoundLogger
    )
