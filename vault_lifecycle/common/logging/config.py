"""Logging setup for processes embedding the lifecycle engines.

Example:
    >>> from vault_lifecycle.common.logging.config import configure_logging
    >>> logger = configure_logging(service_name="billing-worker", log_level="INFO")
    >>> logger.info("Vault session started", extra={"context": {"auth": "approle"}})
"""

import logging
import sys
from typing import TextIO

from vault_lifecycle.common.logging.context import get_trace_id
from vault_lifecycle.common.logging.formatter import JSONFormatter

LIBRARY_LOGGER = "vault_lifecycle"


class TraceIDFilter(logging.Filter):
    """Logging filter that stamps the current trace ID onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id()
        return True


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    include_context: bool = True,
    stream: TextIO | None = None,
    logger_name: str | None = None,
) -> logging.Logger:
    """Configure structured JSON logging.

    Installs a single stream handler with the JSON formatter and trace ID
    filter. By default the root logger is configured; pass
    ``logger_name=LIBRARY_LOGGER`` to scope the setup to this library only
    (the logger then stops propagating to the root).

    Args:
        service_name: Name reported in the ``service`` field
        log_level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        include_context: Whether to include context dict in output
        stream: Destination stream (default: stdout)
        logger_name: Logger to configure (default: root)

    Returns:
        The configured logger

    Raises:
        ValueError: If log_level is invalid
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    target = logging.getLogger(logger_name)
    target.setLevel(numeric_level)
    target.handlers.clear()
    if logger_name:
        target.propagate = False

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter(service_name=service_name, include_context=include_context))
    handler.addFilter(TraceIDFilter())
    target.addHandler(handler)

    return target


def get_logger(name: str | None = None) -> logging.Logger:
    """Get a logger by name (typically ``__name__``)."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context_fields: object,
) -> None:
    """Log ``message`` with ``context_fields`` placed in the JSON ``context`` dict.

    Example:
        >>> log_with_context(get_logger(__name__), "INFO", "Lease rotated", path="db/creds")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra={"context": context_fields})
