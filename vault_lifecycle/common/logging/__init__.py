"""Structured logging for the lifecycle engines.

Usage:
    # At process startup
    from vault_lifecycle.common.logging import configure_logging
    configure_logging(service_name="billing-worker", log_level="INFO")

    # Anywhere
    from vault_lifecycle.common.logging import get_logger, log_with_context
    logger = get_logger(__name__)
    log_with_context(logger, "INFO", "Lease renewed", path="db/creds", ttl_seconds=3600)
"""

from vault_lifecycle.common.logging.config import (
    LIBRARY_LOGGER,
    TraceIDFilter,
    configure_logging,
    get_logger,
    log_with_context,
)
from vault_lifecycle.common.logging.context import (
    LogContext,
    clear_trace_id,
    generate_trace_id,
    get_or_create_trace_id,
    get_trace_id,
    set_trace_id,
    traced,
)
from vault_lifecycle.common.logging.formatter import JSONFormatter, redact

__all__ = [
    # Configuration
    "configure_logging",
    "get_logger",
    "log_with_context",
    "LIBRARY_LOGGER",
    "TraceIDFilter",
    # Trace ID management
    "generate_trace_id",
    "get_trace_id",
    "set_trace_id",
    "clear_trace_id",
    "get_or_create_trace_id",
    "LogContext",
    "traced",
    # Formatter
    "JSONFormatter",
    "redact",
]
