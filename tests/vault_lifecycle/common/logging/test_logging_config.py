"""Tests for logging configuration.

Tests verify:
- configure_logging sets up JSON logging on the root or a named logger
- TraceIDFilter stamps trace IDs onto records
- log_with_context places fields in the context dict
"""

import json
import logging
from collections.abc import Iterator
from io import StringIO

import pytest

from vault_lifecycle.common.logging.config import (
    LIBRARY_LOGGER,
    TraceIDFilter,
    configure_logging,
    get_logger,
    log_with_context,
)
from vault_lifecycle.common.logging.context import LogContext, clear_trace_id


@pytest.fixture()
def restore_loggers() -> Iterator[None]:
    """Snapshot root and library logger state, restore it afterwards."""
    saved = {}
    for name in (None, LIBRARY_LOGGER):
        target = logging.getLogger(name)
        saved[name] = (target.level, list(target.handlers), target.propagate)
    yield
    for name, (level, handlers, propagate) in saved.items():
        target = logging.getLogger(name)
        target.setLevel(level)
        target.handlers[:] = handlers
        target.propagate = propagate


class TestTraceIDFilter:
    """Test suite for TraceIDFilter."""

    def teardown_method(self) -> None:
        clear_trace_id()

    def test_filter_adds_trace_id(self) -> None:
        record = logging.LogRecord("test", logging.INFO, "f.py", 1, "msg", (), None)

        with LogContext("renewal-9"):
            assert TraceIDFilter().filter(record) is True

        assert record.trace_id == "renewal-9"  # type: ignore[attr-defined]

    def test_filter_adds_none_without_context(self) -> None:
        record = logging.LogRecord("test", logging.INFO, "f.py", 1, "msg", (), None)

        TraceIDFilter().filter(record)

        assert record.trace_id is None  # type: ignore[attr-defined]


@pytest.mark.usefixtures("restore_loggers")
class TestConfigureLogging:
    """Test suite for configure_logging."""

    def test_configures_root_logger_by_default(self) -> None:
        logger = configure_logging("billing-worker", log_level="WARNING", stream=StringIO())

        assert logger is logging.getLogger()
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1

    def test_invalid_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging("billing-worker", log_level="LOUD")

    def test_outputs_json_with_trace_id(self) -> None:
        stream = StringIO()
        logger = configure_logging(
            "billing-worker", stream=stream, logger_name=LIBRARY_LOGGER
        )

        with LogContext("renewal-1"):
            logging.getLogger("vault_lifecycle.session.engine").info(
                "Session token renewed", extra={"ttl_seconds": 30}
            )

        entry = json.loads(stream.getvalue().strip())
        assert logger.propagate is False
        assert entry["service"] == "billing-worker"
        assert entry["trace_id"] == "renewal-1"
        assert entry["logger"] == "vault_lifecycle.session.engine"
        assert entry["context"] == {"ttl_seconds": 30}

    def test_reconfiguring_replaces_handlers(self) -> None:
        configure_logging("a", stream=StringIO(), logger_name=LIBRARY_LOGGER)
        logger = configure_logging("b", stream=StringIO(), logger_name=LIBRARY_LOGGER)

        assert len(logger.handlers) == 1

    def test_log_with_context(self) -> None:
        stream = StringIO()
        logger = configure_logging("billing-worker", stream=stream, logger_name=LIBRARY_LOGGER)

        log_with_context(logger, "WARNING", "Lease rotated", path="database/creds/readonly")

        entry = json.loads(stream.getvalue().strip())
        assert entry["level"] == "WARNING"
        assert entry["context"] == {"path": "database/creds/readonly"}

    def test_get_logger(self) -> None:
        assert get_logger("vault_lifecycle.x").name == "vault_lifecycle.x"
        assert get_logger() is logging.getLogger()
