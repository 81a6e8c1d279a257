"""Tests for the JSON log formatter.

Tests verify:
- Records render as JSON with the fixed schema
- Sensitive context fields are redacted (including nested ones)
- Exceptions and source location are included
"""

import json
import logging
import sys
from datetime import timedelta

import pytest

from vault_lifecycle.common.logging.formatter import REDACTED, JSONFormatter, redact


def make_record(msg: str = "Lease renewed", level: int = logging.INFO, **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="vault_lifecycle.lease.engine",
        level=level,
        pathname="/app/vault_lifecycle/lease/engine.py",
        lineno=120,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRedact:
    """Test suite for redact()."""

    def test_masks_sensitive_keys(self) -> None:
        result = redact({"path": "kv/app", "token": "hvs.abc", "secret_id": "s"})

        assert result == {"path": "kv/app", "token": REDACTED, "secret_id": REDACTED}

    def test_matching_is_case_insensitive(self) -> None:
        assert redact({"Password": "hunter2"}) == {"Password": REDACTED}

    def test_nested_mappings_are_redacted(self) -> None:
        result = redact({"auth": {"client_token": "hvs.abc", "policies": ["default"]}})

        assert result == {"auth": {"client_token": REDACTED, "policies": ["default"]}}

    def test_input_is_not_modified(self) -> None:
        context = {"token": "hvs.abc"}

        redact(context)

        assert context == {"token": "hvs.abc"}


class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    @pytest.fixture()
    def formatter(self) -> JSONFormatter:
        return JSONFormatter(service_name="billing-worker")

    def test_basic_log_format(self, formatter: JSONFormatter) -> None:
        record = make_record(trace_id="trace-1")

        entry = json.loads(formatter.format(record))

        assert entry["level"] == "INFO"
        assert entry["service"] == "billing-worker"
        assert entry["trace_id"] == "trace-1"
        assert entry["logger"] == "vault_lifecycle.lease.engine"
        assert entry["message"] == "Lease renewed"
        assert entry["timestamp"].endswith("Z")

    def test_missing_trace_id(self, formatter: JSONFormatter) -> None:
        entry = json.loads(formatter.format(make_record()))

        assert entry["trace_id"] is None

    def test_extra_fields_become_redacted_context(self, formatter: JSONFormatter) -> None:
        record = make_record(path="database/creds/readonly", token="hvs.leak")

        entry = json.loads(formatter.format(record))

        assert entry["context"] == {"path": "database/creds/readonly", "token": REDACTED}
        assert "hvs.leak" not in formatter.format(record)

    def test_record_formatted_by_another_handler(self, formatter: JSONFormatter) -> None:
        record = make_record(path="database/creds/readonly")
        logging.Formatter("%(asctime)s %(levelname)s %(message)s").format(record)

        entry = json.loads(formatter.format(record))

        assert entry["context"] == {"path": "database/creds/readonly"}

    def test_explicit_context_dict_wins(self, formatter: JSONFormatter) -> None:
        record = make_record(context={"lease_id": "abc", "secrets": {"password": "x"}}, other=1)

        entry = json.loads(formatter.format(record))

        assert entry["context"] == {"lease_id": "abc", "secrets": REDACTED}

    def test_no_context_when_disabled(self) -> None:
        formatter = JSONFormatter(service_name="billing-worker", include_context=False)

        entry = json.loads(formatter.format(make_record(path="kv/app")))

        assert "context" not in entry

    def test_exception_logging(self, formatter: JSONFormatter) -> None:
        try:
            raise RuntimeError("Vault sealed")
        except RuntimeError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(formatter.format(record))

        assert entry["exception"]["type"] == "RuntimeError"
        assert entry["exception"]["message"] == "Vault sealed"
        assert "Traceback" in entry["exception"]["traceback"]

    def test_source_location(self, formatter: JSONFormatter) -> None:
        entry = json.loads(formatter.format(make_record()))

        assert entry["source"]["file"] == "/app/vault_lifecycle/lease/engine.py"
        assert entry["source"]["line"] == 120

    def test_non_serializable_values_use_str(self, formatter: JSONFormatter) -> None:
        entry = json.loads(formatter.format(make_record(delay=timedelta(seconds=55))))

        assert entry["context"]["delay"] == "0:00:55"
