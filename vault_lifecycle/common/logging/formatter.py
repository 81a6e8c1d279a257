"""JSON log formatter with credential redaction.

Outputs one JSON document per record with a fixed schema. Any context field
whose name marks it as sensitive (tokens, secret ids, secret payloads) is
replaced with a placeholder before serialization, so a careless
``extra={"token": ...}`` never reaches the log stream.

Example log output:
    {
        "timestamp": "2026-03-02T10:30:00.000Z",
        "level": "INFO",
        "service": "billing-worker",
        "trace_id": "abc123-def456",
        "logger": "vault_lifecycle.lease.engine",
        "message": "Lease renewed",
        "context": {
            "path": "database/creds/readonly",
            "lease_id": "database/creds/readonly/abc",
            "ttl_seconds": 3600
        }
    }
"""

import json
import logging
import traceback
from collections.abc import Mapping
from datetime import UTC, datetime
from types import TracebackType
from typing import Any

REDACTED = "***"

SENSITIVE_FIELDS = frozenset(
    {
        "token",
        "client_token",
        "secret_id",
        "password",
        "secrets",
        "data",
    }
)

_RESERVED_FIELDS = frozenset(
    {
        "name",
        "msg",
        "message",
        "asctime",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "taskName",
        "trace_id",
        "context",
        "exc_info",
        "exc_text",
        "stack_info",
    }
)


def redact(context: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of ``context`` with sensitive values masked.

    Nested mappings are redacted recursively.

    Example:
        >>> redact({"path": "kv/app", "token": "hvs.abc"})
        {'path': 'kv/app', 'token': '***'}
    """
    redacted: dict[str, Any] = {}
    for key, value in context.items():
        if key.lower() in SENSITIVE_FIELDS:
            redacted[key] = REDACTED
        elif isinstance(value, Mapping):
            redacted[key] = redact(value)
        else:
            redacted[key] = value
    return redacted


class JSONFormatter(logging.Formatter):
    """Formatter that renders log records as redacted JSON.

    Attributes:
        service_name: Name of the service emitting logs
        include_context: Whether to include extra context fields

    Example:
        >>> formatter = JSONFormatter(service_name="billing-worker")
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self, service_name: str, include_context: bool = True, *args: Any, **kwargs: Any
    ) -> None:
        super().__init__(*args, **kwargs)
        self.service_name = service_name
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self._format_timestamp(record.created),
            "level": record.levelname,
            "service": self.service_name,
            "trace_id": getattr(record, "trace_id", None),
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.include_context:
            context = self._extract_context(record)
            if context:
                log_entry["context"] = redact(context)

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self._format_exception(record.exc_info),
            }

        log_entry["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        return json.dumps(log_entry, default=str)

    def _format_timestamp(self, created: float) -> str:
        """Format a record timestamp as ISO 8601 UTC with millisecond precision."""
        dt = datetime.fromtimestamp(created, tz=UTC)
        return dt.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"

    def _extract_context(self, record: logging.LogRecord) -> dict[str, Any] | None:
        """Collect the record's context.

        An explicit ``context`` dict wins; otherwise every non-standard
        attribute set through ``extra=`` is returned.
        """
        context = getattr(record, "context", None)
        if context and isinstance(context, dict):
            return dict(context)

        extra = {
            key: value for key, value in record.__dict__.items() if key not in _RESERVED_FIELDS
        }
        return extra if extra else None

    def _format_exception(
        self,
        exc_info: tuple[type[BaseException] | None, BaseException | None, TracebackType | None],
    ) -> str:
        return "".join(traceback.format_exception(*exc_info))
