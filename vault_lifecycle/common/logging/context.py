"""Trace ID propagation for background renewal work.

Every scheduled renewal, expiry or rotation runs on a worker thread that has
no caller context. The scheduler wraps each task in a fresh trace ID so all
log lines of one cycle (renew call, event publication, reschedule) can be
grouped together.

Example:
    >>> from vault_lifecycle.common.logging.context import LogContext, get_trace_id
    >>> with LogContext("renewal-123"):
    ...     get_trace_id()
    'renewal-123'
"""

import contextvars
import functools
import uuid
from collections.abc import Callable
from types import TracebackType
from typing import ParamSpec, TypeVar

_trace_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)

P = ParamSpec("P")
R = TypeVar("R")


def generate_trace_id() -> str:
    """Generate a new unique trace ID (UUID v4 string)."""
    return str(uuid.uuid4())


def get_trace_id() -> str | None:
    """Get the trace ID of the current context, or None if unset."""
    return _trace_id_var.get()


def set_trace_id(trace_id: str) -> None:
    """Set the trace ID for the current context.

    Raises:
        ValueError: If trace_id is empty or None
    """
    if not trace_id:
        raise ValueError("Trace ID cannot be empty")
    _trace_id_var.set(trace_id)


def clear_trace_id() -> None:
    """Clear the trace ID from the current context."""
    _trace_id_var.set(None)


def get_or_create_trace_id() -> str:
    """Return the current trace ID, generating and setting one if absent."""
    trace_id = get_trace_id()
    if trace_id is None:
        trace_id = generate_trace_id()
        set_trace_id(trace_id)
    return trace_id


class LogContext:
    """Context manager for scoped trace ID management.

    Sets a trace ID for a block of code and restores the previous value
    when done.

    Args:
        trace_id: The trace ID to set for this context. If None, generates new ID.

    Example:
        >>> with LogContext() as trace_id:
        ...     get_trace_id() == trace_id
        True
    """

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or generate_trace_id()
        self.previous_trace_id: str | None = None

    def __enter__(self) -> str:
        self.previous_trace_id = get_trace_id()
        set_trace_id(self.trace_id)
        return self.trace_id

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self.previous_trace_id is not None:
            set_trace_id(self.previous_trace_id)
        else:
            clear_trace_id()


def traced(fn: Callable[P, R]) -> Callable[P, R]:
    """Wrap ``fn`` so each invocation runs under its own trace ID.

    Used by the renewal scheduler for every task it dispatches.

    Example:
        >>> task = traced(lambda: get_trace_id())
        >>> task() is not None
        True
    """

    @functools.wraps(fn)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        with LogContext():
            return fn(*args, **kwargs)

    return wrapper
