"""Tests for trace ID context management.

Tests verify:
- Trace IDs can be set, read and cleared
- LogContext restores the previous trace ID
- traced() gives each call a fresh trace ID
"""

import pytest

from vault_lifecycle.common.logging.context import (
    LogContext,
    clear_trace_id,
    generate_trace_id,
    get_or_create_trace_id,
    get_trace_id,
    set_trace_id,
    traced,
)


class TestTraceIDFunctions:
    """Test suite for trace ID helpers."""

    def setup_method(self) -> None:
        clear_trace_id()

    def teardown_method(self) -> None:
        clear_trace_id()

    def test_generate_returns_unique_ids(self) -> None:
        assert generate_trace_id() != generate_trace_id()

    def test_set_and_get(self) -> None:
        set_trace_id("renewal-1")

        assert get_trace_id() == "renewal-1"

    def test_set_empty_raises(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            set_trace_id("")

    def test_clear(self) -> None:
        set_trace_id("renewal-1")
        clear_trace_id()

        assert get_trace_id() is None

    def test_get_or_create_is_stable(self) -> None:
        first = get_or_create_trace_id()

        assert get_or_create_trace_id() == first
        assert get_trace_id() == first


class TestLogContext:
    """Test suite for LogContext and traced()."""

    def setup_method(self) -> None:
        clear_trace_id()

    def teardown_method(self) -> None:
        clear_trace_id()

    def test_sets_and_clears(self) -> None:
        with LogContext("renewal-1") as trace_id:
            assert trace_id == "renewal-1"
            assert get_trace_id() == "renewal-1"

        assert get_trace_id() is None

    def test_restores_previous(self) -> None:
        set_trace_id("outer")

        with LogContext("inner"):
            assert get_trace_id() == "inner"

        assert get_trace_id() == "outer"

    def test_generates_id_when_none_given(self) -> None:
        with LogContext() as trace_id:
            assert trace_id
            assert get_trace_id() == trace_id

    def test_traced_runs_each_call_in_fresh_context(self) -> None:
        seen: list[str | None] = []
        task = traced(lambda: seen.append(get_trace_id()))

        task()
        task()

        assert None not in seen
        assert seen[0] != seen[1]
        assert get_trace_id() is None

    def test_traced_preserves_return_value_and_name(self) -> None:
        def renew_lease(value: int) -> int:
            return value * 2

        wrapped = traced(renew_lease)

        assert wrapped(21) == 42
        assert wrapped.__name__ == "renew_lease"
