"""
Tests for vault_lifecycle/domain/lease.py - Lease, SecretResponse, RequestedSecret.

Test Coverage:
    - Lease construction and classification (none, rotating generic)
    - Lease equality ignores issue time
    - SecretResponse data is read-only
    - RequestedSecret validation and identity semantics
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from vault_lifecycle.domain.lease import (
    Lease,
    RequestedSecret,
    RequestedSecretMode,
    SecretResponse,
)


class TestLease:
    """Test Lease value semantics."""

    @pytest.mark.unit()
    def test_from_seconds(self) -> None:
        lease = Lease.from_seconds("database/creds/readonly/abc", 60, True)

        assert lease.lease_duration == timedelta(seconds=60)
        assert lease.has_lease_id
        assert not lease.is_none

    @pytest.mark.unit()
    def test_none_sentinel(self) -> None:
        lease = Lease.none()

        assert lease.is_none
        assert not lease.has_lease_id
        assert not lease.is_rotating_generic

    @pytest.mark.unit()
    def test_rotating_generic_lease(self) -> None:
        assert Lease.from_seconds("", 3600, False).is_rotating_generic
        assert not Lease.from_seconds("kv/abc", 3600, False).is_rotating_generic
        assert not Lease.from_seconds("", 3600, True).is_rotating_generic

    @pytest.mark.unit()
    def test_negative_duration_rejected(self) -> None:
        with pytest.raises(ValueError, match="lease_duration"):
            Lease.from_seconds("id", -5, True)

    @pytest.mark.unit()
    def test_equality_ignores_issue_time(self) -> None:
        first = Lease("id", timedelta(seconds=60), True, issued_at=datetime(2024, 1, 1, tzinfo=UTC))
        second = Lease("id", timedelta(seconds=60), True, issued_at=datetime(2025, 1, 1, tzinfo=UTC))

        assert first == second

    @pytest.mark.unit()
    def test_remaining(self) -> None:
        issued = datetime(2024, 1, 1, tzinfo=UTC)
        lease = Lease("id", timedelta(seconds=60), True, issued_at=issued)

        assert lease.remaining(issued + timedelta(seconds=45)) == timedelta(seconds=15)
        assert lease.remaining(issued + timedelta(seconds=90)) == timedelta(0)


class TestSecretResponse:
    """Test SecretResponse."""

    @pytest.mark.unit()
    def test_defaults_to_no_lease(self) -> None:
        response = SecretResponse(data={"api_key": "k"})

        assert response.lease.is_none

    @pytest.mark.unit()
    def test_data_is_read_only_copy(self) -> None:
        source = {"username": "app"}
        response = SecretResponse(data=source)
        source["username"] = "changed"

        assert response.data["username"] == "app"
        with pytest.raises(TypeError):
            response.data["username"] = "x"  # type: ignore[index]

    @pytest.mark.unit()
    def test_repr_hides_data(self) -> None:
        response = SecretResponse(data={"password": "hunter2"})

        assert "hunter2" not in repr(response)


class TestRequestedSecret:
    """Test RequestedSecret validation and identity."""

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        ("factory", "mode"),
        [
            (RequestedSecret.renewable, RequestedSecretMode.RENEWABLE),
            (RequestedSecret.rotating, RequestedSecretMode.ROTATING),
            (RequestedSecret.immediate, RequestedSecretMode.IMMEDIATE),
        ],
    )
    def test_factories_set_mode(self, factory, mode) -> None:
        requested = factory("database/creds/readonly", MagicMock())

        assert requested.mode is mode
        assert requested.is_rotating == (mode is RequestedSecretMode.ROTATING)

    @pytest.mark.unit()
    @pytest.mark.parametrize("path", ["", "   ", "/database/creds/readonly"])
    def test_invalid_paths_rejected(self, path) -> None:
        with pytest.raises(ValueError, match="path"):
            RequestedSecret.renewable(path, MagicMock())

    @pytest.mark.unit()
    def test_fetch_must_be_callable(self) -> None:
        with pytest.raises(TypeError, match="callable"):
            RequestedSecret.renewable("database/creds/readonly", "not-callable")  # type: ignore[arg-type]

    @pytest.mark.unit()
    def test_registrations_compare_by_identity(self) -> None:
        fetch = MagicMock()
        first = RequestedSecret.renewable("database/creds/readonly", fetch)
        second = RequestedSecret.renewable("database/creds/readonly", fetch)

        assert first != second
        assert first == first
        assert len({first, second}) == 2
