"""
Tests for vault_lifecycle/lease/strategy.py - Lease error strategies.

Test Coverage:
    - drop / retain / retain-on-io-error decisions
    - Cause-chain inspection for wrapped I/O errors
    - Lookup by name
"""

import pytest

from vault_lifecycle.common.exceptions import ConfigurationError, RenewalError
from vault_lifecycle.domain.lease import Lease
from vault_lifecycle.lease.strategy import LeaseStrategy

LEASE = Lease.from_seconds("database/creds/readonly/abc", 60, True)


class TestLeaseStrategy:
    """Test drop decisions."""

    @pytest.mark.unit()
    def test_drop_on_error_always_drops(self) -> None:
        strategy = LeaseStrategy.drop_on_error()

        assert strategy.should_drop(LEASE, RenewalError("down", transient=True))
        assert strategy.should_drop(LEASE, RenewalError("lease not found", status_code=400))

    @pytest.mark.unit()
    def test_retain_on_error_never_drops(self) -> None:
        strategy = LeaseStrategy.retain_on_error()

        assert not strategy.should_drop(LEASE, RenewalError("lease not found", status_code=400))
        assert not strategy.should_drop(LEASE, RuntimeError("anything"))

    @pytest.mark.unit()
    def test_retain_on_io_error_keeps_transient_failures(self) -> None:
        strategy = LeaseStrategy.retain_on_io_error()

        assert not strategy.should_drop(LEASE, RenewalError("Vault sealed", transient=True))
        assert not strategy.should_drop(LEASE, ConnectionResetError())
        assert strategy.should_drop(LEASE, RenewalError("lease not found", status_code=400))

    @pytest.mark.unit()
    def test_retain_on_io_error_inspects_cause_chain(self) -> None:
        strategy = LeaseStrategy.retain_on_io_error()
        try:
            try:
                raise TimeoutError("read timed out")
            except TimeoutError as e:
                raise RenewalError("Lease renewal failed") from e
        except RenewalError as wrapped:
            error = wrapped

        assert not strategy.should_drop(LEASE, error)

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        "name", ["drop-on-error", "retain-on-error", "retain-on-io-error"]
    )
    def test_from_name(self, name) -> None:
        assert LeaseStrategy.from_name(name).name == name

    @pytest.mark.unit()
    def test_from_unknown_name(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown lease strategy"):
            LeaseStrategy.from_name("retry-forever")
