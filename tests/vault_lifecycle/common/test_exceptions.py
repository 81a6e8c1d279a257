"""
Tests for vault_lifecycle/common/exceptions.py - Lifecycle exception hierarchy.

Test Coverage:
    - Hierarchy relationships
    - Context rendering in str()
    - SecretNotFoundError validation
    - Transient classification
"""

import pytest

from vault_lifecycle.common.exceptions import (
    AuthenticationError,
    ConfigurationError,
    RenewalError,
    RevocationError,
    SecretNotFoundError,
    SessionTerminatedError,
    TokenLookupError,
    TransportError,
    VaultLifecycleError,
    is_transient,
)


class TestExceptionHierarchy:
    """Test inheritance relationships."""

    @pytest.mark.unit()
    @pytest.mark.parametrize(
        "exc_type",
        [ConfigurationError, AuthenticationError, TransportError, RenewalError, RevocationError],
    )
    def test_all_derive_from_base(self, exc_type) -> None:
        assert issubclass(exc_type, VaultLifecycleError)

    @pytest.mark.unit()
    def test_session_terminated_is_authentication_error(self) -> None:
        error = SessionTerminatedError()

        assert isinstance(error, AuthenticationError)
        assert str(error) == "Session has been destroyed"

    @pytest.mark.unit()
    @pytest.mark.parametrize("exc_type", [RenewalError, RevocationError, TokenLookupError])
    def test_transport_errors(self, exc_type) -> None:
        assert issubclass(exc_type, TransportError)


class TestExceptionMessages:
    """Test message rendering."""

    @pytest.mark.unit()
    def test_str_without_context(self) -> None:
        assert str(VaultLifecycleError("Renewal failed")) == "Renewal failed"

    @pytest.mark.unit()
    def test_str_with_path_and_lease(self) -> None:
        error = RenewalError("Renewal failed", path="db/creds", lease_id="db/creds/abc")

        assert str(error) == "Renewal failed (path: db/creds, lease: db/creds/abc)"
        assert error.message == "Renewal failed"

    @pytest.mark.unit()
    def test_secret_not_found_message(self) -> None:
        error = SecretNotFoundError("database/creds/readonly", "Check the role name")

        assert error.path == "database/creds/readonly"
        assert str(error) == (
            "Secret 'database/creds/readonly' not found. Check the role name "
            "(path: database/creds/readonly)"
        )

    @pytest.mark.unit()
    @pytest.mark.parametrize("path", ["", None])
    def test_secret_not_found_requires_path(self, path) -> None:
        with pytest.raises(TypeError, match="path"):
            SecretNotFoundError(path)


class TestIsTransient:
    """Test transient classification."""

    @pytest.mark.unit()
    def test_transient_transport_error(self) -> None:
        error = RenewalError("Vault sealed", transient=True, status_code=503)

        assert is_transient(error)
        assert error.status_code == 503

    @pytest.mark.unit()
    def test_non_transient_by_default(self) -> None:
        assert not is_transient(RenewalError("permission denied", status_code=403))

    @pytest.mark.unit()
    def test_other_exceptions_are_not_transient(self) -> None:
        assert not is_transient(ConnectionError("reset"))
        assert not is_transient(AuthenticationError("bad secret id"))
