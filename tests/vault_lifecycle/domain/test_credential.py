"""
Tests for vault_lifecycle/domain/credential.py - Credential value.

Test Coverage:
    - Construction and validation
    - Login vs external credentials
    - Lifetime arithmetic (expires_at, remaining, is_expired)
    - Renewal copies
    - Token never rendered by repr
"""

from datetime import UTC, datetime, timedelta

import pytest

from vault_lifecycle.domain.credential import Credential, CredentialKind


class TestCredentialConstruction:
    """Test validation and factory methods."""

    @pytest.mark.unit()
    def test_login_credential(self) -> None:
        cred = Credential.login("hvs.abc", timedelta(hours=1), renewable=True, accessor="acc")

        assert cred.kind is CredentialKind.LOGIN
        assert cred.is_login
        assert cred.renewable
        assert cred.accessor == "acc"

    @pytest.mark.unit()
    def test_external_credential_defaults(self) -> None:
        cred = Credential.external("hvs.static")

        assert cred.kind is CredentialKind.EXTERNAL
        assert not cred.is_login
        assert cred.lease_duration == timedelta(0)
        assert cred.is_permanent

    @pytest.mark.unit()
    @pytest.mark.parametrize("token", ["", None])
    def test_empty_token_rejected(self, token) -> None:
        with pytest.raises(ValueError, match="token"):
            Credential(token=token)

    @pytest.mark.unit()
    def test_negative_lease_duration_rejected(self) -> None:
        with pytest.raises(ValueError, match="lease_duration"):
            Credential.login("hvs.abc", timedelta(seconds=-1), renewable=True)

    @pytest.mark.unit()
    def test_naive_issued_at_rejected(self) -> None:
        with pytest.raises(ValueError, match="timezone-aware"):
            Credential.external("hvs.abc", issued_at=datetime(2024, 1, 1))

    @pytest.mark.unit()
    def test_metadata_is_read_only(self) -> None:
        cred = Credential.login("hvs.abc", timedelta(hours=1), True, metadata={"role": "app"})

        with pytest.raises(TypeError):
            cred.metadata["role"] = "admin"  # type: ignore[index]

    @pytest.mark.unit()
    def test_repr_hides_token(self) -> None:
        """
        repr() never renders the token.

        Credentials end up in log records and event reprs; the token value
        must not leak through either.
        """
        cred = Credential.login("hvs.supersecret", timedelta(hours=1), True)

        assert "hvs.supersecret" not in repr(cred)


class TestCredentialLifetime:
    """Test lifetime arithmetic."""

    @pytest.mark.unit()
    def test_expires_at_and_remaining(self) -> None:
        issued = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        cred = Credential.login("hvs.abc", timedelta(minutes=10), True, issued_at=issued)

        assert cred.expires_at == issued + timedelta(minutes=10)
        assert cred.remaining(issued + timedelta(minutes=4)) == timedelta(minutes=6)
        assert not cred.is_expired(issued + timedelta(minutes=4))

    @pytest.mark.unit()
    def test_remaining_never_negative(self) -> None:
        issued = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        cred = Credential.login("hvs.abc", timedelta(minutes=10), True, issued_at=issued)

        later = issued + timedelta(hours=1)
        assert cred.remaining(later) == timedelta(0)
        assert cred.is_expired(later)

    @pytest.mark.unit()
    def test_credential_without_ttl_never_expires(self) -> None:
        cred = Credential.external("hvs.root")

        assert cred.expires_at is None
        assert not cred.is_expired(datetime(2100, 1, 1, tzinfo=UTC))

    @pytest.mark.unit()
    def test_renewable_without_ttl_is_not_permanent(self) -> None:
        cred = Credential.external("hvs.abc", renewable=True)

        assert not cred.is_permanent

    @pytest.mark.unit()
    def test_renewed_copy_has_fresh_lifetime(self) -> None:
        issued = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        cred = Credential.login("hvs.abc", timedelta(minutes=10), True, issued_at=issued)

        renewed = cred.renewed(timedelta(minutes=30), renewable=False)

        assert renewed is not cred
        assert renewed.token == cred.token
        assert renewed.lease_duration == timedelta(minutes=30)
        assert not renewed.renewable
        assert renewed.issued_at > issued
        assert cred.lease_duration == timedelta(minutes=10)
