"""
hvac implementations of the credential and lease transports.

Vault endpoints used:
    auth/token/renew-self   -> HvacCredentialTransport.renew_self
    auth/token/revoke-self  -> HvacCredentialTransport.revoke_self
    auth/token/lookup-self  -> HvacCredentialTransport.lookup_self
    sys/leases/renew        -> HvacLeaseTransport.renew
    sys/leases/revoke       -> HvacLeaseTransport.revoke
    <path> (GET)            -> HvacSecretFetcher

No retries happen here: a failed call is classified (transient or terminal)
and the engine's next scheduled cycle is the retry.
"""

import logging
from collections.abc import Callable, Mapping
from datetime import timedelta
from typing import Any

import hvac
import requests
from hvac.exceptions import InvalidPath, VaultError

from vault_lifecycle.common.exceptions import (
    RenewalError,
    RevocationError,
    SecretNotFoundError,
    TokenLookupError,
    TransportError,
)
from vault_lifecycle.domain.credential import Credential
from vault_lifecycle.domain.lease import Lease, SecretResponse
from vault_lifecycle.transport.base import CredentialTransport, LeaseTransport
from vault_lifecycle.transport.client import VaultClientFactory
from vault_lifecycle.transport.errors import translate_hvac_error

logger = logging.getLogger(__name__)

ClientSupplier = Callable[[], hvac.Client]

_VAULT_FAILURES = (VaultError, requests.exceptions.RequestException)


def _seconds(value: Any) -> timedelta:
    return timedelta(seconds=int(value or 0))


def lease_from_response(response: Mapping[str, Any]) -> Lease:
    """Build a Lease from the envelope of a Vault read or renew response."""
    return Lease(
        lease_id=response.get("lease_id") or "",
        lease_duration=_seconds(response.get("lease_duration")),
        renewable=bool(response.get("renewable", False)),
    )


class HvacCredentialTransport(CredentialTransport):
    """Token self-operations, each performed with the token itself."""

    def __init__(self, client_factory: VaultClientFactory) -> None:
        self._client_factory = client_factory

    def renew_self(self, credential: Credential) -> Credential:
        client = self._client_factory.for_token(credential.token)
        try:
            response = client.auth.token.renew_self()
            auth = response["auth"]
            renewed = credential.renewed(
                lease_duration=_seconds(auth.get("lease_duration")),
                renewable=bool(auth.get("renewable", credential.renewable)),
            )
        except _VAULT_FAILURES as e:
            raise translate_hvac_error(e, RenewalError, "Token renewal failed") from e
        except (KeyError, TypeError, ValueError) as e:
            raise RenewalError(f"Malformed token renewal response: {e}") from e

        logger.debug(
            "Token renewed",
            extra={"ttl_seconds": renewed.lease_duration.total_seconds()},
        )
        return renewed

    def revoke_self(self, credential: Credential) -> None:
        client = self._client_factory.for_token(credential.token)
        try:
            client.auth.token.revoke_self()
        except _VAULT_FAILURES as e:
            raise translate_hvac_error(e, RevocationError, "Token revocation failed") from e

    def lookup_self(self, credential: Credential) -> Credential:
        client = self._client_factory.for_token(credential.token)
        try:
            data = client.auth.token.lookup_self()["data"]
            return Credential(
                token=credential.token,
                lease_duration=_seconds(data.get("ttl")),
                renewable=bool(data.get("renewable", False)),
                kind=credential.kind,
                accessor=data.get("accessor"),
                policies=tuple(data.get("policies") or ()),
                metadata=data.get("meta") or {},
            )
        except _VAULT_FAILURES as e:
            raise translate_hvac_error(e, TokenLookupError, "Token self-lookup failed") from e
        except (KeyError, TypeError, ValueError) as e:
            raise TokenLookupError(f"Malformed token lookup response: {e}") from e


class HvacLeaseTransport(LeaseTransport):
    """
    Lease renewal and revocation through sys/leases.

    Args:
        client_supplier: Returns a client bound to the current session token.
            Called per operation so renewals always use the live token.
    """

    def __init__(self, client_supplier: ClientSupplier) -> None:
        self._client_supplier = client_supplier

    def renew(self, lease: Lease, increment: timedelta) -> Lease:
        try:
            response = self._client_supplier().sys.renew_lease(
                lease_id=lease.lease_id,
                increment=int(increment.total_seconds()),
            )
            renewed = lease_from_response(response)
        except _VAULT_FAILURES as e:
            raise translate_hvac_error(
                e, RenewalError, "Lease renewal failed", lease_id=lease.lease_id
            ) from e
        except (AttributeError, TypeError, ValueError) as e:
            raise RenewalError(
                f"Malformed lease renewal response: {e}", lease_id=lease.lease_id
            ) from e

        if not renewed.lease_id:
            renewed = Lease(
                lease_id=lease.lease_id,
                lease_duration=renewed.lease_duration,
                renewable=renewed.renewable,
            )
        return renewed

    def revoke(self, lease: Lease) -> None:
        try:
            self._client_supplier().sys.revoke_lease(lease_id=lease.lease_id)
        except _VAULT_FAILURES as e:
            raise translate_hvac_error(
                e, RevocationError, "Lease revocation failed", lease_id=lease.lease_id
            ) from e


class HvacSecretFetcher:
    """
    Secret fetch callback reading a path with the current session token.

    KV v2 responses (``data.data`` plus ``data.metadata``) are unwrapped so
    listeners receive the secret fields directly.

    Example:
        >>> fetcher = HvacSecretFetcher(lambda: factory.for_token(session.get_token().token))
        >>> engine.request_rotating_secret("database/creds/readonly", fetcher)
    """

    def __init__(self, client_supplier: ClientSupplier, unwrap_kv2: bool = True) -> None:
        self._client_supplier = client_supplier
        self._unwrap_kv2 = unwrap_kv2

    def __call__(self, path: str) -> SecretResponse | None:
        try:
            response = self._client_supplier().read(path)
        except InvalidPath as e:
            raise SecretNotFoundError(path) from e
        except _VAULT_FAILURES as e:
            raise translate_hvac_error(e, TransportError, "Secret read failed", path=path) from e

        if not response:
            return None

        data = response.get("data") or {}
        if self._unwrap_kv2 and isinstance(data.get("data"), Mapping) and "metadata" in data:
            data = data["data"]
        return SecretResponse(data=data, lease=lease_from_response(response))
