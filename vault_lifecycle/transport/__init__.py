"""Vault transports: collaborator interfaces and their hvac implementations."""

from vault_lifecycle.transport.authenticators import (
    AppRoleAuthenticator,
    TokenAuthenticator,
    credential_from_auth,
)
from vault_lifecycle.transport.base import (
    ClientAuthenticator,
    CredentialTransport,
    LeaseTransport,
)
from vault_lifecycle.transport.client import VaultClientFactory
from vault_lifecycle.transport.errors import is_transient_error, translate_hvac_error
from vault_lifecycle.transport.hvac_transport import (
    HvacCredentialTransport,
    HvacLeaseTransport,
    HvacSecretFetcher,
    lease_from_response,
)

__all__ = [
    # Interfaces
    "ClientAuthenticator",
    "CredentialTransport",
    "LeaseTransport",
    # hvac implementations
    "VaultClientFactory",
    "TokenAuthenticator",
    "AppRoleAuthenticator",
    "HvacCredentialTransport",
    "HvacLeaseTransport",
    "HvacSecretFetcher",
    # Helpers
    "credential_from_auth",
    "lease_from_response",
    "translate_hvac_error",
    "is_transient_error",
]
