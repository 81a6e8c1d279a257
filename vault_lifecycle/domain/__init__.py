"""Immutable values the lifecycle engines operate on."""

from vault_lifecycle.domain.credential import Credential, CredentialKind
from vault_lifecycle.domain.lease import (
    Lease,
    RequestedSecret,
    RequestedSecretMode,
    SecretFetchCallback,
    SecretResponse,
)

__all__ = [
    "Credential",
    "CredentialKind",
    "Lease",
    "RequestedSecret",
    "RequestedSecretMode",
    "SecretFetchCallback",
    "SecretResponse",
]
