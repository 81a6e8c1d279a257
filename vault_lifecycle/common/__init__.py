"""Common utilities and exceptions."""

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

__all__ = [
    "VaultLifecycleError",
    "ConfigurationError",
    "AuthenticationError",
    "SessionTerminatedError",
    "SecretNotFoundError",
    "TransportError",
    "RenewalError",
    "RevocationError",
    "TokenLookupError",
    "is_transient",
]
