"""
Client-side session and lease lifecycle management for HashiCorp Vault.

Usage:
    from vault_lifecycle import create_lifecycle

    with create_lifecycle() as lifecycle:
        token = lifecycle.session.get_token()
        db = lifecycle.leases.request_rotating_secret(
            "database/creds/readonly", lifecycle.secret_fetcher()
        )
"""

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
)
from vault_lifecycle.config import LifecycleSettings, get_settings
from vault_lifecycle.domain import (
    Credential,
    CredentialKind,
    Lease,
    RequestedSecret,
    RequestedSecretMode,
    SecretResponse,
)
from vault_lifecycle.factory import (
    VaultLifecycle,
    configure_library_logging,
    create_authenticator,
    create_lease_engine,
    create_lifecycle,
    create_session_engine,
)
from vault_lifecycle.lease import LeaseEngine, LeaseStrategy, ManagedSecret, SecretAccessor
from vault_lifecycle.scheduling import (
    FixedTimeoutRefreshTrigger,
    JitteredRefreshTrigger,
    OneShotTrigger,
    RefreshTrigger,
    RenewalScheduler,
    ThreadPoolRenewalScheduler,
)
from vault_lifecycle.session import SessionEngine, SessionState

__all__ = [
    # Engines
    "SessionEngine",
    "SessionState",
    "LeaseEngine",
    "LeaseStrategy",
    "ManagedSecret",
    "SecretAccessor",
    # Values
    "Credential",
    "CredentialKind",
    "Lease",
    "RequestedSecret",
    "RequestedSecretMode",
    "SecretResponse",
    # Scheduling
    "RenewalScheduler",
    "ThreadPoolRenewalScheduler",
    "RefreshTrigger",
    "FixedTimeoutRefreshTrigger",
    "OneShotTrigger",
    "JitteredRefreshTrigger",
    # Configuration and wiring
    "LifecycleSettings",
    "get_settings",
    "VaultLifecycle",
    "create_lifecycle",
    "configure_library_logging",
    "create_session_engine",
    "create_lease_engine",
    "create_authenticator",
    # Errors
    "VaultLifecycleError",
    "ConfigurationError",
    "AuthenticationError",
    "SessionTerminatedError",
    "SecretNotFoundError",
    "TransportError",
    "RenewalError",
    "RevocationError",
    "TokenLookupError",
]
