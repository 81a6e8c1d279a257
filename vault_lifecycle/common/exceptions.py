"""
Lifecycle Exception Hierarchy.

This module defines the exceptions raised by the session and lease lifecycle
engines and by the transports they delegate to.

Exception hierarchy:
    VaultLifecycleError (base)
    ├── ConfigurationError - Invalid or incomplete configuration
    ├── AuthenticationError - Login failed or timed out
    │   └── SessionTerminatedError - Session engine was destroyed
    ├── SecretNotFoundError - Requested secret path has no data
    └── TransportError - Vault rejected or could not serve a call
        ├── RenewalError - renew-self / lease renewal failed
        ├── RevocationError - revoke-self / lease revocation failed
        └── TokenLookupError - lookup-self failed

TransportError carries a ``transient`` flag. Transient failures (server down,
connection reset) keep the current credential or lease alive until the next
scheduled cycle; every other failure is terminal for that credential or lease.

Messages carry paths and lease ids only, never token values or secret data.
"""


class VaultLifecycleError(Exception):
    """
    Base exception for all lifecycle errors.

    Attributes:
        message: Human-readable error message (MUST NOT include token or secret values)
        path: Secret path the error relates to, if any
        lease_id: Lease id the error relates to, if any

    Example:
        >>> str(VaultLifecycleError("Renewal failed", path="db/creds", lease_id="db/creds/abc"))
        'Renewal failed (path: db/creds, lease: db/creds/abc)'
    """

    def __init__(
        self,
        message: str,
        path: str | None = None,
        lease_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.lease_id = lease_id

    def __str__(self) -> str:
        context_parts = []
        if self.path:
            context_parts.append(f"path: {self.path}")
        if self.lease_id:
            context_parts.append(f"lease: {self.lease_id}")

        if context_parts:
            return f"{self.message} ({', '.join(context_parts)})"
        return self.message


class ConfigurationError(VaultLifecycleError):
    """Raised when settings cannot produce a working engine (e.g., no auth method)."""


class AuthenticationError(VaultLifecycleError):
    """
    Raised when a session cannot obtain a credential.

    This exception is raised when:
    - The authenticator's login call was rejected or failed
    - A caller waited longer than the login timeout for an in-flight login
    """


class SessionTerminatedError(AuthenticationError):
    """Raised by get_token() after the session engine has been destroyed."""

    def __init__(self, message: str = "Session has been destroyed") -> None:
        super().__init__(message)


class SecretNotFoundError(VaultLifecycleError):
    """
    Raised when a requested secret path returns no data.

    Example:
        >>> str(SecretNotFoundError("database/creds/readonly"))
        "Secret 'database/creds/readonly' not found (path: database/creds/readonly)"
    """

    def __init__(self, path: str, additional_context: str | None = None) -> None:
        if not isinstance(path, str) or not path:
            raise TypeError("path must be a non-empty string")

        message = f"Secret '{path}' not found"
        if additional_context:
            message += f". {additional_context}"
        super().__init__(message, path=path)


class TransportError(VaultLifecycleError):
    """
    Raised when a Vault call fails.

    Attributes:
        transient: True when the failure is expected to clear on its own
            (server down, connection reset, rate limited). Non-transient
            failures mean the credential or lease is no longer usable.
        status_code: HTTP status reported by Vault, if known
    """

    def __init__(
        self,
        message: str,
        transient: bool = False,
        status_code: int | None = None,
        path: str | None = None,
        lease_id: str | None = None,
    ) -> None:
        super().__init__(message, path=path, lease_id=lease_id)
        self.transient = transient
        self.status_code = status_code


class RenewalError(TransportError):
    """Raised when renewing a token or lease fails."""


class RevocationError(TransportError):
    """Raised when revoking a token or lease fails."""


class TokenLookupError(TransportError):
    """Raised when a token self-lookup fails."""


def is_transient(error: BaseException) -> bool:
    """Return True when ``error`` is a TransportError flagged transient."""
    return isinstance(error, TransportError) and error.transient


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
