"""Session (token) lifecycle management."""

from vault_lifecycle.session.engine import (
    DEFAULT_LOGIN_TIMEOUT,
    AuthenticationListener,
    SessionEngine,
    SessionState,
)

__all__ = [
    "SessionEngine",
    "SessionState",
    "AuthenticationListener",
    "DEFAULT_LOGIN_TIMEOUT",
]
