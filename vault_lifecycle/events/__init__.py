"""Lifecycle events and their publication."""

from vault_lifecycle.events.authentication import (
    AuthenticationCreatedEvent,
    AuthenticationErrorEvent,
    AuthenticationEvent,
    AuthenticationRenewedEvent,
    LoginTokenExpiredEvent,
    LoginTokenRevokedEvent,
)
from vault_lifecycle.events.base import LifecycleEvent
from vault_lifecycle.events.lease import (
    SecretLeaseCreatedEvent,
    SecretLeaseErrorEvent,
    SecretLeaseEvent,
    SecretLeaseExpiredEvent,
    SecretLeaseRenewedEvent,
    SecretLeaseRevokedEvent,
    SecretLeaseRotatedEvent,
    SecretNotFoundEvent,
)
from vault_lifecycle.events.multicaster import EventMulticaster, Listener

__all__ = [
    "LifecycleEvent",
    "EventMulticaster",
    "Listener",
    # Session
    "AuthenticationEvent",
    "AuthenticationCreatedEvent",
    "AuthenticationRenewedEvent",
    "AuthenticationErrorEvent",
    "LoginTokenExpiredEvent",
    "LoginTokenRevokedEvent",
    # Lease
    "SecretLeaseEvent",
    "SecretLeaseCreatedEvent",
    "SecretLeaseRenewedEvent",
    "SecretLeaseRotatedEvent",
    "SecretLeaseExpiredEvent",
    "SecretLeaseRevokedEvent",
    "SecretNotFoundEvent",
    "SecretLeaseErrorEvent",
]
