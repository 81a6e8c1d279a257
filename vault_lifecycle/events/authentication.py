"""
Session lifecycle events.

The set of variants is closed; listeners dispatch on type:

    def on_event(event: AuthenticationEvent) -> None:
        if isinstance(event, AuthenticationRenewedEvent):
            ...
"""

from dataclasses import dataclass, field
from typing import ClassVar

from vault_lifecycle.domain.credential import Credential
from vault_lifecycle.events.base import LifecycleEvent


@dataclass(frozen=True, kw_only=True)
class AuthenticationCreatedEvent(LifecycleEvent):
    """A login produced a new credential."""

    credential: Credential


@dataclass(frozen=True, kw_only=True)
class AuthenticationRenewedEvent(LifecycleEvent):
    """The current credential was renewed via renew-self."""

    credential: Credential


@dataclass(frozen=True, kw_only=True)
class LoginTokenExpiredEvent(LifecycleEvent):
    """The credential reached (or was renewed below) its valid-TTL threshold and was dropped."""

    credential: Credential


@dataclass(frozen=True, kw_only=True)
class LoginTokenRevokedEvent(LifecycleEvent):
    """The credential was revoked on session shutdown."""

    credential: Credential


@dataclass(frozen=True, kw_only=True)
class AuthenticationErrorEvent(LifecycleEvent):
    """Login, renewal or lookup failed."""

    is_error: ClassVar[bool] = True

    error: BaseException = field(compare=False)
    credential: Credential | None = None


AuthenticationEvent = (
    AuthenticationCreatedEvent
    | AuthenticationRenewedEvent
    | LoginTokenExpiredEvent
    | LoginTokenRevokedEvent
    | AuthenticationErrorEvent
)
