"""
Secret lease lifecycle events.

Every event carries the RequestedSecret it belongs to as ``requested`` so
one listener can serve many registrations.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar

from vault_lifecycle.domain.lease import Lease, RequestedSecret
from vault_lifecycle.events.base import LifecycleEvent


@dataclass(frozen=True, kw_only=True)
class SecretLeaseCreatedEvent(LifecycleEvent):
    """The first fetch of a registered secret succeeded."""

    requested: RequestedSecret
    lease: Lease
    secrets: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), repr=False)


@dataclass(frozen=True, kw_only=True)
class SecretLeaseRenewedEvent(LifecycleEvent):
    requested: RequestedSecret
    lease: Lease


@dataclass(frozen=True, kw_only=True)
class SecretLeaseRotatedEvent(LifecycleEvent):
    """
    A rotating secret was re-fetched after its lease expired.

    ``previous_lease`` is the expired lease, ``lease``/``secrets`` the new ones.
    """

    requested: RequestedSecret
    previous_lease: Lease
    lease: Lease
    secrets: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), repr=False)


@dataclass(frozen=True, kw_only=True)
class SecretLeaseExpiredEvent(LifecycleEvent):
    """The lease can no longer be renewed and was dropped."""

    requested: RequestedSecret
    lease: Lease


@dataclass(frozen=True, kw_only=True)
class SecretLeaseRevokedEvent(LifecycleEvent):
    """The lease was revoked because the registration was removed or the engine destroyed."""

    requested: RequestedSecret
    lease: Lease


@dataclass(frozen=True, kw_only=True)
class SecretNotFoundEvent(LifecycleEvent):
    """Fetching the secret returned nothing."""

    requested: RequestedSecret


@dataclass(frozen=True, kw_only=True)
class SecretLeaseErrorEvent(LifecycleEvent):
    """Fetch, renewal, rotation or revocation failed."""

    is_error: ClassVar[bool] = True

    requested: RequestedSecret
    error: BaseException = field(compare=False)
    lease: Lease | None = None


SecretLeaseEvent = (
    SecretLeaseCreatedEvent
    | SecretLeaseRenewedEvent
    | SecretLeaseRotatedEvent
    | SecretLeaseExpiredEvent
    | SecretLeaseRevokedEvent
    | SecretNotFoundEvent
    | SecretLeaseErrorEvent
)
