"""
Secret leases and secret registrations.

Lease describes the time-bounded grant Vault attaches to a secret.
RequestedSecret is a caller's registration of a secret path with the lease
engine, together with the callback used to (re-)fetch it.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any

from vault_lifecycle.domain.credential import utc_now


@dataclass(frozen=True)
class Lease:
    """
    Immutable lease metadata.

    Attributes:
        lease_id: Vault lease id; empty for secrets without a revocable lease
        lease_duration: Lifetime granted at issue/renewal time
        renewable: Whether sys/leases/renew may extend the lease
        issued_at: Local UTC time the lifetime was measured from

    A lease with an empty id is never scheduled for renewal. A non-renewable
    lease with an empty id but a positive duration (e.g., a KV secret with a
    ``ttl`` hint) is a "rotating generic" lease: it is re-fetched at expiry
    when the secret was requested as rotating.
    """

    lease_id: str
    lease_duration: timedelta
    renewable: bool
    issued_at: datetime = field(default_factory=utc_now, compare=False)

    def __post_init__(self) -> None:
        if self.lease_duration < timedelta(0):
            raise ValueError(f"lease_duration must not be negative, got {self.lease_duration}")

    @classmethod
    def none(cls) -> Lease:
        """Sentinel for secrets that carry no lease at all."""
        return cls(lease_id="", lease_duration=timedelta(0), renewable=False)

    @classmethod
    def of(cls, lease_id: str, lease_duration: timedelta, renewable: bool) -> Lease:
        return cls(lease_id=lease_id, lease_duration=lease_duration, renewable=renewable)

    @classmethod
    def from_seconds(cls, lease_id: str, seconds: int | float, renewable: bool) -> Lease:
        return cls(lease_id=lease_id, lease_duration=timedelta(seconds=seconds), renewable=renewable)

    @property
    def has_lease_id(self) -> bool:
        return bool(self.lease_id)

    @property
    def is_none(self) -> bool:
        return not self.lease_id and self.lease_duration == timedelta(0)

    @property
    def is_rotating_generic(self) -> bool:
        return not self.lease_id and not self.renewable and self.lease_duration > timedelta(0)

    def remaining(self, now: datetime | None = None) -> timedelta:
        """Lifetime left at ``now`` (never negative)."""
        expires_at = self.issued_at + self.lease_duration
        return max(timedelta(0), expires_at - (now or utc_now()))


@dataclass(frozen=True)
class SecretResponse:
    """Result of fetching a secret: its data and the lease Vault attached."""

    data: Mapping[str, Any] = field(repr=False)
    lease: Lease = field(default_factory=Lease.none)

    def __post_init__(self) -> None:
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))


SecretFetchCallback = Callable[[str], SecretResponse | None]
"""Fetches the secret at a path; returns None (or raises SecretNotFoundError) when absent."""


class RequestedSecretMode(str, Enum):
    """Lifecycle a registered secret follows.

    RENEWABLE: renew the lease until it can no longer be renewed, then drop it.
    ROTATING: renew the lease, and re-fetch the secret when it expires.
    IMMEDIATE: like RENEWABLE, but registration fails fast when the first
        fetch finds nothing or errors.
    """

    RENEWABLE = "renewable"
    ROTATING = "rotating"
    IMMEDIATE = "immediate"


@dataclass(frozen=True, eq=False)
class RequestedSecret:
    """
    A caller's registration of a secret path.

    Registrations compare by identity: registering the same path twice yields
    two independent leases.

    Example:
        >>> requested = RequestedSecret.rotating("database/creds/readonly", fetcher)
        >>> requested.path
        'database/creds/readonly'
    """

    path: str
    mode: RequestedSecretMode
    fetch: SecretFetchCallback = field(repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.path, str) or not self.path.strip():
            raise ValueError("path must be a non-empty string")
        if self.path.startswith("/"):
            raise ValueError(f"path must not start with '/': {self.path!r}")
        if not callable(self.fetch):
            raise TypeError("fetch must be callable")

    @classmethod
    def renewable(cls, path: str, fetch: SecretFetchCallback) -> RequestedSecret:
        return cls(path=path, mode=RequestedSecretMode.RENEWABLE, fetch=fetch)

    @classmethod
    def rotating(cls, path: str, fetch: SecretFetchCallback) -> RequestedSecret:
        return cls(path=path, mode=RequestedSecretMode.ROTATING, fetch=fetch)

    @classmethod
    def immediate(cls, path: str, fetch: SecretFetchCallback) -> RequestedSecret:
        return cls(path=path, mode=RequestedSecretMode.IMMEDIATE, fetch=fetch)

    @property
    def is_rotating(self) -> bool:
        return self.mode is RequestedSecretMode.ROTATING
