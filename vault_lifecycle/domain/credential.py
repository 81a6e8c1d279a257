"""
Session credential value.

A Credential is the token a session engine hands out to callers together
with the lifetime information needed to schedule its renewal. Credentials
are immutable: renewal produces a new Credential and the engine swaps its
reference.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any


class CredentialKind(str, Enum):
    """Where a credential came from.

    LOGIN credentials were obtained by an authentication call and are owned
    by the session (revoked on destroy). EXTERNAL credentials were supplied
    from outside (static token, wrapped token) and are never revoked by us.
    """

    LOGIN = "login"
    EXTERNAL = "external"


def utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Credential:
    """
    Immutable authentication token with lifetime metadata.

    Attributes:
        token: Vault client token (never rendered by repr)
        lease_duration: Lifetime granted at issue/renewal time (zero = no TTL known)
        renewable: Whether renew-self may extend the token
        kind: LOGIN or EXTERNAL
        issued_at: Local UTC time the lifetime was measured from
        accessor: Token accessor, if known
        policies: Policies attached to the token
        metadata: Auth metadata returned by Vault

    Invariants:
        - lease_duration is never negative
        - a non-renewable credential with zero lease_duration is permanent

    Example:
        >>> cred = Credential.login("hvs.abc", timedelta(hours=1), renewable=True)
        >>> cred.is_permanent
        False
        >>> cred.expires_at - cred.issued_at
        datetime.timedelta(seconds=3600)
    """

    token: str = field(repr=False)
    lease_duration: timedelta = timedelta(0)
    renewable: bool = False
    kind: CredentialKind = CredentialKind.EXTERNAL
    issued_at: datetime = field(default_factory=utc_now)
    accessor: str | None = None
    policies: tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.token, str) or not self.token:
            raise ValueError("token must be a non-empty string")
        if self.lease_duration < timedelta(0):
            raise ValueError(f"lease_duration must not be negative, got {self.lease_duration}")
        if self.issued_at.tzinfo is None:
            raise ValueError("issued_at must be timezone-aware")
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def login(
        cls,
        token: str,
        lease_duration: timedelta,
        renewable: bool,
        **kwargs: Any,
    ) -> Credential:
        """Create a credential obtained from a login call."""
        return cls(
            token=token,
            lease_duration=lease_duration,
            renewable=renewable,
            kind=CredentialKind.LOGIN,
            **kwargs,
        )

    @classmethod
    def external(cls, token: str, **kwargs: Any) -> Credential:
        """Create an externally supplied credential (lifetime unknown unless given)."""
        return cls(token=token, kind=CredentialKind.EXTERNAL, **kwargs)

    @property
    def is_login(self) -> bool:
        return self.kind is CredentialKind.LOGIN

    @property
    def is_permanent(self) -> bool:
        """True for a non-renewable credential without a TTL; such tokens are never scheduled."""
        return not self.renewable and self.lease_duration == timedelta(0)

    @property
    def expires_at(self) -> datetime | None:
        """Absolute expiry time, or None when the credential has no TTL."""
        if self.lease_duration == timedelta(0):
            return None
        return self.issued_at + self.lease_duration

    def remaining(self, now: datetime | None = None) -> timedelta:
        """Lifetime left at ``now`` (never negative); the full duration if no TTL."""
        expires_at = self.expires_at
        if expires_at is None:
            return self.lease_duration
        return max(timedelta(0), expires_at - (now or utc_now()))

    def is_expired(self, now: datetime | None = None) -> bool:
        expires_at = self.expires_at
        return expires_at is not None and (now or utc_now()) >= expires_at

    def renewed(self, lease_duration: timedelta, renewable: bool | None = None) -> Credential:
        """Return a copy with a fresh lifetime measured from now."""
        return replace(
            self,
            lease_duration=lease_duration,
            renewable=self.renewable if renewable is None else renewable,
            issued_at=utc_now(),
        )
