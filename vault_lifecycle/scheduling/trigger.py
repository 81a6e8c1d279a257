"""
Refresh trigger policies.

A RefreshTrigger decides when the next renewal of a leased item (a session
Credential or a secret Lease) should run, and below which remaining lifetime
the item is considered expired instead of renewable.

Delay arithmetic (FixedTimeoutRefreshTrigger):

    delay = max(min_delay, lease_duration - lead_time)

With the defaults (lead_time=5s, min_delay=1s) a 60s lease is renewed after
55s and a 3s lease after 1s. The valid-TTL threshold defaults to
``lead_time + 2s``; an item whose lease_duration is at or below it is
expired rather than scheduled.
"""

from __future__ import annotations

import random
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import NamedTuple, Protocol

from vault_lifecycle.domain.credential import utc_now

DEFAULT_LEAD_TIME = timedelta(seconds=5)
DEFAULT_MIN_DELAY = timedelta(seconds=1)
THRESHOLD_MARGIN = timedelta(seconds=2)


class Leased(Protocol):
    """Anything with a lease duration (Credential, Lease)."""

    @property
    def lease_duration(self) -> timedelta: ...


class RemainingLifetime(NamedTuple):
    """Remaining lifetime of an item, used to reschedule after a transient failure."""

    lease_duration: timedelta


class RefreshTrigger(ABC):
    """Policy computing when a leased item should be refreshed."""

    @abstractmethod
    def next_delay(self, leased: Leased) -> timedelta | None:
        """
        Return the delay until the next refresh, or None for "never again".

        The returned delay is never negative.
        """

    @abstractmethod
    def valid_ttl_threshold(self, leased: Leased) -> timedelta:
        """Return the lifetime at or below which ``leased`` counts as expired."""

    @property
    def min_delay(self) -> timedelta:
        return DEFAULT_MIN_DELAY

    def next_execution_time(self, leased: Leased, now: datetime | None = None) -> datetime | None:
        delay = self.next_delay(leased)
        if delay is None:
            return None
        return (now or utc_now()) + delay

    def is_expired(self, leased: Leased) -> bool:
        return leased.lease_duration <= self.valid_ttl_threshold(leased)


class FixedTimeoutRefreshTrigger(RefreshTrigger):
    """
    Refresh a fixed lead time before expiry.

    Args:
        lead_time: How long before expiry to refresh
        valid_ttl_threshold: Expiry threshold (default: lead_time + 2s)
        min_delay: Lower bound for every computed delay (default: 1s)

    Example:
        >>> trigger = FixedTimeoutRefreshTrigger(timedelta(seconds=5))
        >>> trigger.next_delay(Lease.from_seconds("id", 60, True))
        datetime.timedelta(seconds=55)
        >>> trigger.next_delay(Lease.from_seconds("id", 3, True))
        datetime.timedelta(seconds=1)
    """

    def __init__(
        self,
        lead_time: timedelta = DEFAULT_LEAD_TIME,
        valid_ttl_threshold: timedelta | None = None,
        min_delay: timedelta = DEFAULT_MIN_DELAY,
    ) -> None:
        if lead_time < timedelta(0):
            raise ValueError("lead_time must not be negative")
        if min_delay < timedelta(0):
            raise ValueError("min_delay must not be negative")
        if valid_ttl_threshold is not None and valid_ttl_threshold < timedelta(0):
            raise ValueError("valid_ttl_threshold must not be negative")

        self.lead_time = lead_time
        self._min_delay = min_delay
        self._threshold = (
            valid_ttl_threshold if valid_ttl_threshold is not None else lead_time + THRESHOLD_MARGIN
        )

    @property
    def min_delay(self) -> timedelta:
        return self._min_delay

    def next_delay(self, leased: Leased) -> timedelta | None:
        return max(self._min_delay, leased.lease_duration - self.lead_time)

    def valid_ttl_threshold(self, leased: Leased) -> timedelta:
        return self._threshold

    def __repr__(self) -> str:
        return (
            f"FixedTimeoutRefreshTrigger(lead_time={self.lead_time!r}, "
            f"valid_ttl_threshold={self._threshold!r}, min_delay={self._min_delay!r})"
        )


class OneShotTrigger(RefreshTrigger):
    """Fire exactly once after a fixed delay, then never again."""

    def __init__(self, delay: timedelta, valid_ttl_threshold: timedelta = timedelta(0)) -> None:
        if delay < timedelta(0):
            raise ValueError("delay must not be negative")
        self._delay = delay
        self._threshold = valid_ttl_threshold
        self._fired = False
        self._lock = threading.Lock()

    def next_delay(self, leased: Leased) -> timedelta | None:
        with self._lock:
            if self._fired:
                return None
            self._fired = True
            return self._delay

    def valid_ttl_threshold(self, leased: Leased) -> timedelta:
        return self._threshold


class JitteredRefreshTrigger(RefreshTrigger):
    """
    Spread refreshes of many items that share a TTL.

    Subtracts a uniformly random jitter in ``[0, max_jitter]`` from the
    delegate's delay, never going below the delegate's minimum delay.
    """

    def __init__(
        self,
        delegate: RefreshTrigger,
        max_jitter: timedelta,
        rng: random.Random | None = None,
    ) -> None:
        if max_jitter < timedelta(0):
            raise ValueError("max_jitter must not be negative")
        self.delegate = delegate
        self.max_jitter = max_jitter
        self._rng = rng or random.Random()

    @property
    def min_delay(self) -> timedelta:
        return self.delegate.min_delay

    def next_delay(self, leased: Leased) -> timedelta | None:
        delay = self.delegate.next_delay(leased)
        if delay is None or self.max_jitter == timedelta(0):
            return delay
        jitter = timedelta(seconds=self._rng.uniform(0, self.max_jitter.total_seconds()))
        return max(self.delegate.min_delay, delay - jitter)

    def valid_ttl_threshold(self, leased: Leased) -> timedelta:
        return self.delegate.valid_ttl_threshold(leased)
