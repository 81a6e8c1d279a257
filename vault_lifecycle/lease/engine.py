"""
Lease engine: keeps registered secrets' leases alive and rotates them.

Per registered secret:

    register --fetch ok--> Leased --renew ok--> Leased
        Leased --renew failed, strategy drops / TTL below threshold--> Expired
        Expired --rotating--> Leased (re-fetched, rotated event)
        Expired --renewable/immediate--> no lease
    register --not found--> not-found event (raised for immediate mode)
    unregister / destroy --> revoke (best effort)

Every registration owns its own single-flight renewal slot, so leases are
renewed independently of one another.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType, TracebackType
from typing import Any

from vault_lifecycle.common.exceptions import SecretNotFoundError, VaultLifecycleError, is_transient
from vault_lifecycle.domain.lease import (
    Lease,
    RequestedSecret,
    RequestedSecretMode,
    SecretFetchCallback,
    SecretResponse,
)
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
from vault_lifecycle.events.multicaster import EventMulticaster
from vault_lifecycle.lease.strategy import LeaseStrategy
from vault_lifecycle.metrics import (
    vault_lease_expirations_total,
    vault_lease_renewals_total,
    vault_lease_rotations_total,
    vault_managed_leases,
)
from vault_lifecycle.scheduling.renewal import SingleFlightRenewal
from vault_lifecycle.scheduling.scheduler import RenewalScheduler
from vault_lifecycle.scheduling.trigger import (
    FixedTimeoutRefreshTrigger,
    RefreshTrigger,
    RemainingLifetime,
)
from vault_lifecycle.transport.base import LeaseTransport

logger = logging.getLogger(__name__)

LeaseListener = Callable[[SecretLeaseEvent], None]


@dataclass(frozen=True)
class LeaseSnapshot:
    """The lease and secret data a registration currently holds."""

    lease: Lease
    secrets: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}), repr=False)


@dataclass(eq=False)
class _Registration:
    requested: RequestedSecret
    renewal: SingleFlightRenewal[Lease]
    snapshot: LeaseSnapshot | None = None

    @property
    def closed(self) -> bool:
        return self.renewal.closed


class LeaseEngine:
    """
    Registry of secrets whose leases are renewed and rotated in the background.

    Args:
        lease_transport: Performs sys/leases renew and revoke
        scheduler: Runs renewal, expiry and rotation tasks
        refresh_trigger: When to renew (default: 5s lead time)
        lease_strategy: Whether a failed renewal drops the lease (default: drop on error)
        renewal_increment: Requested extension per renewal (default: the lease's own duration)
        revoke_on_destroy: Revoke live leases on unregister and destroy()

    Example:
        >>> with LeaseEngine(transport, scheduler) as leases:
        ...     leases.add_lease_listener(on_lease_event)
        ...     db = leases.request_rotating_secret("database/creds/readonly", fetcher)
        ...     leases.get_secrets(db)["username"]
    """

    def __init__(
        self,
        lease_transport: LeaseTransport,
        scheduler: RenewalScheduler,
        refresh_trigger: RefreshTrigger | None = None,
        lease_strategy: LeaseStrategy | None = None,
        renewal_increment: timedelta | None = None,
        revoke_on_destroy: bool = True,
    ) -> None:
        self._transport = lease_transport
        self._scheduler = scheduler
        self._trigger = refresh_trigger or FixedTimeoutRefreshTrigger()
        self._strategy = lease_strategy or LeaseStrategy.drop_on_error()
        self._increment = renewal_increment
        self._revoke_on_destroy = revoke_on_destroy

        self._lock = threading.Lock()
        self._registrations: dict[RequestedSecret, _Registration] = {}
        self._scoped_listeners: dict[RequestedSecret, LeaseListener] = {}
        self._destroyed = False
        self._events: EventMulticaster[SecretLeaseEvent] = EventMulticaster("lease")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    @property
    def requested_secrets(self) -> list[RequestedSecret]:
        with self._lock:
            return list(self._registrations)

    @property
    def lease_strategy(self) -> LeaseStrategy:
        return self._strategy

    def add_requested_secret(self, requested: RequestedSecret) -> RequestedSecret:
        """
        Register ``requested`` and fetch it immediately.

        Not-found and fetch errors are published as events. For IMMEDIATE
        mode they are raised instead and the registration is rolled back.

        Returns:
            ``requested`` (the handle for reads and unregistration)

        Raises:
            SecretNotFoundError: IMMEDIATE mode and the secret does not exist
            VaultLifecycleError: IMMEDIATE mode and the fetch failed, or the
                engine was destroyed
        """
        with self._lock:
            if self._destroyed:
                raise VaultLifecycleError("Lease engine has been destroyed", path=requested.path)
            if requested in self._registrations:
                return requested
            registration = _Registration(
                requested=requested,
                renewal=SingleFlightRenewal(self._scheduler, f"lease:{requested.path}"),
            )
            self._registrations[requested] = registration
        vault_managed_leases.inc()

        try:
            self._start(registration)
        except Exception:
            self._discard(registration)
            raise
        return requested

    def request_renewable_secret(self, path: str, fetch: SecretFetchCallback) -> RequestedSecret:
        return self.add_requested_secret(RequestedSecret.renewable(path, fetch))

    def request_rotating_secret(self, path: str, fetch: SecretFetchCallback) -> RequestedSecret:
        return self.add_requested_secret(RequestedSecret.rotating(path, fetch))

    def register(
        self, requested: RequestedSecret, listener: LeaseListener | None = None
    ) -> RequestedSecret:
        """
        Register ``requested``, optionally with a listener scoped to it.

        The scoped listener receives this registration's events only (errors
        included) and is removed again by unregister().
        """
        if listener is not None:
            scoped = _scoped(requested, listener)
            with self._lock:
                self._scoped_listeners[requested] = scoped
            self._events.add_listener(scoped)
            self._events.add_error_listener(scoped)
        try:
            return self.add_requested_secret(requested)
        except Exception:
            self._remove_scoped_listener(requested)
            raise

    def unregister(self, requested: RequestedSecret) -> bool:
        removed = self.remove_requested_secret(requested)
        self._remove_scoped_listener(requested)
        return removed

    def remove_requested_secret(self, requested: RequestedSecret) -> bool:
        """
        Unregister ``requested``: cancel its schedule, then revoke its lease.

        Idempotent. Revocation failures are published, never raised.

        Returns:
            True if the secret was registered
        """
        with self._lock:
            registration = self._registrations.pop(requested, None)
        if registration is None:
            return False
        vault_managed_leases.dec()
        self._shutdown(registration)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_snapshot(self, requested: RequestedSecret) -> LeaseSnapshot | None:
        registration = self._registrations.get(requested)
        return registration.snapshot if registration is not None else None

    def get_lease(self, requested: RequestedSecret) -> Lease | None:
        snapshot = self.get_snapshot(requested)
        return snapshot.lease if snapshot is not None else None

    def get_secrets(self, requested: RequestedSecret) -> Mapping[str, Any] | None:
        snapshot = self.get_snapshot(requested)
        return snapshot.secrets if snapshot is not None else None

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_lease_listener(self, listener: LeaseListener) -> None:
        self._events.add_listener(listener)

    def remove_lease_listener(self, listener: LeaseListener) -> bool:
        return self._events.remove_listener(listener)

    def add_error_listener(self, listener: LeaseListener) -> None:
        self._events.add_error_listener(listener)

    def remove_error_listener(self, listener: LeaseListener) -> bool:
        return self._events.remove_error_listener(listener)

    # ------------------------------------------------------------------
    # Renewal
    # ------------------------------------------------------------------

    def renew(self, requested: RequestedSecret) -> bool:
        """
        Renew the lease of ``requested`` now.

        Returns:
            True if the lease was renewed and installed
        """
        registration = self._registrations.get(requested)
        if registration is None or registration.snapshot is None:
            return False
        lease = registration.snapshot.lease
        if not lease.renewable or not lease.has_lease_id:
            return False
        return self._renew(registration, lease)

    def _renew(self, registration: _Registration, lease: Lease) -> bool:
        requested = registration.requested
        increment = self._increment or lease.lease_duration
        try:
            renewed = self._transport.renew(lease, increment)
        except Exception as e:
            self._on_renewal_failure(registration, lease, e)
            return False

        if not self._is_current(registration, lease):
            logger.debug("Lease renewal result discarded", extra={"path": requested.path})
            return False

        if self._trigger.is_expired(renewed):
            logger.info(
                "Renewed lease TTL below threshold",
                extra={
                    "path": requested.path,
                    "lease_id": lease.lease_id,
                    "ttl_seconds": renewed.lease_duration.total_seconds(),
                },
            )
            vault_lease_renewals_total.labels(status="expired").inc()
            self._on_expired(registration, lease)
            return False

        with self._lock:
            if registration.closed or registration.snapshot is None:
                return False
            registration.snapshot = LeaseSnapshot(renewed, registration.snapshot.secrets)

        vault_lease_renewals_total.labels(status="success").inc()
        logger.info(
            "Lease renewed",
            extra={
                "path": requested.path,
                "lease_id": renewed.lease_id,
                "ttl_seconds": renewed.lease_duration.total_seconds(),
            },
        )
        self._events.multicast_event(SecretLeaseRenewedEvent(requested=requested, lease=renewed))
        self._schedule(registration, renewed)
        return True

    def _on_renewal_failure(self, registration: _Registration, lease: Lease, error: Exception) -> None:
        requested = registration.requested
        vault_lease_renewals_total.labels(status="failure").inc()
        logger.warning(
            "Lease renewal failed",
            extra={
                "path": requested.path,
                "lease_id": lease.lease_id,
                "error": str(error),
                "error_type": type(error).__name__,
                "transient": is_transient(error),
            },
        )
        self._events.multicast_event(
            SecretLeaseErrorEvent(requested=requested, error=error, lease=lease)
        )

        if not self._is_current(registration, lease):
            return

        if self._strategy.should_drop(lease, error):
            self._on_expired(registration, lease)
            return

        remaining = RemainingLifetime(lease.remaining())
        if self._trigger.is_expired(remaining):
            self._on_expired(registration, lease)
            return
        delay = self._trigger.next_delay(remaining)
        if delay is not None:
            registration.renewal.schedule(lease, self._renewal_action(registration), delay)

    def _on_expired(self, registration: _Registration, lease: Lease) -> None:
        requested = registration.requested
        vault_lease_expirations_total.labels(kind="lease").inc()
        logger.info(
            "Lease expired",
            extra={"path": requested.path, "lease_id": lease.lease_id, "mode": requested.mode.value},
        )
        self._events.multicast_event(SecretLeaseExpiredEvent(requested=requested, lease=lease))

        if requested.is_rotating:
            self._rotate(registration, lease)
            return

        with self._lock:
            if registration.snapshot is not None and registration.snapshot.lease is lease:
                registration.snapshot = None

    def _rotate(self, registration: _Registration, previous: Lease) -> None:
        requested = registration.requested
        try:
            response = self._fetch(requested)
        except Exception as e:
            vault_lease_rotations_total.labels(status="failure").inc()
            logger.error(
                "Secret rotation failed",
                extra={"path": requested.path, "error": str(e), "error_type": type(e).__name__},
            )
            self._clear(registration, previous)
            self._events.multicast_event(
                SecretLeaseErrorEvent(requested=requested, error=e, lease=previous)
            )
            return

        if response is None:
            vault_lease_rotations_total.labels(status="not_found").inc()
            self._clear(registration, previous)
            self._events.multicast_event(SecretNotFoundEvent(requested=requested))
            return

        with self._lock:
            closed = registration.closed
            if not closed:
                registration.snapshot = LeaseSnapshot(response.lease, response.data)
        if closed:
            self._release_unclaimed(requested, response.lease)
            return

        vault_lease_rotations_total.labels(status="success").inc()
        logger.info(
            "Secret rotated",
            extra={
                "path": requested.path,
                "previous_lease_id": previous.lease_id,
                "lease_id": response.lease.lease_id,
            },
        )
        self._events.multicast_event(
            SecretLeaseRotatedEvent(
                requested=requested,
                previous_lease=previous,
                lease=response.lease,
                secrets=response.data,
            )
        )
        self._schedule(registration, response.lease)

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule(self, registration: _Registration, lease: Lease) -> None:
        requested = registration.requested
        if lease.renewable and lease.has_lease_id:
            action = self._renewal_action(registration)
        elif requested.is_rotating and lease.lease_duration > timedelta(0):
            action = self._expiry_action(registration)
        else:
            logger.debug(
                "Lease not scheduled",
                extra={"path": requested.path, "renewable": lease.renewable},
            )
            return

        if self._trigger.is_expired(lease):
            # Too short to renew safely: go straight to expiry/rotation.
            action = self._expiry_action(registration)
            delay: timedelta | None = self._trigger.min_delay
        else:
            delay = self._trigger.next_delay(lease)
        if delay is None:
            return

        registration.renewal.schedule(lease, action, delay)
        logger.debug(
            "Lease refresh scheduled",
            extra={
                "path": requested.path,
                "lease_id": lease.lease_id,
                "delay_seconds": delay.total_seconds(),
            },
        )

    def _renewal_action(self, registration: _Registration) -> Callable[[Lease], None]:
        def renew(lease: Lease) -> None:
            if self._is_current(registration, lease):
                self._renew(registration, lease)

        return renew

    def _expiry_action(self, registration: _Registration) -> Callable[[Lease], None]:
        def expire(lease: Lease) -> None:
            if self._is_current(registration, lease):
                self._on_expired(registration, lease)

        return expire

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _start(self, registration: _Registration) -> None:
        requested = registration.requested
        immediate = requested.mode is RequestedSecretMode.IMMEDIATE
        try:
            response = self._fetch(requested)
        except Exception as e:
            logger.error(
                "Secret fetch failed",
                extra={"path": requested.path, "error": str(e), "error_type": type(e).__name__},
            )
            if immediate:
                if isinstance(e, VaultLifecycleError):
                    raise
                raise VaultLifecycleError(f"Fetching secret failed: {e}", path=requested.path) from e
            self._events.multicast_event(SecretLeaseErrorEvent(requested=requested, error=e))
            return

        if response is None:
            logger.info("Secret not found", extra={"path": requested.path})
            if immediate:
                raise SecretNotFoundError(requested.path)
            self._events.multicast_event(SecretNotFoundEvent(requested=requested))
            return

        with self._lock:
            closed = registration.closed
            if not closed:
                registration.snapshot = LeaseSnapshot(response.lease, response.data)
        if closed:
            self._release_unclaimed(requested, response.lease)
            return

        logger.info(
            "Secret registered",
            extra={
                "path": requested.path,
                "lease_id": response.lease.lease_id,
                "ttl_seconds": response.lease.lease_duration.total_seconds(),
                "renewable": response.lease.renewable,
            },
        )
        self._events.multicast_event(
            SecretLeaseCreatedEvent(requested=requested, lease=response.lease, secrets=response.data)
        )
        self._schedule(registration, response.lease)

    def _fetch(self, requested: RequestedSecret) -> SecretResponse | None:
        try:
            return requested.fetch(requested.path)
        except SecretNotFoundError:
            return None

    def _is_current(self, registration: _Registration, lease: Lease) -> bool:
        snapshot = registration.snapshot
        return not registration.closed and snapshot is not None and snapshot.lease is lease

    def _clear(self, registration: _Registration, lease: Lease) -> None:
        with self._lock:
            if registration.snapshot is not None and registration.snapshot.lease is lease:
                registration.snapshot = None

    def _discard(self, registration: _Registration) -> None:
        with self._lock:
            if self._registrations.get(registration.requested) is registration:
                del self._registrations[registration.requested]
            else:
                return
        vault_managed_leases.dec()
        registration.renewal.close()

    def _shutdown(self, registration: _Registration) -> None:
        registration.renewal.close()
        with self._lock:
            snapshot, registration.snapshot = registration.snapshot, None
        if snapshot is not None and snapshot.lease.has_lease_id and self._revoke_on_destroy:
            self._revoke(registration.requested, snapshot.lease)

    def _release_unclaimed(self, requested: RequestedSecret, lease: Lease) -> None:
        # Fetch finished after unregister/destroy; nobody else will revoke this lease.
        logger.info(
            "Secret fetched after unregistration, releasing lease",
            extra={"path": requested.path, "lease_id": lease.lease_id},
        )
        if lease.has_lease_id and self._revoke_on_destroy:
            self._revoke(requested, lease)

    def _revoke(self, requested: RequestedSecret, lease: Lease) -> None:
        try:
            self._transport.revoke(lease)
        except Exception as e:
            logger.warning(
                "Cannot revoke lease",
                extra={
                    "path": requested.path,
                    "lease_id": lease.lease_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            self._events.multicast_event(
                SecretLeaseErrorEvent(requested=requested, error=e, lease=lease)
            )
            return
        logger.info("Lease revoked", extra={"path": requested.path, "lease_id": lease.lease_id})
        self._events.multicast_event(SecretLeaseRevokedEvent(requested=requested, lease=lease))

    def _remove_scoped_listener(self, requested: RequestedSecret) -> None:
        with self._lock:
            scoped = self._scoped_listeners.pop(requested, None)
        if scoped is not None:
            self._events.remove_listener(scoped)
            self._events.remove_error_listener(scoped)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Cancel every schedule and revoke every live lease (best effort). Idempotent."""
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            registrations = list(self._registrations.values())
            self._registrations.clear()

        for registration in registrations:
            vault_managed_leases.dec()
            self._shutdown(registration)
        logger.info("Lease engine destroyed", extra={"released": len(registrations)})

    close = destroy

    def __enter__(self) -> "LeaseEngine":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.destroy()


def _scoped(requested: RequestedSecret, listener: LeaseListener) -> LeaseListener:
    def scoped(event: SecretLeaseEvent) -> None:
        if event.requested is requested:
            listener(event)

    return scoped
