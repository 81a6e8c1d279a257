"""
Session engine: one live Vault token shared by many threads.

Lifecycle:

    Unauthenticated --login ok--> Valid --renew ok--> Valid
        Valid --renew rejected, authenticator can re-login--> Valid (new login)
        Valid --renew rejected, static token--> Unauthenticated
        Valid --renewed TTL below threshold / TTL ran out--> Unauthenticated (+ re-login)
        Unauthenticated --login failed--> Unauthenticated (error event, raised to caller)
        any --destroy--> Terminated

Callers only ever see get_token(). Renewals run on the scheduler; a cached,
unexpired credential is returned without taking a lock.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import timedelta
from enum import Enum
from types import TracebackType

from vault_lifecycle.common.exceptions import (
    AuthenticationError,
    SessionTerminatedError,
    is_transient,
)
from vault_lifecycle.domain.credential import Credential, CredentialKind
from vault_lifecycle.events.authentication import (
    AuthenticationCreatedEvent,
    AuthenticationErrorEvent,
    AuthenticationEvent,
    AuthenticationRenewedEvent,
    LoginTokenExpiredEvent,
    LoginTokenRevokedEvent,
)
from vault_lifecycle.events.multicaster import EventMulticaster
from vault_lifecycle.metrics import (
    vault_lease_expirations_total,
    vault_session_logins_total,
    vault_session_renewals_total,
)
from vault_lifecycle.scheduling.renewal import SingleFlightRenewal
from vault_lifecycle.scheduling.scheduler import RenewalScheduler
from vault_lifecycle.scheduling.trigger import (
    FixedTimeoutRefreshTrigger,
    RefreshTrigger,
    RemainingLifetime,
)
from vault_lifecycle.transport.base import ClientAuthenticator, CredentialTransport

logger = logging.getLogger(__name__)

DEFAULT_LOGIN_TIMEOUT = timedelta(seconds=30)

AuthenticationListener = Callable[[AuthenticationEvent], None]


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    VALID = "valid"
    TERMINATED = "terminated"


class SessionEngine:
    """
    Keeps a Vault token alive and hands it out to concurrent callers.

    Args:
        authenticator: Produces credentials (login)
        credential_transport: Performs renew/revoke/lookup-self
        scheduler: Runs renewal and expiry tasks
        refresh_trigger: When to renew (default: 5s lead time)
        token_self_lookup: Resolve TTL of externally supplied tokens
        login_timeout: How long callers wait for another thread's login
        revoke_on_destroy: Revoke login-derived tokens on destroy()

    Thread Safety:
        get_token() is lock-free while a valid credential is cached.
        Concurrent callers finding no credential share a single login call.

    Example:
        >>> with SessionEngine(authenticator, transport, scheduler) as session:
        ...     client = factory.for_token(session.get_token().token)
    """

    def __init__(
        self,
        authenticator: ClientAuthenticator,
        credential_transport: CredentialTransport,
        scheduler: RenewalScheduler,
        refresh_trigger: RefreshTrigger | None = None,
        token_self_lookup: bool = True,
        login_timeout: timedelta = DEFAULT_LOGIN_TIMEOUT,
        revoke_on_destroy: bool = True,
    ) -> None:
        self._authenticator = authenticator
        self._transport = credential_transport
        self._trigger = refresh_trigger or FixedTimeoutRefreshTrigger()
        self._token_self_lookup = token_self_lookup
        self._login_timeout = login_timeout
        self._revoke_on_destroy = revoke_on_destroy

        self._lock = threading.Lock()
        self._credential: Credential | None = None
        self._login_future: Future[Credential] | None = None
        self._destroyed = False
        self._renewal: SingleFlightRenewal[Credential] = SingleFlightRenewal(scheduler, "session")
        self._events: EventMulticaster[AuthenticationEvent] = EventMulticaster("session")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        if self._destroyed:
            return SessionState.TERMINATED
        if self._credential is None:
            return SessionState.UNAUTHENTICATED
        return SessionState.VALID

    @property
    def credential(self) -> Credential | None:
        """The cached credential, without triggering a login."""
        return self._credential

    @property
    def refresh_trigger(self) -> RefreshTrigger:
        return self._trigger

    def get_token(self, timeout: timedelta | None = None) -> Credential:
        """
        Return a valid credential, logging in if none is cached.

        Args:
            timeout: Maximum wait for a login started by another thread
                (default: the engine's login timeout)

        Returns:
            The current credential

        Raises:
            AuthenticationError: If login fails or the wait times out
            SessionTerminatedError: If the engine was destroyed
        """
        if self._destroyed:
            raise SessionTerminatedError()

        credential = self._credential
        if credential is not None and not credential.is_expired():
            return credential

        return self._login(timeout or self._login_timeout)

    def renew(self) -> bool:
        """
        Renew the current credential now.

        Called by the scheduler; safe to call manually. Failures are
        published as events and never raised.

        Returns:
            True if the credential was renewed and installed
        """
        credential = self._credential
        if credential is None or self._destroyed or not credential.renewable:
            return False

        try:
            renewed = self._transport.renew_self(credential)
        except Exception as e:
            self._on_renewal_failure(credential, e)
            return False

        if self._destroyed:
            logger.debug("Renewal result discarded, session destroyed")
            return False

        if self._trigger.is_expired(renewed):
            logger.info(
                "Renewed token TTL below threshold, dropping token",
                extra={
                    "ttl_seconds": renewed.lease_duration.total_seconds(),
                    "threshold_seconds": self._trigger.valid_ttl_threshold(renewed).total_seconds(),
                },
            )
            vault_session_renewals_total.labels(status="expired").inc()
            self._expire(credential, published=renewed)
            return False

        with self._lock:
            if self._credential is not credential:
                logger.debug("Renewal result discarded, credential superseded")
                return False
            self._credential = renewed

        vault_session_renewals_total.labels(status="success").inc()
        logger.info(
            "Session token renewed",
            extra={
                "ttl_seconds": renewed.lease_duration.total_seconds(),
                "accessor": renewed.accessor,
            },
        )
        self._events.multicast_event(AuthenticationRenewedEvent(credential=renewed))
        self._schedule(renewed)
        return True

    def destroy(self) -> None:
        """
        Terminate the session.

        Cancels the pending renewal, then revokes a login-derived token
        (best effort). Idempotent. get_token() raises afterwards.
        """
        with self._lock:
            if self._destroyed:
                return
            self._destroyed = True
            credential, self._credential = self._credential, None

        self._renewal.close()
        if credential is not None:
            self._revoke(credential)
        logger.info("Session destroyed")

    close = destroy

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: AuthenticationListener) -> None:
        self._events.add_listener(listener)

    def remove_listener(self, listener: AuthenticationListener) -> bool:
        return self._events.remove_listener(listener)

    def add_error_listener(self, listener: AuthenticationListener) -> None:
        self._events.add_error_listener(listener)

    def remove_error_listener(self, listener: AuthenticationListener) -> bool:
        return self._events.remove_error_listener(listener)

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def _login(self, timeout: timedelta) -> Credential:
        with self._lock:
            if self._destroyed:
                raise SessionTerminatedError()
            credential = self._credential
            if credential is not None:
                if not credential.is_expired():
                    return credential
                logger.info("Cached token expired, logging in again")
                self._credential = None

            future = self._login_future
            owner = future is None
            if future is None:
                future = Future()
                self._login_future = future

        if owner:
            self._perform_login(future)

        try:
            return future.result(timeout=timeout.total_seconds())
        except FutureTimeoutError:
            raise AuthenticationError(
                f"Timed out after {timeout.total_seconds():.1f}s waiting for login"
            ) from None

    def _perform_login(self, future: "Future[Credential]") -> None:
        try:
            credential = self._lookup_if_external(self._authenticator.login())
        except Exception as e:
            error = (
                e if isinstance(e, AuthenticationError) else AuthenticationError(f"Login failed: {e}")
            )
            if error is not e:
                error.__cause__ = e
            vault_session_logins_total.labels(status="failure").inc()
            logger.error(
                "Login failed",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            with self._lock:
                self._login_future = None
            self._events.multicast_event(AuthenticationErrorEvent(error=error))
            future.set_exception(error)
            return
        except BaseException as e:
            with self._lock:
                self._login_future = None
            interrupted = AuthenticationError(f"Login interrupted: {type(e).__name__}")
            interrupted.__cause__ = e
            future.set_exception(interrupted)
            raise

        with self._lock:
            self._login_future = None
            destroyed = self._destroyed
            if not destroyed:
                self._credential = credential

        if destroyed:
            self._revoke(credential)
            future.set_exception(SessionTerminatedError())
            return

        vault_session_logins_total.labels(status="success").inc()
        logger.info(
            "Login succeeded",
            extra={
                "kind": credential.kind.value,
                "renewable": credential.renewable,
                "ttl_seconds": credential.lease_duration.total_seconds(),
            },
        )
        self._events.multicast_event(AuthenticationCreatedEvent(credential=credential))
        self._schedule(credential)
        future.set_result(credential)

    def _lookup_if_external(self, credential: Credential) -> Credential:
        if credential.kind is not CredentialKind.EXTERNAL or not self._token_self_lookup:
            return credential
        try:
            return self._transport.lookup_self(credential)
        except Exception as e:
            # Token stays usable; without TTL it is treated as permanent.
            logger.warning(
                "Token self-lookup failed, using token without lifetime information",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return credential

    def _relogin(self) -> None:
        if self._destroyed or not self._authenticator.supports_relogin:
            return
        try:
            self._login(self._login_timeout)
        except AuthenticationError as e:
            logger.warning(
                "Re-login failed, next get_token() will retry",
                extra={"error": str(e)},
            )

    # ------------------------------------------------------------------
    # Renewal scheduling
    # ------------------------------------------------------------------

    def _schedule(self, credential: Credential) -> None:
        if credential.is_permanent or credential.lease_duration == timedelta(0):
            logger.debug("Token has no TTL, no renewal scheduled")
            return

        renew = credential.renewable
        if self._trigger.is_expired(credential):
            # Too short to renew safely: expire and log in again.
            renew = False
            delay: timedelta | None = self._trigger.min_delay
        else:
            delay = self._trigger.next_delay(credential)
        if delay is None:
            return

        action = self._renew_scheduled if renew else self._expire_scheduled
        self._renewal.schedule(credential, action, delay)
        logger.debug(
            "Session refresh scheduled",
            extra={
                "action": "renew" if renew else "expire",
                "delay_seconds": delay.total_seconds(),
            },
        )

    def _renew_scheduled(self, credential: Credential) -> None:
        if self._credential is credential:
            self.renew()

    def _expire_scheduled(self, credential: Credential) -> None:
        if self._credential is credential:
            logger.info("Non-renewable token reached end of life")
            self._expire(credential)

    def _on_renewal_failure(self, credential: Credential, error: Exception) -> None:
        vault_session_renewals_total.labels(status="failure").inc()
        logger.warning(
            "Session token renewal failed",
            extra={
                "error": str(error),
                "error_type": type(error).__name__,
                "transient": is_transient(error),
            },
        )
        self._events.multicast_event(AuthenticationErrorEvent(error=error, credential=credential))

        if self._destroyed:
            return

        if is_transient(error):
            remaining = RemainingLifetime(credential.remaining())
            if self._trigger.is_expired(remaining):
                self._expire(credential)
                return
            delay = self._trigger.next_delay(remaining)
            if delay is not None and self._credential is credential:
                self._renewal.schedule(credential, self._renew_scheduled, delay)
            return

        if self._drop(credential):
            self._relogin()

    def _expire(self, credential: Credential, published: Credential | None = None) -> None:
        vault_lease_expirations_total.labels(kind="session").inc()
        self._events.multicast_event(LoginTokenExpiredEvent(credential=published or credential))
        if self._drop(credential):
            self._relogin()

    def _drop(self, credential: Credential) -> bool:
        with self._lock:
            if self._credential is not credential:
                return False
            self._credential = None
        self._renewal.cancel()
        logger.info("Session token dropped")
        return True

    def _revoke(self, credential: Credential) -> None:
        if not credential.is_login or not self._revoke_on_destroy:
            return
        try:
            self._transport.revoke_self(credential)
        except Exception as e:
            logger.warning(
                "Cannot revoke session token",
                extra={"error": str(e), "error_type": type(e).__name__},
            )
            return
        logger.info("Session token revoked", extra={"accessor": credential.accessor})
        self._events.multicast_event(LoginTokenRevokedEvent(credential=credential))

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> "SessionEngine":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.destroy()
