"""
Factory wiring the lifecycle engines from settings.

Authentication selection:
    - VAULT_LIFECYCLE_VAULT_ROLE_ID set → AppRoleAuthenticator (re-login capable)
    - otherwise VAULT_LIFECYCLE_VAULT_TOKEN set → TokenAuthenticator (static token)
    - neither → ConfigurationError

Example Usage:
    >>> lifecycle = create_lifecycle()
    >>> token = lifecycle.session.get_token()
    >>> db = lifecycle.leases.request_rotating_secret(
    ...     "database/creds/readonly", lifecycle.secret_fetcher()
    ... )
    >>> lifecycle.close()
"""

import logging
from dataclasses import dataclass
from types import TracebackType

import hvac

from vault_lifecycle.common.exceptions import ConfigurationError
from vault_lifecycle.common.logging.config import LIBRARY_LOGGER, configure_logging
from vault_lifecycle.config import LifecycleSettings, get_settings
from vault_lifecycle.lease.engine import LeaseEngine
from vault_lifecycle.scheduling.scheduler import RenewalScheduler, ThreadPoolRenewalScheduler
from vault_lifecycle.session.engine import SessionEngine
from vault_lifecycle.transport.authenticators import AppRoleAuthenticator, TokenAuthenticator
from vault_lifecycle.transport.base import ClientAuthenticator
from vault_lifecycle.transport.client import VaultClientFactory
from vault_lifecycle.transport.hvac_transport import (
    ClientSupplier,
    HvacCredentialTransport,
    HvacLeaseTransport,
    HvacSecretFetcher,
)

logger = logging.getLogger(__name__)


def create_client_factory(settings: LifecycleSettings | None = None) -> VaultClientFactory:
    settings = settings or get_settings()
    return VaultClientFactory(
        url=settings.vault_addr,
        verify=settings.vault_verify,
        namespace=settings.vault_namespace,
        timeout=settings.vault_timeout_seconds,
    )


def create_authenticator(
    settings: LifecycleSettings | None = None,
    client_factory: VaultClientFactory | None = None,
) -> ClientAuthenticator:
    """
    Select the authentication method from settings.

    Raises:
        ConfigurationError: If neither AppRole nor a token is configured
    """
    settings = settings or get_settings()
    if settings.vault_role_id:
        logger.info(
            "Using AppRole authentication",
            extra={"mount_point": settings.vault_approle_mount},
        )
        return AppRoleAuthenticator(
            client_factory=client_factory or create_client_factory(settings),
            role_id=settings.vault_role_id,
            secret_id=settings.vault_secret_id,
            mount_point=settings.vault_approle_mount,
        )
    if settings.vault_token is not None and settings.vault_token.get_secret_value():
        logger.info("Using static token authentication")
        return TokenAuthenticator(settings.vault_token)
    raise ConfigurationError(
        "No Vault authentication configured. "
        "Set VAULT_LIFECYCLE_VAULT_ROLE_ID (AppRole) or VAULT_LIFECYCLE_VAULT_TOKEN."
    )


def create_scheduler(settings: LifecycleSettings | None = None) -> ThreadPoolRenewalScheduler:
    settings = settings or get_settings()
    return ThreadPoolRenewalScheduler(max_workers=settings.scheduler_pool_size)


def create_session_engine(
    settings: LifecycleSettings | None = None,
    scheduler: RenewalScheduler | None = None,
    client_factory: VaultClientFactory | None = None,
    authenticator: ClientAuthenticator | None = None,
) -> SessionEngine:
    settings = settings or get_settings()
    client_factory = client_factory or create_client_factory(settings)
    return SessionEngine(
        authenticator=authenticator or create_authenticator(settings, client_factory),
        credential_transport=HvacCredentialTransport(client_factory),
        scheduler=scheduler or create_scheduler(settings),
        refresh_trigger=settings.build_refresh_trigger(),
        token_self_lookup=settings.token_self_lookup_enabled,
        login_timeout=settings.login_timeout,
        revoke_on_destroy=settings.revoke_on_destroy,
    )


def session_client_supplier(
    session: SessionEngine, client_factory: VaultClientFactory
) -> ClientSupplier:
    """Return a supplier of hvac clients bound to the session's current token."""

    def supply() -> hvac.Client:
        return client_factory.for_token(session.get_token().token)

    return supply


def create_lease_engine(
    session: SessionEngine,
    settings: LifecycleSettings | None = None,
    scheduler: RenewalScheduler | None = None,
    client_factory: VaultClientFactory | None = None,
) -> LeaseEngine:
    settings = settings or get_settings()
    client_factory = client_factory or create_client_factory(settings)
    return LeaseEngine(
        lease_transport=HvacLeaseTransport(session_client_supplier(session, client_factory)),
        scheduler=scheduler or create_scheduler(settings),
        refresh_trigger=settings.build_refresh_trigger(),
        lease_strategy=settings.build_lease_strategy(),
        revoke_on_destroy=settings.revoke_on_destroy,
    )


@dataclass
class VaultLifecycle:
    """Engines sharing one scheduler and HTTP session, closed together."""

    client_factory: VaultClientFactory
    scheduler: RenewalScheduler
    session: SessionEngine
    leases: LeaseEngine

    def secret_fetcher(self, unwrap_kv2: bool = True) -> HvacSecretFetcher:
        return HvacSecretFetcher(
            session_client_supplier(self.session, self.client_factory), unwrap_kv2=unwrap_kv2
        )

    def close(self) -> None:
        """Release leases first (they need the session token), then the session."""
        self.leases.destroy()
        self.session.destroy()
        self.scheduler.shutdown()
        self.client_factory.close()

    def __enter__(self) -> "VaultLifecycle":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()


def configure_library_logging(settings: LifecycleSettings | None = None) -> logging.Logger:
    """Send this library's logs to stdout as JSON, at the configured level and service name."""
    settings = settings or get_settings()
    return configure_logging(
        service_name=settings.service_name,
        log_level=settings.log_level,
        logger_name=LIBRARY_LOGGER,
    )


def create_lifecycle(
    settings: LifecycleSettings | None = None,
    configure_logs: bool = False,
) -> VaultLifecycle:
    """
    Build both engines on one scheduler and HTTP session.

    Args:
        settings: Settings to use (default: get_settings())
        configure_logs: Also install JSON logging for the library logger
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_library_logging(settings)
    client_factory = create_client_factory(settings)
    scheduler = create_scheduler(settings)
    session = create_session_engine(settings, scheduler, client_factory)
    leases = create_lease_engine(session, settings, scheduler, client_factory)
    return VaultLifecycle(
        client_factory=client_factory,
        scheduler=scheduler,
        session=session,
        leases=leases,
    )
