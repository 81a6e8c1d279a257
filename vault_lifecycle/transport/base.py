"""
Collaborator interfaces the lifecycle engines depend on.

The engines never speak HTTP themselves. They call these interfaces, which
are implemented on top of hvac in ``vault_lifecycle.transport.hvac_transport``
and ``vault_lifecycle.transport.authenticators`` and are easy to fake in
tests.

Error contract:
    - ClientAuthenticator.login raises AuthenticationError
    - CredentialTransport / LeaseTransport raise TransportError subclasses
      (RenewalError, RevocationError, TokenLookupError) with ``transient``
      set for failures expected to clear on their own
"""

from abc import ABC, abstractmethod
from datetime import timedelta

from vault_lifecycle.domain.credential import Credential
from vault_lifecycle.domain.lease import Lease


class ClientAuthenticator(ABC):
    """
    Obtains a fresh credential.

    ``supports_relogin`` tells the session engine whether calling login()
    again yields a new credential (AppRole, Kubernetes, ...). A static token
    authenticator returns the same token every time, so re-login cannot
    recover from a rejected renewal.
    """

    supports_relogin: bool = True

    @abstractmethod
    def login(self) -> Credential:
        """
        Authenticate against Vault.

        Returns:
            The new credential

        Raises:
            AuthenticationError: If authentication fails
        """


class CredentialTransport(ABC):
    """Token self-operations performed with the credential itself."""

    @abstractmethod
    def renew_self(self, credential: Credential) -> Credential:
        """
        Renew ``credential``.

        Returns:
            The renewed credential (same token, fresh lifetime)

        Raises:
            RenewalError: If Vault rejects or cannot serve the renewal
        """

    @abstractmethod
    def revoke_self(self, credential: Credential) -> None:
        """
        Revoke ``credential``.

        Raises:
            RevocationError: If revocation fails
        """

    @abstractmethod
    def lookup_self(self, credential: Credential) -> Credential:
        """
        Resolve lifetime metadata (TTL, renewability) for ``credential``.

        Raises:
            TokenLookupError: If the lookup fails
        """


class LeaseTransport(ABC):
    """Lease operations against sys/leases."""

    @abstractmethod
    def renew(self, lease: Lease, increment: timedelta) -> Lease:
        """
        Renew ``lease`` by ``increment``.

        Raises:
            RenewalError: If Vault rejects or cannot serve the renewal
        """

    @abstractmethod
    def revoke(self, lease: Lease) -> None:
        """
        Revoke ``lease``.

        Raises:
            RevocationError: If revocation fails
        """
