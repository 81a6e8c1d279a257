"""
hvac client construction.

All adapters obtain clients from one VaultClientFactory so they share a
single requests.Session (connection pool) and the same TLS and namespace
settings. Clients are cheap: a new one is built per token.
"""

import logging

import hvac
import requests

logger = logging.getLogger(__name__)


class VaultClientFactory:
    """
    Builds hvac clients bound to a token.

    Args:
        url: Vault address (e.g., "https://vault.company.com:8200")
        verify: TLS verification flag or CA bundle path
        namespace: Vault Enterprise namespace, if any
        timeout: Per-request timeout in seconds
        session: requests.Session to share; one is created (and owned) if omitted

    Example:
        >>> factory = VaultClientFactory("https://vault.company.com:8200")
        >>> client = factory.for_token(credential.token)
        >>> client.auth.token.lookup_self()
    """

    def __init__(
        self,
        url: str,
        verify: bool | str = True,
        namespace: str | None = None,
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        if not url:
            raise ValueError("url must be a non-empty string")
        self.url = url
        self.verify = verify
        self.namespace = namespace
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()

    def for_token(self, token: str | None) -> hvac.Client:
        """Return a client authenticated with ``token`` (None for login calls)."""
        return hvac.Client(
            url=self.url,
            token=token,
            verify=self.verify,
            namespace=self.namespace,
            timeout=self.timeout,
            session=self._session,
        )

    def close(self) -> None:
        """Close the shared HTTP session if this factory created it."""
        if self._owns_session:
            self._session.close()
            logger.debug("Vault HTTP session closed", extra={"vault_url": self.url})

    def __repr__(self) -> str:
        return f"VaultClientFactory(url={self.url!r}, namespace={self.namespace!r})"
