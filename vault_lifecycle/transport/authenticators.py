"""
Client authenticators.

TokenAuthenticator hands out an externally supplied token; it cannot
re-login, so a rejected renewal leaves the session unauthenticated.
AppRoleAuthenticator performs an AppRole login through hvac and can
re-login whenever the session needs a fresh token.
"""

import logging
import time
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

import requests
from hvac.exceptions import VaultError
from pydantic import SecretStr
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from vault_lifecycle.common.exceptions import AuthenticationError
from vault_lifecycle.domain.credential import Credential, CredentialKind
from vault_lifecycle.metrics import vault_session_login_latency_seconds
from vault_lifecycle.transport.base import ClientAuthenticator
from vault_lifecycle.transport.client import VaultClientFactory
from vault_lifecycle.transport.errors import TRANSIENT_ERRORS

logger = logging.getLogger(__name__)


def credential_from_auth(
    auth: Mapping[str, Any], kind: CredentialKind = CredentialKind.LOGIN
) -> Credential:
    """
    Build a Credential from the ``auth`` block of a Vault login response.

    Raises:
        AuthenticationError: If the block carries no client token
    """
    token = auth.get("client_token")
    if not token:
        raise AuthenticationError("Login response did not contain a client token")
    return Credential(
        token=token,
        lease_duration=timedelta(seconds=int(auth.get("lease_duration") or 0)),
        renewable=bool(auth.get("renewable", False)),
        kind=kind,
        accessor=auth.get("accessor"),
        policies=tuple(auth.get("token_policies") or auth.get("policies") or ()),
        metadata=auth.get("metadata") or {},
    )


def _reveal(value: str | SecretStr) -> str:
    return value.get_secret_value() if isinstance(value, SecretStr) else value


class TokenAuthenticator(ClientAuthenticator):
    """
    Returns a pre-issued token.

    The credential is EXTERNAL with unknown lifetime; the session engine
    resolves TTL and renewability through a self-lookup.
    """

    supports_relogin = False

    def __init__(self, token: str | SecretStr) -> None:
        if not _reveal(token):
            raise ValueError("token must be a non-empty string")
        self._token = token

    def login(self) -> Credential:
        return Credential.external(_reveal(self._token))


class AppRoleAuthenticator(ClientAuthenticator):
    """
    AppRole login (auth/<mount>/login).

    Transient transport failures are retried up to 3 times with exponential
    backoff before the login is reported as failed.

    Args:
        client_factory: Source of unauthenticated hvac clients
        role_id: AppRole role id
        secret_id: AppRole secret id (optional for bind_secret_id=false roles)
        mount_point: Auth mount path (default: "approle")
    """

    supports_relogin = True

    def __init__(
        self,
        client_factory: VaultClientFactory,
        role_id: str,
        secret_id: str | SecretStr | None = None,
        mount_point: str = "approle",
    ) -> None:
        if not role_id:
            raise ValueError("role_id must be a non-empty string")
        self._client_factory = client_factory
        self._role_id = role_id
        self._secret_id = secret_id
        self._mount_point = mount_point

    def login(self) -> Credential:
        started = time.monotonic()
        try:
            credential = self._login_with_retry()
        except AuthenticationError:
            raise
        except (VaultError, requests.exceptions.RequestException) as e:
            logger.error(
                "AppRole login failed",
                extra={
                    "mount_point": self._mount_point,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            raise AuthenticationError(f"AppRole login failed: {e}") from e
        finally:
            vault_session_login_latency_seconds.observe(time.monotonic() - started)

        logger.info(
            "AppRole login succeeded",
            extra={
                "mount_point": self._mount_point,
                "ttl_seconds": credential.lease_duration.total_seconds(),
                "renewable": credential.renewable,
            },
        )
        return credential

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True,
    )
    def _login_with_retry(self) -> Credential:
        client = self._client_factory.for_token(None)
        response = client.auth.approle.login(
            role_id=self._role_id,
            secret_id=_reveal(self._secret_id) if self._secret_id is not None else None,
            use_token=False,
            mount_point=self._mount_point,
        )
        try:
            return credential_from_auth(response["auth"])
        except (KeyError, TypeError) as e:
            raise AuthenticationError(f"Malformed AppRole login response: {e}") from e
