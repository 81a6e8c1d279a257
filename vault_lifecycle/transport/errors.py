"""
Classification of hvac and requests failures.

Vault failures fall into two groups:

    Transient (keep the credential/lease, retry on the next cycle):
        VaultDown (503), InternalServerError (500), BadGateway (502),
        RateLimitExceeded (429), PreconditionFailed (412),
        connection errors and timeouts
    Terminal (credential/lease is no longer usable):
        InvalidRequest (400), Unauthorized (401), Forbidden (403),
        InvalidPath (404) and anything unclassified
"""

from typing import TypeVar

import requests
from hvac.exceptions import (
    BadGateway,
    Forbidden,
    InternalServerError,
    InvalidPath,
    InvalidRequest,
    PreconditionFailed,
    RateLimitExceeded,
    Unauthorized,
    VaultDown,
    VaultError,
)

from vault_lifecycle.common.exceptions import TransportError

TransportErrorT = TypeVar("TransportErrorT", bound=TransportError)

TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    VaultDown,
    InternalServerError,
    BadGateway,
    RateLimitExceeded,
    PreconditionFailed,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)

_STATUS_CODES: dict[type[VaultError], int] = {
    InvalidRequest: 400,
    Unauthorized: 401,
    Forbidden: 403,
    InvalidPath: 404,
    PreconditionFailed: 412,
    RateLimitExceeded: 429,
    InternalServerError: 500,
    BadGateway: 502,
    VaultDown: 503,
}


def status_code_of(error: BaseException) -> int | None:
    """Return the HTTP status Vault answered with, if it can be inferred."""
    for error_type, status_code in _STATUS_CODES.items():
        if isinstance(error, error_type):
            return status_code
    response = getattr(error, "response", None)
    return getattr(response, "status_code", None)


def is_transient_error(error: BaseException) -> bool:
    return isinstance(error, TRANSIENT_ERRORS)


def translate_hvac_error(
    error: BaseException,
    error_type: type[TransportErrorT],
    message: str,
    path: str | None = None,
    lease_id: str | None = None,
) -> TransportErrorT:
    """
    Wrap an hvac/requests failure into ``error_type``.

    Args:
        error: The original failure
        error_type: TransportError subclass to build (RenewalError, ...)
        message: Operation description; the original error text is appended
        path: Secret path, if any
        lease_id: Lease id, if any

    Example:
        >>> err = translate_hvac_error(VaultDown("sealed"), RenewalError, "Token renewal failed")
        >>> err.transient, err.status_code
        (True, 503)
    """
    return error_type(
        f"{message}: {error}",
        transient=is_transient_error(error),
        status_code=status_code_of(error),
        path=path,
        lease_id=lease_id,
    )
