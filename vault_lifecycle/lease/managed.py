"""
Managed secrets: hand each fresh copy of a rotating secret to a consumer.

Typical use is keeping a connection pool's credentials in sync with a
dynamic database role:

    def apply(secrets: SecretAccessor) -> None:
        pool.reconfigure(
            user=secrets.get_required_string("username"),
            password=secrets.get_required_string("password"),
        )

    ManagedSecret.rotating("database/creds/readonly", fetcher, apply).register_with(engine)
"""

import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from vault_lifecycle.domain.lease import RequestedSecret, SecretFetchCallback
from vault_lifecycle.events.lease import (
    SecretLeaseCreatedEvent,
    SecretLeaseErrorEvent,
    SecretLeaseEvent,
    SecretLeaseRotatedEvent,
)
from vault_lifecycle.lease.engine import LeaseEngine

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING: Any = object()


class SecretAccessor:
    """
    Typed read access to a secret's data.

    Missing keys yield None (or the default) from the optional getters and
    KeyError from the required ones. A value of the wrong type raises
    TypeError.

    Example:
        >>> accessor = SecretAccessor({"username": "v-app-x1", "max_conns": 10})
        >>> accessor.get_required_string("username")
        'v-app-x1'
        >>> accessor.get_int("max_conns")
        10
        >>> accessor.get_int("min_conns", 1)
        1
    """

    def __init__(self, secrets: Mapping[str, Any]) -> None:
        self._secrets = secrets

    def get(
        self, key: str, expected_type: type[T] | tuple[type, ...] | None = None
    ) -> Any:
        value = self._secrets.get(key)
        if value is None or expected_type is None:
            return value
        if isinstance(value, expected_type):
            return value
        expected = (
            " | ".join(t.__name__ for t in expected_type)
            if isinstance(expected_type, tuple)
            else expected_type.__name__
        )
        raise TypeError(
            f"Value for key {key!r} (type: {type(value).__name__}) is not of type {expected}"
        )

    def get_required(self, key: str, expected_type: type[T]) -> T:
        value = self.get(key, expected_type)
        if value is None:
            raise KeyError(f"No value present for key: {key}")
        return value

    def get_string(self, key: str, default: str | None = None) -> str | None:
        value = self.get(key, str)
        return value if value is not None else default

    def get_required_string(self, key: str) -> str:
        return self.get_required(key, str)

    def get_int(self, key: str, default: int = _MISSING) -> int:
        value = self.get(key, (int, float))
        if value is None:
            if default is _MISSING:
                raise KeyError(f"No value present for key: {key}")
            return default
        return int(value)

    def as_mapping(self) -> Mapping[str, Any]:
        return self._secrets

    def __contains__(self, key: object) -> bool:
        return key in self._secrets

    def __repr__(self) -> str:
        return f"SecretAccessor(keys={sorted(self._secrets)})"


SecretsConsumer = Callable[[SecretAccessor], None]
ErrorConsumer = Callable[[BaseException], None]


def _log_error(path: str) -> ErrorConsumer:
    def log(error: BaseException) -> None:
        logger.error(
            "Error while processing managed secret",
            extra={"path": path, "error": str(error), "error_type": type(error).__name__},
            exc_info=error,
        )

    return log


class ManagedSecret:
    """
    A registration plus the consumer receiving each created/rotated copy.

    Consumer failures and lease errors for this secret are passed to the
    error consumer (default: logged).
    """

    def __init__(
        self,
        requested: RequestedSecret,
        on_secrets: SecretsConsumer,
        on_error: ErrorConsumer | None = None,
    ) -> None:
        self.requested = requested
        self._on_secrets = on_secrets
        self._on_error = on_error or _log_error(requested.path)

    @classmethod
    def rotating(
        cls,
        path: str,
        fetch: SecretFetchCallback,
        on_secrets: SecretsConsumer,
        on_error: ErrorConsumer | None = None,
    ) -> "ManagedSecret":
        return cls(RequestedSecret.rotating(path, fetch), on_secrets, on_error)

    def register_with(self, engine: LeaseEngine) -> RequestedSecret:
        return engine.register(self.requested, self.on_event)

    def unregister_from(self, engine: LeaseEngine) -> bool:
        return engine.unregister(self.requested)

    def on_event(self, event: SecretLeaseEvent) -> None:
        if isinstance(event, SecretLeaseErrorEvent):
            self._on_error(event.error)
            return
        if isinstance(event, (SecretLeaseCreatedEvent, SecretLeaseRotatedEvent)):
            try:
                self._on_secrets(SecretAccessor(event.secrets))
            except Exception as e:
                self._on_error(e)

    def __repr__(self) -> str:
        return f"ManagedSecret({self.requested!r})"
