"""
Lease error strategies.

When a lease renewal fails the lease engine asks its LeaseStrategy whether
to keep the lease (and try again on the next cycle) or drop it (publishing
an expiry and, for rotating secrets, re-fetching).
"""

from collections.abc import Callable
from dataclasses import dataclass

from vault_lifecycle.common.exceptions import ConfigurationError, is_transient
from vault_lifecycle.domain.lease import Lease


def _causes(error: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    current: BaseException | None = error
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _is_io_error(error: BaseException) -> bool:
    return any(isinstance(cause, OSError) or is_transient(cause) for cause in _causes(error))


@dataclass(frozen=True)
class LeaseStrategy:
    """
    Decides whether a lease survives a failed renewal.

    Example:
        >>> LeaseStrategy.retain_on_io_error().should_drop(lease, RenewalError("down", transient=True))
        False
    """

    name: str
    _drop: Callable[[Lease, BaseException], bool]

    def should_drop(self, lease: Lease, error: BaseException) -> bool:
        return self._drop(lease, error)

    @classmethod
    def drop_on_error(cls) -> "LeaseStrategy":
        """Drop the lease on any renewal failure."""
        return cls("drop-on-error", lambda lease, error: True)

    @classmethod
    def retain_on_error(cls) -> "LeaseStrategy":
        """Keep the lease on any renewal failure."""
        return cls("retain-on-error", lambda lease, error: False)

    @classmethod
    def retain_on_io_error(cls) -> "LeaseStrategy":
        """Keep the lease when the failure was an I/O or transient server error."""
        return cls("retain-on-io-error", lambda lease, error: not _is_io_error(error))

    @classmethod
    def from_name(cls, name: str) -> "LeaseStrategy":
        factories = {
            "drop-on-error": cls.drop_on_error,
            "retain-on-error": cls.retain_on_error,
            "retain-on-io-error": cls.retain_on_io_error,
        }
        try:
            return factories[name]()
        except KeyError:
            raise ConfigurationError(
                f"Unknown lease strategy {name!r}, expected one of {sorted(factories)}"
            ) from None
