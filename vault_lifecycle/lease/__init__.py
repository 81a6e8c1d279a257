"""Secret lease lifecycle management."""

from vault_lifecycle.lease.engine import LeaseEngine, LeaseListener, LeaseSnapshot
from vault_lifecycle.lease.managed import ManagedSecret, SecretAccessor
from vault_lifecycle.lease.strategy import LeaseStrategy

__all__ = [
    "LeaseEngine",
    "LeaseListener",
    "LeaseSnapshot",
    "LeaseStrategy",
    "ManagedSecret",
    "SecretAccessor",
]
