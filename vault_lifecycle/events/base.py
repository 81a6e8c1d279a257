"""Common base for lifecycle events."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar

from vault_lifecycle.domain.credential import utc_now


@dataclass(frozen=True, kw_only=True)
class LifecycleEvent:
    """
    Base class for every published event.

    Subclasses describing failures set ``is_error = True``; the multicaster
    routes those to error listeners only.
    """

    is_error: ClassVar[bool] = False

    occurred_at: datetime = field(default_factory=utc_now, compare=False)
