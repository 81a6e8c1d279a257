"""
Event fan-out to registered listeners.

Listeners are plain callables. Registration and removal swap an immutable
tuple under a lock, so publication iterates a stable snapshot without
holding any lock while user code runs.
"""

import logging
import threading
from collections.abc import Callable
from typing import Generic, TypeVar

from vault_lifecycle.events.base import LifecycleEvent
from vault_lifecycle.metrics import vault_event_listener_failures_total

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=LifecycleEvent)

Listener = Callable[[E], None]


class EventMulticaster(Generic[E]):
    """
    Publishes lifecycle events to listeners and error listeners.

    Error events (``event.is_error``) go to error listeners, every other
    event to listeners, each in registration order. A listener that raises
    is logged and skipped; the remaining listeners and the publishing
    renewal task are unaffected. With no error listener registered, error
    events are logged at WARNING level.

    Args:
        domain: Label for log context and metrics ("session", "lease")

    Example:
        >>> multicaster: EventMulticaster[AuthenticationEvent] = EventMulticaster("session")
        >>> multicaster.add_listener(lambda event: print(type(event).__name__))
        >>> multicaster.multicast_event(AuthenticationCreatedEvent(credential=cred))
        AuthenticationCreatedEvent
    """

    def __init__(self, domain: str) -> None:
        self.domain = domain
        self._lock = threading.Lock()
        self._listeners: tuple[Listener[E], ...] = ()
        self._error_listeners: tuple[Listener[E], ...] = ()

    @property
    def listeners(self) -> tuple[Listener[E], ...]:
        return self._listeners

    @property
    def error_listeners(self) -> tuple[Listener[E], ...]:
        return self._error_listeners

    def add_listener(self, listener: Listener[E]) -> None:
        if not callable(listener):
            raise TypeError("listener must be callable")
        with self._lock:
            self._listeners = (*self._listeners, listener)

    def remove_listener(self, listener: Listener[E]) -> bool:
        with self._lock:
            remaining = tuple(item for item in self._listeners if item != listener)
            removed = len(remaining) != len(self._listeners)
            self._listeners = remaining
        return removed

    def add_error_listener(self, listener: Listener[E]) -> None:
        if not callable(listener):
            raise TypeError("listener must be callable")
        with self._lock:
            self._error_listeners = (*self._error_listeners, listener)

    def remove_error_listener(self, listener: Listener[E]) -> bool:
        with self._lock:
            remaining = tuple(item for item in self._error_listeners if item != listener)
            removed = len(remaining) != len(self._error_listeners)
            self._error_listeners = remaining
        return removed

    def multicast_event(self, event: E) -> None:
        """Deliver ``event`` to the matching listener snapshot."""
        if event.is_error:
            targets = self._error_listeners
            if not targets:
                self._log_unhandled_error(event)
                return
        else:
            targets = self._listeners

        for listener in targets:
            try:
                listener(event)
            except Exception:
                vault_event_listener_failures_total.labels(domain=self.domain).inc()
                logger.exception(
                    "Event listener raised",
                    extra={
                        "domain": self.domain,
                        "event_type": type(event).__name__,
                        "listener": getattr(listener, "__qualname__", repr(listener)),
                    },
                )

    def _log_unhandled_error(self, event: E) -> None:
        error = getattr(event, "error", None)
        requested = getattr(event, "requested", None)
        logger.warning(
            "Unhandled lifecycle error",
            extra={
                "domain": self.domain,
                "event_type": type(event).__name__,
                "path": getattr(requested, "path", None),
                "error": str(error) if error is not None else None,
                "error_type": type(error).__name__ if error is not None else None,
            },
            exc_info=error if isinstance(error, BaseException) else None,
        )
