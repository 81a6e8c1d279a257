"""
Single-flight renewal slot.

Each renewable entity (the session credential, each registered secret) owns
one SingleFlightRenewal. Scheduling replaces the outstanding task: the
previous one is cancelled first, so at most one renewal per entity is ever
pending. A task that fires after it was superseded does nothing.
"""

import logging
import threading
from collections.abc import Callable
from datetime import timedelta
from typing import Generic, TypeVar

from vault_lifecycle.scheduling.scheduler import RenewalScheduler, ScheduledTask

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlightRenewal(Generic[T]):
    """
    Holds the one outstanding scheduled action for an entity.

    Args:
        scheduler: Scheduler that runs the actions
        name: Label used for task names and log context

    Example:
        >>> slot = SingleFlightRenewal(scheduler, name="session")
        >>> slot.schedule(credential, engine._renew_scheduled, timedelta(seconds=55))
        >>> slot.schedule(renewed, engine._renew_scheduled, timedelta(seconds=55))  # first cancelled
    """

    def __init__(self, scheduler: RenewalScheduler, name: str) -> None:
        self._scheduler = scheduler
        self.name = name
        self._lock = threading.Lock()
        self._task: ScheduledTask | None = None
        self._target: T | None = None
        self._closed = False

    @property
    def pending(self) -> ScheduledTask | None:
        """The outstanding task, if any has not yet run or been cancelled."""
        task = self._task
        if task is None or task.done:
            return None
        return task

    @property
    def target(self) -> T | None:
        return self._target

    @property
    def closed(self) -> bool:
        return self._closed

    def schedule(
        self, target: T, action: Callable[[T], None], delay: timedelta
    ) -> ScheduledTask | None:
        """
        Replace the outstanding task with ``action(target)`` after ``delay``.

        Returns:
            The new task, or None when the slot was closed.
        """
        with self._lock:
            if self._closed:
                return None
            if self._task is not None:
                self._task.cancel()

            task_ref: list[ScheduledTask] = []

            def run() -> None:
                with self._lock:
                    if self._closed or not task_ref or self._task is not task_ref[0]:
                        logger.debug("Superseded task skipped", extra={"slot": self.name})
                        return
                action(target)

            task = self._scheduler.schedule(run, delay, name=self.name)
            task_ref.append(task)
            self._task = task
            self._target = target
            return task

    def cancel(self) -> bool:
        """Cancel the outstanding task. Returns True when one was cancelled."""
        with self._lock:
            task, self._task, self._target = self._task, None, None
        return task.cancel() if task is not None else False

    def close(self) -> bool:
        """Cancel the outstanding task and refuse any further scheduling."""
        with self._lock:
            self._closed = True
        return self.cancel()
