"""
Renewal scheduler.

The lifecycle engines never sleep on caller threads. Every renewal, expiry
and rotation is handed to a RenewalScheduler as a delayed one-shot task.
Each engine receives its scheduler at construction; there is no
process-wide default.

ThreadPoolRenewalScheduler runs one dispatcher thread that waits on a
condition variable over a heap of due times and hands due tasks to a
ThreadPoolExecutor, so a slow Vault call never delays other renewals.
"""

import heapq
import itertools
import logging
import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from enum import Enum
from types import TracebackType

from vault_lifecycle.common.logging.context import traced

logger = logging.getLogger(__name__)


class TaskState(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    DONE = "done"
    CANCELLED = "cancelled"


class ScheduledTask:
    """
    Handle to a delayed one-shot task.

    Cancellation is best-effort: a task that already started running is not
    interrupted, and cancel() returns False.
    """

    def __init__(self, fn: Callable[[], None], delay: timedelta, name: str | None = None) -> None:
        self.fn = fn
        self.delay = delay
        self.name = name or getattr(fn, "__name__", "task")
        self._state = TaskState.PENDING
        self._lock = threading.Lock()

    @property
    def state(self) -> TaskState:
        return self._state

    @property
    def cancelled(self) -> bool:
        return self._state is TaskState.CANCELLED

    @property
    def done(self) -> bool:
        return self._state in (TaskState.DONE, TaskState.CANCELLED)

    def cancel(self) -> bool:
        """Cancel the task if it has not started. Returns True when cancelled."""
        with self._lock:
            if self._state is not TaskState.PENDING:
                return False
            self._state = TaskState.CANCELLED
            return True

    def run(self) -> None:
        """Run the task unless it was cancelled. Exceptions are logged, never raised."""
        with self._lock:
            if self._state is not TaskState.PENDING:
                return
            self._state = TaskState.RUNNING
        try:
            traced(self.fn)()
        except Exception:
            logger.exception(
                "Scheduled task failed",
                extra={"task": self.name},
            )
        finally:
            self._state = TaskState.DONE

    def __repr__(self) -> str:
        return f"ScheduledTask(name={self.name!r}, delay={self.delay!r}, state={self._state.value})"


class RenewalScheduler(ABC):
    """Executes delayed one-shot tasks for the lifecycle engines."""

    @abstractmethod
    def schedule(
        self, fn: Callable[[], None], delay: timedelta, name: str | None = None
    ) -> ScheduledTask:
        """Run ``fn`` once after ``delay``; negative delays run immediately."""

    @abstractmethod
    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting tasks and cancel pending ones."""

    def __enter__(self) -> "RenewalScheduler":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.shutdown()


class ThreadPoolRenewalScheduler(RenewalScheduler):
    """
    Delayed task scheduler backed by a dispatcher thread and a worker pool.

    Args:
        max_workers: Worker threads running due tasks
        thread_name_prefix: Prefix for dispatcher and worker thread names

    Example:
        >>> with ThreadPoolRenewalScheduler(max_workers=2) as scheduler:
        ...     task = scheduler.schedule(lambda: None, timedelta(seconds=1))
        ...     task.cancel()
        True
    """

    def __init__(self, max_workers: int = 4, thread_name_prefix: str = "vault-renewal") -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix
        )
        self._condition = threading.Condition()
        self._queue: list[tuple[float, int, ScheduledTask]] = []
        self._sequence = itertools.count()
        self._shutdown = False
        self._dispatcher = threading.Thread(
            target=self._dispatch_loop,
            name=f"{thread_name_prefix}-dispatcher",
            daemon=True,
        )
        self._dispatcher.start()

    def schedule(
        self, fn: Callable[[], None], delay: timedelta, name: str | None = None
    ) -> ScheduledTask:
        task = ScheduledTask(fn, delay, name)
        due = time.monotonic() + max(0.0, delay.total_seconds())
        with self._condition:
            if self._shutdown:
                raise RuntimeError("Scheduler has been shut down")
            heapq.heappush(self._queue, (due, next(self._sequence), task))
            self._condition.notify()
        logger.debug(
            "Task scheduled",
            extra={"task": task.name, "delay_seconds": delay.total_seconds()},
        )
        return task

    def shutdown(self, wait: bool = True) -> None:
        with self._condition:
            if self._shutdown:
                return
            self._shutdown = True
            pending = [task for _, _, task in self._queue]
            self._queue.clear()
            self._condition.notify_all()
        for task in pending:
            task.cancel()
        self._dispatcher.join(timeout=5)
        self._executor.shutdown(wait=wait)
        logger.info(
            "Renewal scheduler shut down",
            extra={"cancelled_tasks": len(pending)},
        )

    @property
    def pending_count(self) -> int:
        with self._condition:
            return sum(1 for _, _, task in self._queue if not task.done)

    def _dispatch_loop(self) -> None:
        while True:
            with self._condition:
                while not self._shutdown and not self._queue:
                    self._condition.wait()
                if self._shutdown:
                    return
                due, _, task = self._queue[0]
                wait_for = due - time.monotonic()
                if wait_for > 0:
                    self._condition.wait(timeout=wait_for)
                    continue
                heapq.heappop(self._queue)
            if not task.done:
                self._executor.submit(task.run)
