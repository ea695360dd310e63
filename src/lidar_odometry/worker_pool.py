"""Background worker pool with a supervised task loop.

Tasks are plain callables. Each runs inside its own failure boundary: an
exception is logged and delivered as a failed TaskResult, and the worker
moves on to the next task. Every submitted task resolves its future,
including the ones still queued when the pool is stopped (the queue is
drained first).
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable

from .errors import LidarOdometryError, WorkerPoolError

logger = logging.getLogger(__name__)


@dataclass
class TaskResult:
    """Outcome of one task: either a value or the error that aborted it."""

    value: Any = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _run_task(pool_name: str, fn: Callable[..., Any], args: tuple) -> TaskResult:
    name = getattr(fn, "__name__", repr(fn))
    try:
        return TaskResult(value=fn(*args))
    except LidarOdometryError as e:
        logger.error("[%s] Task %s aborted: %s", pool_name, name, e)
        return TaskResult(error=e)
    except Exception as e:
        logger.exception("[%s] Unexpected error in task %s", pool_name, name)
        return TaskResult(error=e)


class WorkerPool:
    """FIFO task queue served by a fixed number of threads."""

    def __init__(self, name: str, num_threads: int = 1) -> None:
        """Initialize pool.

        Args:
            name: Pool name used for thread names and log lines
            num_threads: Number of worker threads; 1 keeps strict FIFO order
        """
        self._name = name
        self._num_threads = num_threads
        self._queue: deque[tuple[Future, Callable[..., Any], tuple]] = deque()
        self._cond = threading.Condition()
        self._threads: list[threading.Thread] = []
        self._active = 0
        self._stop_requested = False
        self._is_running = False

    def start(self) -> None:
        """Start the worker threads."""
        with self._cond:
            if self._is_running:
                return
            self._stop_requested = False
            self._is_running = True

        self._threads = [
            threading.Thread(
                target=self._worker_main,
                name=f"{self._name}-{i}",
                daemon=True,
            )
            for i in range(self._num_threads)
        ]
        for thread in self._threads:
            thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Run the remaining queued tasks, then stop the workers."""
        with self._cond:
            if not self._is_running:
                return
            self._stop_requested = True
            self._cond.notify_all()

        for thread in self._threads:
            thread.join(timeout=timeout)

        with self._cond:
            self._is_running = False
        self._threads = []

    def enqueue(self, fn: Callable[..., Any], *args: Any) -> Future[TaskResult]:
        """Submit fn(*args).

        Returns:
            Future resolving to the TaskResult of the call

        Raises:
            WorkerPoolError: If the pool is not running
        """
        future: Future[TaskResult] = Future()
        with self._cond:
            if not self._is_running or self._stop_requested:
                raise WorkerPoolError(f"Worker pool '{self._name}' is not running")
            self._queue.append((future, fn, args))
            self._cond.notify_all()
        return future

    def pending_tasks(self) -> int:
        """Number of tasks queued but not yet started."""
        with self._cond:
            return len(self._queue)

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """Block until no task is queued or running.

        Returns:
            True if the pool became idle, False on timeout
        """
        with self._cond:
            return self._cond.wait_for(
                lambda: not self._queue and self._active == 0, timeout
            )

    @property
    def is_running(self) -> bool:
        with self._cond:
            return self._is_running

    def _worker_main(self) -> None:
        while True:
            with self._cond:
                self._cond.wait_for(lambda: self._queue or self._stop_requested)
                if not self._queue:
                    return
                future, fn, args = self._queue.popleft()
                self._active += 1

            try:
                if future.set_running_or_notify_cancel():
                    future.set_result(_run_task(self._name, fn, args))
            finally:
                with self._cond:
                    self._active -= 1
                    self._cond.notify_all()
