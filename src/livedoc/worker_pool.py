"""
Worker pool used to run independent rendering steps concurrently.

This module provides the WorkerPool class which wraps ThreadPoolExecutor
with task tracking, structured logging and graceful shutdown.
"""

import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, TYPE_CHECKING

from livedoc.app_logger import LogContext, get_default_logger

if TYPE_CHECKING:
    from livedoc.app_logger import AppLogger


class WorkerPool:
    """
    Thread pool shared by all requests of one server.

    Every request submits its stylesheet build and fragment conversions here
    and joins on the returned futures.
    """

    def __init__(
        self, max_workers: Optional[int] = None, logger: Optional["AppLogger"] = None
    ):
        """
        Initialise the worker pool.

        Args:
            max_workers: Maximum number of worker threads. If None, defaults
                to min(32, CPU count + 4)
            logger: Optional AppLogger, defaults to the process logger
        """
        if max_workers is None:
            max_workers = min(32, (os.cpu_count() or 1) + 4)

        self._max_workers = max_workers
        self._logger = logger or get_default_logger()
        self._context = LogContext(component="WorkerPool")

        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="render-worker"
        )

        self._active_futures: set = set()
        self._futures_lock = threading.Lock()
        self._running = True

    def submit_task(self, fn: Callable, *args, **kwargs) -> Future:
        """
        Submit a task to the worker pool.

        Returns:
            Future representing the task

        Raises:
            RuntimeError: If the pool has been shut down
        """
        if not self._running:
            raise RuntimeError("Worker pool is shut down")

        future = self._executor.submit(fn, *args, **kwargs)
        with self._futures_lock:
            self._active_futures.add(future)
            active_count = len(self._active_futures)

        self._logger.debug(
            "Task submitted to worker pool",
            context=self._context,
            task_name=getattr(fn, "__name__", str(fn)),
            active_tasks=active_count,
        )

        future.add_done_callback(self._task_completed_callback)
        return future

    def _task_completed_callback(self, future: Future) -> None:
        with self._futures_lock:
            self._active_futures.discard(future)

    def is_running(self) -> bool:
        return self._running

    def get_capacity(self) -> int:
        return self._max_workers

    def get_active_count(self) -> int:
        with self._futures_lock:
            return len(self._active_futures)

    def get_metrics(self) -> Dict[str, Any]:
        """Current pool statistics."""
        with self._futures_lock:
            return {
                "max_workers": self._max_workers,
                "active_tasks": len(self._active_futures),
                "is_running": self._running,
            }

    def shutdown(self, wait: bool = True) -> None:
        """
        Shut down the worker pool.

        Args:
            wait: Whether to wait for active tasks to complete
        """
        self._logger.info(
            "Shutting down worker pool",
            context=LogContext(component="WorkerPool", operation="shutdown"),
            active_tasks=self.get_active_count(),
        )
        self._running = False
        try:
            self._executor.shutdown(wait=wait)
        finally:
            with self._futures_lock:
                self._active_futures.clear()
