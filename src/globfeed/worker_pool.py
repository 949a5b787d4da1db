"""
Worker threads for connection handling.

This module provides the WorkerPool class which runs every submitted task on
its own daemon thread. There is no capacity limit: each accepted connection
is served immediately, and work still running when the process exits is
abandoned.
"""

import itertools
import threading
from typing import Any, Callable, Dict, Optional, Set

from globfeed.app_logger import AppLogger, LogContext, resolve_logger


class WorkerPool:
    """
    Unbounded thread-per-task runner.

    Key Features:
    -------------
    - One daemon thread per task, started on submission
    - Active task tracking
    - Task exceptions are logged and passed to an optional error callback
    """

    def __init__(
        self,
        thread_name_prefix: str = "connection",
        error_callback: Optional[Callable[[BaseException], None]] = None,
        logger: Optional[AppLogger] = None,
    ):
        """
        Initialise the worker pool.

        Args:
            thread_name_prefix: Prefix for worker thread names
            error_callback: Called with any exception escaping a task
            logger: Optional AppLogger for error reporting
        """
        self._thread_name_prefix = thread_name_prefix
        self._error_callback = error_callback
        self._logger = resolve_logger(logger)
        self._context = LogContext(component="WorkerPool")

        self._active: Set[threading.Thread] = set()
        self._active_lock = threading.Lock()
        self._counter = itertools.count(1)
        self._submitted = 0
        self._failed = 0
        self._running = True

    def submit_task(self, fn: Callable, *args, **kwargs) -> Optional[threading.Thread]:
        """
        Run ``fn(*args, **kwargs)`` on a new thread.

        Returns:
            The started thread, or None if the pool has been shut down
        """
        if not self._running:
            return None

        thread = threading.Thread(
            target=self._run_task,
            args=(fn, args, kwargs),
            name=f"{self._thread_name_prefix}-{next(self._counter)}",
            daemon=True,
        )
        with self._active_lock:
            self._active.add(thread)
            self._submitted += 1
            active_count = len(self._active)

        thread.start()
        self._logger.debug(
            "Task started",
            context=self._context.for_operation("submit_task"),
            task_name=getattr(fn, "__name__", str(fn)),
            thread=thread.name,
            active_tasks=active_count,
        )
        return thread

    def _run_task(self, fn: Callable, args: tuple, kwargs: dict) -> None:
        try:
            fn(*args, **kwargs)
        except Exception as e:
            with self._active_lock:
                self._failed += 1
            self._logger.error(
                "Task failed",
                context=self._context.for_operation("run_task"),
                exc_info=True,
                task_name=getattr(fn, "__name__", str(fn)),
                error=str(e),
            )
            if self._error_callback:
                self._error_callback(e)
        finally:
            with self._active_lock:
                self._active.discard(threading.current_thread())

    def is_running(self) -> bool:
        return self._running

    def get_active_count(self) -> int:
        with self._active_lock:
            return len(self._active)

    def get_metrics(self) -> Dict[str, Any]:
        """Snapshot of pool statistics."""
        with self._active_lock:
            return {
                "active_workers": len(self._active),
                "submitted_tasks": self._submitted,
                "failed_tasks": self._failed,
                "is_running": self._running,
            }

    def shutdown(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        """
        Stop accepting tasks.

        Args:
            wait: Join running tasks before returning
            timeout: Per-thread join timeout when waiting
        """
        self._running = False
        with self._active_lock:
            threads = list(self._active)

        self._logger.debug(
            "Shutting down worker pool",
            context=self._context.for_operation("shutdown"),
            active_tasks=len(threads),
            wait_for_completion=wait,
        )
        if wait:
            for thread in threads:
                thread.join(timeout)
