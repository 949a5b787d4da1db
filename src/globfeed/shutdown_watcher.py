"""
Interrupt handling: close the listener and terminate the process.

The signal handler itself only wakes a watcher thread. The watcher takes the
listener lock, closes the listener if it exists, logs, and ends the process
without draining in-flight connections.
"""

import logging
import os
import signal
import threading
from typing import Callable, Dict, Optional, Sequence

from globfeed.app_logger import AppLogger, LogContext, resolve_logger
from globfeed.socket_resource import SocketResource

EXIT_FAILURE = 1


def terminate_process(status: int = EXIT_FAILURE) -> None:
    """Flush logging and end the whole process immediately, from any thread."""
    logging.shutdown()
    os._exit(status)


class ShutdownWatcher:
    """Turns an interrupt into listener closure and process termination."""

    def __init__(
        self,
        socket_resource: SocketResource,
        terminate: Callable[[int], None] = terminate_process,
        signals: Sequence[signal.Signals] = (signal.SIGINT,),
        logger: Optional[AppLogger] = None,
    ):
        self._socket_resource = socket_resource
        self._terminate = terminate
        self._signals = tuple(signals)
        self._logger = resolve_logger(logger)
        self._context = LogContext(component="ShutdownWatcher")

        self._requested = threading.Event()
        self._signum: Optional[int] = None
        self._previous_handlers: Dict[int, object] = {}
        self._thread: Optional[threading.Thread] = None

    def install(self) -> None:
        """Register the signal handlers (main thread only) and start the watcher."""
        for signum in self._signals:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)

        if self._thread is None:
            self._thread = threading.Thread(
                target=self._watch, name="shutdown-watcher", daemon=True
            )
            self._thread.start()

    def uninstall(self) -> None:
        """Restore the handlers that were in place before ``install``."""
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _handle_signal(self, signum: int, frame) -> None:
        self.trigger(signum)

    def trigger(self, signum: int = signal.SIGINT) -> None:
        """Request shutdown as if ``signum`` had been received."""
        if self._signum is None:
            self._signum = signum
        self._requested.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the watcher thread to finish handling a request."""
        if self._thread is None:
            return False
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _watch(self) -> None:
        self._requested.wait()
        self.shutdown(self._signum if self._signum is not None else signal.SIGINT)

    def shutdown(self, signum: int) -> None:
        """Close the listener if present, log, then terminate."""
        closed = self._socket_resource.terminate()
        self._logger.critical(
            "Closing upon request",
            context=self._context.for_operation("shutdown"),
            signal=signal.Signals(signum).name,
            listener_closed=closed,
        )
        self._terminate(EXIT_FAILURE)
