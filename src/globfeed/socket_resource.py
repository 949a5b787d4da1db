"""
Unix socket listener resource.

This module provides the SocketResource class which owns the one listening
socket of the process. Creation and closing happen under a single lock so an
interrupt arriving during startup cannot race the listener's creation.
"""

import contextlib
import os
import socket
import threading
from enum import Enum
from typing import Optional

from globfeed.app_logger import AppLogger, LogContext, resolve_logger
from globfeed.errors import AcceptError, ListenerError

DEFAULT_BACKLOG = 128


class ListenerState(Enum):
    """Lifecycle of the listener."""

    UNINITIALIZED = "uninitialized"
    LISTENING = "listening"
    CLOSING = "closing"
    TERMINATED = "terminated"


class SocketResource:
    """
    Owns the listening unix socket.

    Exposes only ``create``, ``close_if_present`` / ``terminate`` and
    ``accept_next``. The listener moves through UNINITIALIZED, LISTENING,
    CLOSING and TERMINATED; CLOSING is only entered from LISTENING.
    """

    def __init__(self, backlog: int = DEFAULT_BACKLOG, logger: Optional[AppLogger] = None):
        self._backlog = backlog
        self._socket: Optional[socket.socket] = None
        self._path: Optional[str] = None
        self._state = ListenerState.UNINITIALIZED
        self._lock = threading.Lock()
        self._logger = resolve_logger(logger)
        self._context = LogContext(component="SocketResource")

    @property
    def state(self) -> ListenerState:
        with self._lock:
            return self._state

    def get_socket_path(self) -> Optional[str]:
        with self._lock:
            return self._path

    def is_listening(self) -> bool:
        with self._lock:
            return self._state == ListenerState.LISTENING

    def create(self, path: str) -> str:
        """
        Bind and listen on ``path``.

        Returns:
            The socket path

        Raises:
            ListenerError: If the listener was already created or terminated,
                or the socket cannot be bound (for example the path exists)
        """
        with self._lock:
            if self._state != ListenerState.UNINITIALIZED:
                raise ListenerError(f"Listener cannot be created in state {self._state.value}")

            sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
            try:
                sock.bind(path)
                sock.listen(self._backlog)
            except OSError as e:
                sock.close()
                raise ListenerError(f"Failed to listen on {path!r}: {e}") from e

            self._socket = sock
            self._path = path
            self._state = ListenerState.LISTENING

        self._logger.info(
            "Listening on unix socket",
            context=self._context.for_operation("create"),
            socket_path=path,
        )
        return path

    def accept_next(self) -> socket.socket:
        """
        Block until the next client connects.

        Raises:
            AcceptError: If the listener is not listening, or accept fails,
                including because the listener was closed while waiting
        """
        with self._lock:
            sock = self._socket
            state = self._state
        if sock is None or state != ListenerState.LISTENING:
            raise AcceptError(f"Listener is {state.value}")

        try:
            connection, _ = sock.accept()
        except OSError as e:
            raise AcceptError(f"Accept failed: {e}") from e
        return connection

    def close_if_present(self) -> bool:
        """
        Close the listener if it is listening.

        Returns:
            True if this call closed the listener
        """
        with self._lock:
            return self._close_locked()

    def terminate(self) -> bool:
        """
        Close the listener if present and mark the resource terminated.

        Returns:
            True if this call closed the listener
        """
        with self._lock:
            closed = self._close_locked()
            self._state = ListenerState.TERMINATED
            return closed

    def _close_locked(self) -> bool:
        if self._state != ListenerState.LISTENING or self._socket is None:
            return False

        self._state = ListenerState.CLOSING
        # shutdown wakes a thread blocked in accept(); some platforms refuse
        # it on a listening socket, close() alone is enough there
        with contextlib.suppress(OSError):
            self._socket.shutdown(socket.SHUT_RDWR)
        self._socket.close()
        self._socket = None

        if self._path:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(self._path)

        self._state = ListenerState.TERMINATED
        self._logger.info(
            "Listener closed",
            context=self._context.for_operation("close"),
            socket_path=self._path,
        )
        return True
