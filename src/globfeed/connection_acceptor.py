"""
Connection acceptor: the server loop.

Accepts unix socket connections forever and serves each on its own worker
thread. Any accept failure, including the listener being closed for
shutdown, ends the loop with AcceptError.
"""

import itertools
import socket
from typing import Callable, NoReturn, Optional

from globfeed.app_logger import AppLogger, LogContext, resolve_logger
from globfeed.content_feeder import ContentFeeder
from globfeed.content_source import ContentSource
from globfeed.errors import AcceptError, PatternError
from globfeed.file_finder import GlobFileFinder
from globfeed.metrics_collector import MetricsCollector
from globfeed.shutdown_watcher import EXIT_FAILURE, terminate_process
from globfeed.socket_resource import SocketResource
from globfeed.worker_pool import WorkerPool


def _terminate_on_fatal(error: BaseException) -> None:
    terminate_process(EXIT_FAILURE)


class ConnectionAcceptor:
    """
    Accept loop with one independent feeder per connection.

    The acceptor never waits for a connection to finish before accepting the
    next, and places no limit on simultaneous clients.
    """

    def __init__(
        self,
        pattern: str,
        socket_resource: SocketResource,
        file_finder: GlobFileFinder,
        content_source: ContentSource,
        worker_pool: Optional[WorkerPool] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        fatal_handler: Optional[Callable[[BaseException], None]] = None,
        logger: Optional[AppLogger] = None,
    ):
        """
        Initialise the acceptor.

        Args:
            pattern: Glob pattern served to every connection
            socket_resource: Holder of the process listener
            file_finder: Pattern expansion, run per connection
            content_source: Opens matched files
            worker_pool: Runs connection handlers, one thread each
            metrics_collector: Optional transfer statistics
            fatal_handler: Called when a connection hits a process-fatal error
                (a malformed pattern); defaults to terminating the process
            logger: Optional AppLogger, defaults to the process logger
        """
        self.pattern = pattern
        self._socket_resource = socket_resource
        self._file_finder = file_finder
        self._content_source = content_source
        self._logger = resolve_logger(logger)
        self._worker_pool = worker_pool or WorkerPool(logger=self._logger)
        self._metrics_collector = metrics_collector or MetricsCollector()
        self._fatal_handler = fatal_handler or _terminate_on_fatal
        self._context = LogContext(component="ConnectionAcceptor")
        self._connection_ids = itertools.count(1)

    @property
    def metrics_collector(self) -> MetricsCollector:
        return self._metrics_collector

    def serve(self, socket_path: str) -> NoReturn:
        """
        Create the listener and accept connections until accept fails.

        Raises:
            ListenerError: If the listener cannot be created
            AcceptError: When accept fails; the listener is terminated
        """
        self._socket_resource.create(socket_path)
        context = self._context.for_operation("serve")
        self._logger.info(
            "Serving files to connections", context=context, pattern=self.pattern
        )

        while True:
            try:
                connection = self._socket_resource.accept_next()
            except AcceptError:
                self._socket_resource.terminate()
                raise

            connection_id = next(self._connection_ids)
            self._metrics_collector.record_connection_accepted()
            self._logger.debug(
                "Connection accepted", context=context.for_connection(connection_id)
            )
            if self._worker_pool.submit_task(
                self.handle_connection, connection, connection_id
            ) is None:
                connection.close()

    def handle_connection(self, connection: socket.socket, connection_id: int) -> None:
        """Serve one connection; runs on its own worker thread."""
        feeder = ContentFeeder(
            self._file_finder,
            self._content_source,
            logger=self._logger,
            connection_id=connection_id,
        )
        try:
            result = feeder.feed(connection, self.pattern)
        except PatternError as e:
            self._metrics_collector.record_connection_failure()
            self._logger.critical(
                "Bad file globbing pattern",
                context=self._context.for_operation("handle_connection").for_connection(
                    connection_id
                ),
                pattern=self.pattern,
                error=e.reason,
            )
            self._fatal_handler(e)
            return
        except Exception:
            self._metrics_collector.record_connection_failure()
            raise
        self._metrics_collector.record_connection_completed(result)
