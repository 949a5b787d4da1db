"""
Main server module that wires the components together.

Process-level failures (missing settings, a malformed pattern, listener and
accept errors) are logged here and turned into an exit status. Per-file and
per-connection failures never reach this layer.
"""

from typing import Callable, Optional

from globfeed.app_logger import AppLogger, LogContext, resolve_logger
from globfeed.connection_acceptor import ConnectionAcceptor
from globfeed.content_source import DEFAULT_CHUNK_SIZE, ContentSource
from globfeed.errors import AcceptError, ConfigError, ListenerError, PatternError
from globfeed.file_finder import GlobFileFinder
from globfeed.metrics_collector import MetricsCollector
from globfeed.shutdown_watcher import EXIT_FAILURE, ShutdownWatcher, terminate_process
from globfeed.socket_resource import SocketResource
from globfeed.worker_pool import WorkerPool


class GlobFeedServer:
    """
    Serves the files matching one pattern on one unix socket.

    Components:
    -----------
    - SocketResource: the listener, guarded by its lock
    - GlobFileFinder / ContentSource: per-connection enumeration and opening
    - ConnectionAcceptor: the accept loop
    - ShutdownWatcher: SIGINT closes the listener and ends the process
    """

    def __init__(
        self,
        socket_path: str,
        pattern: str,
        recursive: bool = False,
        propagate_copy_errors: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        terminate: Callable[[int], None] = terminate_process,
        logger: Optional[AppLogger] = None,
    ):
        """
        Initialise the server.

        Args:
            socket_path: Filesystem path of the unix socket to create
            pattern: Glob pattern whose matches are served
            recursive: Let ``**`` match across directories
            propagate_copy_errors: Report a failed file copy as an error
                rather than as a silently short file
            chunk_size: Copy buffer size in bytes
            terminate: Ends the process with a status; injectable for tests
            logger: Optional AppLogger, defaults to the process logger
        """
        self.socket_path = socket_path
        self.pattern = pattern
        self._terminate = terminate
        self._logger = resolve_logger(logger)
        self._context = LogContext(component="GlobFeedServer")

        self.socket_resource = SocketResource(logger=self._logger)
        self.file_finder = GlobFileFinder(recursive=recursive, logger=self._logger)
        self.content_source = ContentSource(
            chunk_size=chunk_size,
            propagate_errors=propagate_copy_errors,
            logger=self._logger,
        )
        self.metrics_collector = MetricsCollector()
        self.worker_pool = WorkerPool(logger=self._logger)
        self.acceptor = ConnectionAcceptor(
            pattern,
            self.socket_resource,
            self.file_finder,
            self.content_source,
            worker_pool=self.worker_pool,
            metrics_collector=self.metrics_collector,
            fatal_handler=self._on_fatal,
            logger=self._logger,
        )
        self.shutdown_watcher = ShutdownWatcher(
            self.socket_resource, terminate=terminate, logger=self._logger
        )

    def validate_setup(self) -> None:
        """
        Validate configuration before anything is started.

        Raises:
            ConfigError: If the socket path or pattern is missing
            PatternError: If the pattern is malformed
        """
        if not self.socket_path:
            raise ConfigError("You must provide a name")
        if not self.pattern:
            raise ConfigError("You must provide a pattern")
        self.file_finder.validate_pattern(self.pattern)

    def setup_signal_handlers(self) -> None:
        """Install the interrupt handler. Must be called from the main thread."""
        self.shutdown_watcher.install()

    def run(self) -> int:
        """
        Validate, install signal handling and serve until a fatal error.

        Returns:
            Exit code; the loop only ever ends in failure, so this is 1
        """
        context = self._context.for_operation("run")
        try:
            self.validate_setup()
            self.setup_signal_handlers()
            self.acceptor.serve(self.socket_path)
        except ConfigError as e:
            self._logger.critical("Configuration error", context=context, error=str(e))
        except PatternError as e:
            self._logger.critical(
                "Bad file globbing pattern", context=context, pattern=e.pattern, error=e.reason
            )
        except ListenerError as e:
            self._logger.critical("Cannot create listener", context=context, error=str(e))
        except AcceptError as e:
            self._logger.critical(
                "Accept failed",
                context=context,
                error=str(e),
                **self.metrics_collector.get_metrics(),
            )
        finally:
            self.cleanup()
        return EXIT_FAILURE

    def _on_fatal(self, error: BaseException) -> None:
        self.socket_resource.terminate()
        self._terminate(EXIT_FAILURE)

    def cleanup(self) -> None:
        """Close the listener, stop taking connection tasks, restore signal handlers."""
        self.socket_resource.terminate()
        self.worker_pool.shutdown(wait=False)
        self.shutdown_watcher.uninstall()

    def get_socket_path(self) -> Optional[str]:
        return self.socket_resource.get_socket_path()

    def is_running(self) -> bool:
        return self.socket_resource.is_listening()

    def get_metrics(self) -> dict:
        return self.metrics_collector.get_metrics()
