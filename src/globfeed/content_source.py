"""
Content source module: opens one file as a lazily pumped byte stream.

Each opened file gets a background copy pump that moves its bytes into the
write end of an OS pipe while the consumer reads from the other end. The file
and the write end are both released when the pump finishes, whether it
completed, hit a read error, or the consumer closed the stream early.
"""

import os
import threading
from typing import BinaryIO, Optional

from globfeed.app_logger import AppLogger, LogContext, resolve_logger
from globfeed.errors import CopyError, OpenError

DEFAULT_CHUNK_SIZE = 64 * 1024


class CopyPump(threading.Thread):
    """Copies a file into a pipe on its own thread."""

    def __init__(
        self,
        path: str,
        source: BinaryIO,
        write_fd: int,
        chunk_size: int,
        logger: AppLogger,
        context: LogContext,
    ):
        super().__init__(name=f"copy-pump:{os.path.basename(path)}", daemon=True)
        self.path = path
        self.bytes_pumped = 0
        self.error: Optional[OSError] = None
        self.abandoned = False
        self._source = source
        self._sink = os.fdopen(write_fd, "wb", buffering=0)
        self._chunk_size = chunk_size
        self._logger = logger
        self._context = context

    def run(self) -> None:
        try:
            self._copy()
        except BrokenPipeError:
            # The reader went away before the end of the file
            self.abandoned = True
            self._logger.debug(
                "Copy abandoned by consumer",
                context=self._context,
                file_path=self.path,
                bytes_pumped=self.bytes_pumped,
            )
        except OSError as e:
            self.error = e
            self._logger.error(
                "Error copying from file",
                context=self._context,
                file_path=self.path,
                bytes_pumped=self.bytes_pumped,
                error=str(e),
            )
        finally:
            # error is set before the write end closes, so a reader seeing
            # end of data always sees the failure too
            self._source.close()
            self._sink.close()

    def _copy(self) -> None:
        while True:
            chunk = self._source.read(self._chunk_size)
            if not chunk:
                return
            view = memoryview(chunk)
            while view:
                written = self._sink.write(view)
                view = view[written:]
            self.bytes_pumped += len(chunk)


class ContentStream:
    """
    Readable end of a pumped file.

    ``read`` returns ``b""`` at the end of data. When the pump failed part way
    and ``propagate_errors`` is set, ``read`` raises CopyError instead of
    reporting end of data, once everything the pump delivered has been read.
    With ``propagate_errors`` unset a failed copy looks like a short file.
    """

    def __init__(self, path: str, read_fd: int, pump: CopyPump, propagate_errors: bool):
        self.path = path
        self._reader = os.fdopen(read_fd, "rb", buffering=0)
        self._pump = pump
        self._propagate_errors = propagate_errors

    @property
    def bytes_pumped(self) -> int:
        return self._pump.bytes_pumped

    @property
    def closed(self) -> bool:
        return self._reader.closed

    def read(self, size: int = DEFAULT_CHUNK_SIZE) -> bytes:
        data = self._reader.read(size)
        if not data and self._propagate_errors and self._pump.error is not None:
            raise CopyError(self.path, self._pump.error)
        return data

    def close(self) -> None:
        """Release the read end; a pump still running stops at its next write."""
        self._reader.close()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for the pump to finish, returns True if it has."""
        self._pump.join(timeout)
        return not self._pump.is_alive()

    def __enter__(self) -> "ContentStream":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ContentSource:
    """Opens matched files as ContentStreams."""

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        propagate_errors: bool = True,
        logger: Optional[AppLogger] = None,
    ):
        """
        Initialise the content source.

        Args:
            chunk_size: Bytes read from the file per pump iteration
            propagate_errors: Raise CopyError from the stream on a failed copy
                instead of ending the stream silently
            logger: Optional AppLogger, defaults to the process logger
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size
        self.propagate_errors = propagate_errors
        self._logger = resolve_logger(logger)
        self._context = LogContext(component="ContentSource")

    def open(self, path: str) -> ContentStream:
        """
        Open ``path`` and start pumping its bytes.

        Args:
            path: File to open

        Returns:
            A ContentStream owning the read end of the pump

        Raises:
            OpenError: If the file cannot be opened
        """
        try:
            source = open(path, "rb")
        except OSError as e:
            raise OpenError(path, e) from e

        try:
            read_fd, write_fd = os.pipe()
        except OSError as e:
            source.close()
            raise OpenError(path, e) from e

        pump = CopyPump(
            path,
            source,
            write_fd,
            self.chunk_size,
            self._logger,
            self._context.for_operation("pump"),
        )
        stream = ContentStream(path, read_fd, pump, self.propagate_errors)
        pump.start()
        return stream
