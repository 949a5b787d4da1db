"""
Content writer module: copies handed-off streams to one connection.
"""

import socket
from dataclasses import dataclass
from typing import Optional

from globfeed.app_logger import AppLogger, LogContext, resolve_logger
from globfeed.content_source import DEFAULT_CHUNK_SIZE, ContentStream
from globfeed.errors import CopyError
from globfeed.handoff import HandoffChannel


@dataclass
class WriteResult:
    """What one drain of a handoff channel achieved."""

    streams_written: int = 0
    copy_failures: int = 0
    bytes_written: int = 0


class ContentWriter:
    """
    Drains a handoff channel into a connection, one stream at a time.

    Each stream is copied completely before the next is received, so bytes of
    consecutive files never interleave. A failed copy loses only that file;
    the writer moves on to the next stream.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        logger: Optional[AppLogger] = None,
        connection_id: Optional[int] = None,
    ):
        self.chunk_size = chunk_size
        self._logger = resolve_logger(logger)
        self._context = LogContext(component="ContentWriter", connection_id=connection_id)

    def drain(
        self, channel: HandoffChannel[ContentStream], connection: socket.socket
    ) -> WriteResult:
        """
        Copy every stream received on ``channel`` to ``connection``.

        Returns when the channel is closed and empty. Every received stream
        is closed. If this method exits abnormally the channel is abandoned
        so the producer stops waiting.
        """
        result = WriteResult()
        context = self._context.for_operation("drain")
        try:
            for stream in channel:
                with stream:
                    try:
                        result.bytes_written += self._copy(stream, connection)
                    except CopyError as e:
                        # the pump has already logged the read failure
                        result.copy_failures += 1
                        self._logger.debug(
                            "Stream ended early, skipping to next file",
                            context=context,
                            file_path=stream.path,
                            error=str(e.cause),
                        )
                        continue
                    except OSError as e:
                        result.copy_failures += 1
                        self._logger.error(
                            "Error copying to socket",
                            context=context,
                            file_path=stream.path,
                            error=str(e),
                        )
                        continue
                result.streams_written += 1
        except BaseException:
            channel.abandon()
            raise
        return result

    def _copy(self, stream: ContentStream, connection: socket.socket) -> int:
        total = 0
        while True:
            chunk = stream.read(self.chunk_size)
            if not chunk:
                return total
            connection.sendall(chunk)
            total += len(chunk)
