"""
Content feeder module: serves the matched files to one connection.

The feeder enumerates the pattern, opens each path in order and hands the
opened streams to a dedicated writer thread over a zero-capacity channel.
Failed opens are logged and skipped; the connection carries on with the
remaining files.
"""

import socket
import threading
import time
from dataclasses import dataclass
from typing import Optional

from globfeed.app_logger import AppLogger, LogContext, resolve_logger
from globfeed.content_source import ContentSource, ContentStream
from globfeed.content_writer import ContentWriter, WriteResult
from globfeed.errors import OpenError
from globfeed.file_finder import GlobFileFinder
from globfeed.handoff import ChannelClosed, HandoffChannel


@dataclass
class FeedResult:
    """Summary of one connection's transfer."""

    files_matched: int = 0
    files_sent: int = 0
    open_failures: int = 0
    copy_failures: int = 0
    bytes_written: int = 0
    duration: float = 0.0


class ContentFeeder:
    """Drives enumeration, opening and handoff for a single connection."""

    def __init__(
        self,
        file_finder: GlobFileFinder,
        content_source: ContentSource,
        logger: Optional[AppLogger] = None,
        connection_id: Optional[int] = None,
    ):
        self._file_finder = file_finder
        self._content_source = content_source
        self._logger = resolve_logger(logger)
        self._connection_id = connection_id
        self._context = LogContext(component="ContentFeeder", connection_id=connection_id)

    def feed(self, connection: socket.socket, pattern: str) -> FeedResult:
        """
        Send the concatenated content of every file matching ``pattern``.

        The connection is closed before returning, on every path.

        Raises:
            PatternError: If the pattern is malformed
        """
        start = time.monotonic()
        result = FeedResult()
        context = self._context.for_operation("feed")
        try:
            channel: HandoffChannel[ContentStream] = HandoffChannel()
            write_result = WriteResult()
            writer = ContentWriter(
                chunk_size=self._content_source.chunk_size,
                logger=self._logger,
                connection_id=self._connection_id,
            )

            def run_writer() -> None:
                nonlocal write_result
                write_result = writer.drain(channel, connection)

            writer_thread = threading.Thread(
                target=run_writer, name=f"writer-{self._connection_id}", daemon=True
            )
            writer_thread.start()
            try:
                self._send_all(channel, pattern, result, context)
            finally:
                channel.close()
                writer_thread.join()

            result.files_sent = write_result.streams_written
            result.copy_failures = write_result.copy_failures
            result.bytes_written = write_result.bytes_written
        finally:
            connection.close()
            result.duration = time.monotonic() - start

        self._logger.debug(
            "Connection served",
            context=context,
            files_matched=result.files_matched,
            files_sent=result.files_sent,
            open_failures=result.open_failures,
            copy_failures=result.copy_failures,
            bytes_written=result.bytes_written,
        )
        return result

    def _send_all(
        self,
        channel: HandoffChannel[ContentStream],
        pattern: str,
        result: FeedResult,
        context: LogContext,
    ) -> None:
        paths = self._file_finder.enumerate(pattern)
        result.files_matched = len(paths)

        for path in paths:
            try:
                stream = self._content_source.open(path)
            except OpenError as e:
                result.open_failures += 1
                self._logger.warning(
                    "Error opening file", context=context, file_path=path, error=str(e.cause)
                )
                continue

            try:
                channel.send(stream)
            except ChannelClosed:
                # The writer is gone; nobody will consume this or later streams
                stream.close()
                self._logger.warning(
                    "Writer stopped before all files were handed off",
                    context=context,
                    file_path=path,
                )
                return
