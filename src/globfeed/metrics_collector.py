"""
Thread-safe metrics collection for served connections.

Counts accepted and completed connections together with the per-file
outcomes reported by each connection's feeder.
"""

import threading
from typing import Any, Dict, List

from globfeed.content_feeder import FeedResult


class MetricsCollector:
    """
    Thread-safe transfer statistics.

    Thread Safety:
    --------------
    All methods may be called concurrently from connection threads.
    """

    def __init__(self):
        self._connections_accepted = 0
        self._connections_completed = 0
        self._connections_failed = 0
        self._files_sent = 0
        self._open_failures = 0
        self._copy_failures = 0
        self._bytes_sent = 0
        self._durations: List[float] = []
        self._metrics_lock = threading.Lock()

    def record_connection_accepted(self) -> None:
        with self._metrics_lock:
            self._connections_accepted += 1

    def record_connection_completed(self, result: FeedResult) -> None:
        """
        Record the outcome of a finished connection.

        Args:
            result: The feeder's summary for that connection
        """
        with self._metrics_lock:
            self._connections_completed += 1
            self._files_sent += result.files_sent
            self._open_failures += result.open_failures
            self._copy_failures += result.copy_failures
            self._bytes_sent += result.bytes_written
            if result.duration > 0:
                self._durations.append(result.duration)

    def record_connection_failure(self) -> None:
        """Record a connection that ended with an unexpected error."""
        with self._metrics_lock:
            self._connections_failed += 1

    def get_metrics(self) -> Dict[str, Any]:
        with self._metrics_lock:
            if self._durations:
                avg_duration = sum(self._durations) / len(self._durations)
            else:
                avg_duration = 0.0
            return {
                "connections_accepted": self._connections_accepted,
                "connections_completed": self._connections_completed,
                "connections_failed": self._connections_failed,
                "connections_active": max(
                    0,
                    self._connections_accepted
                    - self._connections_completed
                    - self._connections_failed,
                ),
                "files_sent": self._files_sent,
                "open_failures": self._open_failures,
                "copy_failures": self._copy_failures,
                "bytes_sent": self._bytes_sent,
                "avg_connection_duration": avg_duration,
            }

    def reset_metrics(self) -> None:
        with self._metrics_lock:
            self._connections_accepted = 0
            self._connections_completed = 0
            self._connections_failed = 0
            self._files_sent = 0
            self._open_failures = 0
            self._copy_failures = 0
            self._bytes_sent = 0
            self._durations.clear()
