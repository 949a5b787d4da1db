"""
Tests for the MetricsCollector component.
"""

import threading

from globfeed.content_feeder import FeedResult
from globfeed.metrics_collector import MetricsCollector


class TestMetricsCollector:
    """Test cases for transfer statistics."""

    def test_records_connection_outcomes(self):
        collector = MetricsCollector()

        for _ in range(3):
            collector.record_connection_accepted()
        collector.record_connection_completed(
            FeedResult(files_matched=3, files_sent=2, open_failures=1, bytes_written=10, duration=0.2)
        )
        collector.record_connection_completed(
            FeedResult(files_matched=3, files_sent=2, copy_failures=1, bytes_written=6, duration=0.4)
        )

        metrics = collector.get_metrics()
        assert metrics["connections_accepted"] == 3
        assert metrics["connections_completed"] == 2
        assert metrics["connections_active"] == 1
        assert metrics["files_sent"] == 4
        assert metrics["open_failures"] == 1
        assert metrics["copy_failures"] == 1
        assert metrics["bytes_sent"] == 16
        assert abs(metrics["avg_connection_duration"] - 0.3) < 1e-9

    def test_failures_are_not_active(self):
        collector = MetricsCollector()
        collector.record_connection_accepted()
        collector.record_connection_failure()

        metrics = collector.get_metrics()
        assert metrics["connections_failed"] == 1
        assert metrics["connections_active"] == 0

    def test_thread_safety(self):
        collector = MetricsCollector()

        def worker():
            for _ in range(500):
                collector.record_connection_accepted()
                collector.record_connection_completed(FeedResult(files_sent=1, bytes_written=2))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        metrics = collector.get_metrics()
        assert metrics["connections_accepted"] == 4000
        assert metrics["files_sent"] == 4000
        assert metrics["bytes_sent"] == 8000

    def test_reset(self):
        collector = MetricsCollector()
        collector.record_connection_accepted()
        collector.record_connection_completed(FeedResult(files_sent=1, duration=1.0))

        collector.reset_metrics()

        metrics = collector.get_metrics()
        assert metrics["connections_accepted"] == 0
        assert metrics["files_sent"] == 0
        assert metrics["avg_connection_duration"] == 0.0
