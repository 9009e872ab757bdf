"""Publish probing results to Prometheus scrapes."""

import threading
from typing import Iterator

from prometheus_client.core import GaugeMetricFamily, Metric

from ..utils.metrics import ResultsSnapshot


LABELS = ["host", "port", "database"]


class ResultsPublisher:
    """
    Hold the current ResultsSnapshot and render it as gauges.

    The lock guards only the snapshot reference: a writer holds it for the
    swap and a reader for the copy-out, so a scrape never waits on probing.
    Registered on a CollectorRegistry as a custom collector.
    """

    def __init__(self, namespace: str = "db"):
        self.namespace = namespace
        self._lock = threading.Lock()
        self._snapshot = ResultsSnapshot()

    def publish(self, snapshot: ResultsSnapshot) -> None:
        """Replace the current snapshot wholesale."""
        with self._lock:
            self._snapshot = snapshot

    def current(self) -> ResultsSnapshot:
        with self._lock:
            return self._snapshot

    def describe(self) -> list:
        # Empty so registering does not trigger a collect()
        return []

    def collect(self) -> Iterator[Metric]:
        snapshot = self.current()

        available = GaugeMetricFamily(
            f"{self.namespace}_connection_available",
            "Database connection availability (1 = available, 0 = unavailable)",
            labels=LABELS,
        )
        duration = GaugeMetricFamily(
            f"{self.namespace}_connection_duration_seconds",
            "Database connection check duration in seconds",
            labels=LABELS,
        )

        for entry in snapshot.entries:
            labels = [entry.host, str(entry.port), entry.database]
            available.add_metric(labels, entry.status.to_gauge())
            duration.add_metric(labels, entry.duration)

        yield available
        yield duration
