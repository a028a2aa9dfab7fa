"""Export speedtest results as Prometheus metrics."""

import logging
from typing import List, Optional

from prometheus_client import CollectorRegistry, Counter, Gauge

from .models import TestResults
from .utils import ms_to_seconds

logger = logging.getLogger(__name__)

NAMESPACE = 'speedtest_exporter'

# Labels attached to every per-server metric
COMMON_LABELS = ['server_id', 'server_name', 'location']


class SpeedtestMetricsExporter:
    """Export speedtest results as Prometheus metrics.

    Per-server gauges are overwritten by each successful run. A server that
    fails a run keeps the values from its last successful run.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up Prometheus metric definitions."""
        # Run metrics
        self.runs = Counter(
            'runs',
            'Number of times the speed tests have run',
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.running = Gauge(
            'running',
            'Indicates if the speed test is currently running',
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.run_time = Gauge(
            'run_time_seconds',
            'Amount of time spent running all of the speed tests',
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.last_start_time = Gauge(
            'last_start_time',
            'Last time the speed test run started',
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.last_finish_time = Gauge(
            'last_finish_time',
            'Last time the speed test run finished',
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.wait_time = Gauge(
            'wait_time_seconds',
            'Amount of downtime between speed test runs. This does not include time between server test executions',
            namespace=NAMESPACE,
            registry=self.registry
        )

        # Download metrics
        self.download_speed = Gauge(
            'download_bytes_per_second',
            'Download speed',
            COMMON_LABELS,
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.download_bytes = Gauge(
            'download_bytes',
            'Number of bytes downloaded as a part of the test',
            COMMON_LABELS,
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.download_elapsed = Gauge(
            'download_elapsed_seconds',
            'How long the download speed test took in seconds',
            COMMON_LABELS,
            namespace=NAMESPACE,
            registry=self.registry
        )

        # Upload metrics
        self.upload_speed = Gauge(
            'upload_bytes_per_second',
            'Upload speed',
            COMMON_LABELS,
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.upload_bytes = Gauge(
            'upload_bytes',
            'Number of bytes uploaded as a part of the test',
            COMMON_LABELS,
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.upload_elapsed = Gauge(
            'upload_elapsed_seconds',
            'How long the upload speed test took in seconds',
            COMMON_LABELS,
            namespace=NAMESPACE,
            registry=self.registry
        )

        # Latency metrics
        self.ping = Gauge(
            'ping_seconds',
            'Ping time for the speed test',
            COMMON_LABELS,
            namespace=NAMESPACE,
            registry=self.registry
        )
        self.jitter = Gauge(
            'ping_jitter_seconds',
            'Ping jitter for the speed test',
            COMMON_LABELS,
            namespace=NAMESPACE,
            registry=self.registry
        )

    def run_started(self, start_time: float):
        """Mark a run as in progress.

        Args:
            start_time: Unix timestamp of the run start
        """
        self.running.set(1)
        self.last_start_time.set(int(start_time))

    def run_finished(self, finish_time: float):
        """Mark the current run as done.

        Args:
            finish_time: Unix timestamp of the run finish
        """
        self.last_finish_time.set(int(finish_time))
        self.running.set(0)

    def export_results(self, results: List[TestResults]):
        """Export metrics for every successful result, in order.

        Incomplete results are still exported; a warning is logged for each.
        """
        for result in results:
            if result.is_missing_data():
                logger.warning("Speed test returned incomplete results: server_id=%d",
                               result.server.id)
            self.export_result(result)

    def export_result(self, result: TestResults):
        """Export metrics for a single server's result."""
        labels = (
            str(result.server.id),
            result.server.name,
            result.server.location,
        )

        # Download
        self.download_speed.labels(*labels).set(result.download.bandwidth)
        self.download_bytes.labels(*labels).set(result.download.bytes)
        self.download_elapsed.labels(*labels).set(result.download.elapsed)

        # Upload
        self.upload_speed.labels(*labels).set(result.upload.bandwidth)
        self.upload_bytes.labels(*labels).set(result.upload.bytes)
        self.upload_elapsed.labels(*labels).set(result.upload.elapsed)

        # Latency (reported in milliseconds)
        self.ping.labels(*labels).set(ms_to_seconds(result.ping.latency))
        self.jitter.labels(*labels).set(ms_to_seconds(result.ping.jitter))
