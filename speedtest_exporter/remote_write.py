"""Client for pushing the exporter's metrics via Prometheus remote write."""

import logging
import time
from typing import Any, Dict, Optional

import requests
import snappy
from prometheus_client import CollectorRegistry

from prometheus_remote_writer.proto import remote_pb2 as prompb_pb2
from prometheus_remote_writer.proto import types_pb2

from .utils import format_labels

logger = logging.getLogger(__name__)


class RemoteWriteClient:
    """Client for sending Prometheus metrics via remote write."""

    def __init__(self, remote_write_url: str, headers: Optional[Dict[str, str]] = None,
                 instance_label: str = 'speedtest', verbose: bool = False, timeout: float = 30):
        self.remote_write_url = remote_write_url
        self.headers = dict(headers or {})
        self.headers.setdefault('Content-Type', 'application/x-protobuf')
        self.headers.setdefault('Content-Encoding', 'snappy')
        self.headers.setdefault('X-Prometheus-Remote-Write-Version', '0.1.0')
        self.instance_label = instance_label  # Value for the instance label
        self.verbose = verbose
        self.timeout = timeout

    def send_registry(self, registry: CollectorRegistry, timestamp: Optional[float] = None) -> bool:
        """Send the current value of every sample in the registry.

        Args:
            registry: Registry to read samples from
            timestamp: Unix timestamp to stamp samples with (default: now)

        Returns:
            True if successful, False otherwise
        """
        if timestamp is None:
            timestamp = time.time()
        timestamp_ms = int(timestamp * 1000)

        write_request = self.build_write_request(registry, timestamp_ms)
        num_timeseries = len(write_request.timeseries)
        if num_timeseries == 0:
            logger.debug("No samples to send")
            return True

        data = write_request.SerializeToString()
        compressed_data = snappy.compress(data)
        logger.debug("Sending %d time series, %d bytes (uncompressed: %d bytes)",
                     num_timeseries, len(compressed_data), len(data))

        try:
            response = requests.post(
                self.remote_write_url,
                data=compressed_data,
                headers=self.headers,
                timeout=self.timeout
            )
        except requests.exceptions.ConnectionError:
            logger.error("Connection error: could not connect to %s. Make sure the remote write "
                         "receiver is enabled (--web.enable-remote-write-receiver)", self.remote_write_url)
            return False
        except requests.exceptions.RequestException as e:
            logger.error("Error in remote write: %s", e)
            return False

        if response.status_code in (200, 204):
            logger.info("Successfully sent metrics (status %d, %d time series)",
                        response.status_code, num_timeseries)
            return True

        logger.error("Error sending metrics: %d - %s", response.status_code, response.text)
        return False

    def build_write_request(self, registry: CollectorRegistry, timestamp_ms: int):
        """Convert the registry's current samples to a remote write request."""
        write_request = prompb_pb2.WriteRequest()  # type: ignore
        time_series_map: Dict[tuple, Any] = {}

        for metric in registry.collect():
            for sample in metric.samples:
                # Creation timestamps are not useful to a remote store
                if sample.name.endswith('_created'):
                    continue
                self._add_sample_to_map(time_series_map, sample.name, sample.labels,
                                        sample.value, timestamp_ms)

        for time_series in time_series_map.values():
            new_ts = write_request.timeseries.add()
            new_ts.CopyFrom(time_series)

        return write_request

    def _add_sample_to_map(self, time_series_map: Dict[tuple, Any], metric_name: str, labels: Dict[str, str], value: float, timestamp_ms: int):
        """Add a sample to the time series map, grouping by metric name and labels."""
        # Add instance label to all metrics
        labels_with_instance = dict(labels)
        labels_with_instance['instance'] = self.instance_label

        # Create a unique key from metric name and sorted labels
        sorted_labels = tuple(sorted(labels_with_instance.items()))
        key = (metric_name, sorted_labels)

        if key not in time_series_map:
            time_series = types_pb2.TimeSeries()  # type: ignore

            label = time_series.labels.add()
            label.name = '__name__'
            label.value = metric_name

            # Remote write expects labels sorted by name
            for key_name, val in sorted_labels:
                label = time_series.labels.add()
                label.name = key_name
                label.value = str(val)

            time_series_map[key] = time_series

        sample = time_series_map[key].samples.add()
        sample.value = value
        sample.timestamp = timestamp_ms

        if self.verbose:
            logger.info("%s%s %s", metric_name, format_labels(labels_with_instance), value)
