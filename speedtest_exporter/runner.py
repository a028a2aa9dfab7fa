"""Background loop that runs the speed tests on a fixed schedule."""

import logging
import threading
import time
from typing import List, Optional, Sequence, Tuple

from .errors import CycleError
from .exporter import SpeedtestMetricsExporter
from .models import Command, TestResults
from .remote_write import RemoteWriteClient
from .speedtest import run_tests

logger = logging.getLogger(__name__)


class Runner:
    """Runs the speed tests once at startup and then on every tick.

    The loop runs on its own thread. ``close()`` asks it to stop and waits for
    it: a speed test that is already running is allowed to finish, the
    remaining servers of that run are skipped.
    """

    def __init__(self, command: Command, server_ids: Sequence[int], tick: float,
                 metrics: SpeedtestMetricsExporter,
                 remote_write: Optional[RemoteWriteClient] = None):
        """Initialize the runner.

        Args:
            command: The speedtest command to run
            server_ids: Servers to test on each run, in order
            tick: Seconds between runs. This should be greater than the time
                it takes to test all of the servers
            metrics: Exporter the results are written to
            remote_write: Optional client that pushes the metrics after each run
        """
        if tick <= 0:
            raise ValueError(f"tick must be positive, got {tick}")
        self.command = command
        self.server_ids: Tuple[int, ...] = tuple(server_ids)
        self.tick = tick
        self.metrics = metrics
        self.remote_write = remote_write

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def closing(self) -> bool:
        return self._stop_event.is_set()

    @property
    def stopped(self) -> bool:
        """True once the loop thread has exited."""
        return self._thread is not None and not self._thread.is_alive()

    def start(self):
        """Start the loop thread."""
        if self._thread is not None:
            raise RuntimeError("runner already started")
        self._thread = threading.Thread(target=self._run, name='speedtest-runner', daemon=True)
        self._thread.start()
        logger.info("Runner started: %d server(s), tick=%ss", len(self.server_ids), self.tick)

    def close(self, timeout: Optional[float] = None) -> bool:
        """Stop the loop and wait for it to exit.

        Args:
            timeout: Maximum number of seconds to wait (default: forever)

        Returns:
            True if the loop has exited
        """
        self._stop_event.set()
        if self._thread is None:
            return True
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Runner did not stop within %ss", timeout)
            return False
        logger.info("Runner stopped")
        return True

    def _run(self):
        # Tick deadlines are anchored to the loop start; ticks missed while a
        # run overran are dropped
        next_tick = time.monotonic() + self.tick

        self._run_guarded()

        start = time.monotonic()
        while True:
            if self._stop_event.wait(max(0.0, next_tick - time.monotonic())):
                return

            now = time.monotonic()
            while next_tick <= now:
                next_tick += self.tick

            self.metrics.wait_time.set(now - start)
            start = now

            logger.info("Running speed tests...")
            self._run_guarded()
            logger.info("Done running speed tests")

    def _run_guarded(self):
        # Unexpected errors are logged and the loop moves on to the next tick
        try:
            self.run_speed_tests()
        except Exception:
            logger.exception("Speed test run failed unexpectedly")

    def run_speed_tests(self) -> Tuple[List[TestResults], Optional[CycleError]]:
        """Run one pass over all servers and record the results.

        Returns:
            Tuple of (successful results, aggregated error or None). Nothing is
            run or recorded if the runner is closing.
        """
        if self.closing:
            logger.info("Runner is closing, skipping speed tests")
            return [], None

        start = time.monotonic()
        self.metrics.run_started(time.time())
        try:
            results, err = run_tests(self.command, self.server_ids, self._stop_event)
            if err is not None:
                logger.error("Speed tests failed: err=%s requested=%d succeeded=%d",
                             err, len(self.server_ids), len(results))
            else:
                logger.info("Speed tests succeeded: num_tests=%d", len(results))
            self.metrics.runs.inc()

            self.metrics.export_results(results)

            self.metrics.run_time.set(time.monotonic() - start)
        finally:
            self.metrics.run_finished(time.time())

        if self.remote_write is not None:
            self.remote_write.send_registry(self.metrics.registry)

        return results, err
