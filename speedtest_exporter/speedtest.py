"""Run the speedtest CLI and parse its JSON output."""

import json
import logging
import subprocess
import threading
from typing import List, Optional, Sequence, Tuple

from .errors import CycleError, MalformedOutput, ProcessFailed, SpeedtestError
from .models import Command, TestResults

logger = logging.getLogger(__name__)


def run_test(command: Command, server_id: int) -> TestResults:
    """Run a single speed test against one server.

    Blocks until the command exits. Only stdout is captured; stderr is
    discarded.

    Args:
        command: The speedtest command to run
        server_id: ID of the server to test against

    Returns:
        The parsed results. Completeness is not checked here.

    Raises:
        ProcessFailed: The command could not be started or exited non-zero
        MalformedOutput: The output could not be parsed into results
    """
    logger.info("Running speed test: server_id=%d", server_id)
    argv = command.argv(server_id)

    try:
        completed = subprocess.run(
            argv,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as e:
        raise ProcessFailed(server_id, f"failed to run speed test: {e}") from e

    if completed.returncode != 0:
        raise ProcessFailed(
            server_id,
            f"failed to run speed test: exit status {completed.returncode}",
            returncode=completed.returncode,
        )

    raw_output = completed.stdout.decode('utf-8', errors='replace')
    try:
        results = TestResults.from_dict(json.loads(raw_output))
    except (ValueError, TypeError, RecursionError) as e:
        # RecursionError: deeply nested JSON
        raise MalformedOutput(server_id, f"failed to unmarshal results: {e}") from e

    logger.info("Results: server_id=%d full_results=%s", server_id, raw_output.strip())
    return results


def run_tests(command: Command, server_ids: Sequence[int],
              stop_event: Optional[threading.Event] = None) -> Tuple[List[TestResults], Optional[CycleError]]:
    """Run speed tests against each server in order.

    A failing server does not stop the others from being tested. If
    ``stop_event`` is set before a server's turn, the remaining servers are
    skipped without being reported as failures.

    Args:
        command: The speedtest command to run
        server_ids: Servers to test, in order
        stop_event: Optional event that requests an early exit

    Returns:
        Tuple of (successful results in server order, aggregated error or None)
    """
    results: List[TestResults] = []
    errors: List[SpeedtestError] = []

    for server_id in server_ids:
        if stop_event is not None and stop_event.is_set():
            logger.info("Stopping speed tests early: %d server(s) skipped",
                        len(server_ids) - len(results) - len(errors))
            break
        try:
            results.append(run_test(command, server_id))
        except SpeedtestError as e:
            logger.warning("Speed test failed: server_id=%d err=%s", server_id, e)
            errors.append(e)

    return results, (CycleError(errors) if errors else None)
