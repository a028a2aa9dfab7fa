#!/usr/bin/env python3
"""
Run speed tests on a schedule and expose the results as Prometheus metrics.
"""

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from typing import List, Optional

from .config import load_config
from .errors import ConfigError
from .exporter import SpeedtestMetricsExporter
from .logging_config import configure_logging
from .metrics_server import MetricsServer
from .models import Config, RemoteWriteSettings
from .remote_write import RemoteWriteClient
from .runner import Runner
from .utils import prepare_headers

logger = logging.getLogger('speedtest_exporter')


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Run speedtest on a schedule and expose the results as Prometheus metrics'
    )
    parser.add_argument(
        '--config',
        default='config.json',
        help='Location of the config file (default: config.json)'
    )
    parser.add_argument(
        '--listen-address',
        help='Address to serve metrics on (default: all interfaces)'
    )
    parser.add_argument(
        '--port',
        type=int,
        help='Port to serve metrics on (default: 9801)'
    )
    parser.add_argument(
        '--log-level',
        help='Log level: DEBUG, INFO, WARNING, ERROR (default: $SPEEDTEST_EXPORTER_LOG_LEVEL or INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Write logs as one JSON object per line'
    )
    parser.add_argument(
        '--remote-write-url',
        help='Also push metrics to this Prometheus remote write endpoint after every run'
    )
    parser.add_argument(
        '--remote-write-header',
        action='append',
        help='Additional header for remote write (format: Key=Value)'
    )
    parser.add_argument(
        '--instance-label',
        help='Value for the instance label added to remote write metrics (default: speedtest)'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Log every metric sample sent via remote write'
    )
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Apply command line values on top of the config file."""
    if args.listen_address is not None:
        config = replace(config, listen_address=args.listen_address)
    if args.port is not None:
        config = replace(config, port=args.port)

    if args.remote_write_url or args.remote_write_header or args.instance_label or args.verbose:
        current = config.remote_write
        url = args.remote_write_url or (current.url if current else None)
        if not url:
            raise ConfigError("remote write options given without a remote write URL")
        headers = dict(current.headers) if current else {}
        headers.update(prepare_headers(args.remote_write_header))
        instance_label = args.instance_label or (current.instance_label if current else 'speedtest')
        config = replace(config, remote_write=RemoteWriteSettings(
            url=url, headers=headers, instance_label=instance_label,
            verbose=args.verbose or (current.verbose if current else False)))

    return config


def run(config: Config, shutdown_event: threading.Event) -> int:
    """Serve metrics and run the speed tests until shutdown_event is set."""
    metrics = SpeedtestMetricsExporter()

    remote_write = None
    if config.remote_write is not None:
        remote_write = RemoteWriteClient(
            config.remote_write.url,
            config.remote_write.headers,
            config.remote_write.instance_label,
            verbose=config.remote_write.verbose,
        )

    server = MetricsServer(metrics.registry, config.listen_address, config.port)
    server.start()

    runner = Runner(config.command, config.servers, config.tick, metrics, remote_write)
    runner.start()

    logger.info("speedtest_exporter is running")
    shutdown_event.wait()

    logger.info("Shutting down")
    runner.close()
    server.close()
    logger.info("Done shutting down")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_arg_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_json)

    try:
        config = apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        logger.error("Unable to load config %s: %s", args.config, e)
        return 1

    shutdown_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Received %s", signal.Signals(signum).name)
        shutdown_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    return run(config, shutdown_event)


if __name__ == '__main__':
    sys.exit(main())
