"""Speedtest exporter: run speed tests on a schedule and expose them to Prometheus."""

from .models import Command, Config, TestResults
from .errors import ConfigError, CycleError, MalformedOutput, ProcessFailed, SpeedtestError
from .speedtest import run_test, run_tests
from .exporter import SpeedtestMetricsExporter
from .runner import Runner
from .remote_write import RemoteWriteClient

__all__ = [
    'Command',
    'Config',
    'TestResults',
    'ConfigError',
    'CycleError',
    'MalformedOutput',
    'ProcessFailed',
    'SpeedtestError',
    'run_test',
    'run_tests',
    'SpeedtestMetricsExporter',
    'Runner',
    'RemoteWriteClient',
]
