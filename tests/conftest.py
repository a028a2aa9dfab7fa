"""Shared test fixtures."""

from __future__ import annotations

import copy
import json
import sys
from pathlib import Path
from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from speedtest_exporter.exporter import SpeedtestMetricsExporter
from speedtest_exporter.models import Command

FAKE_SPEEDTEST = Path(__file__).with_name('fake_speedtest.py')

SAMPLE_RESULT: dict[str, Any] = {
    'ping': {'latency': 10, 'jitter': 1},
    'download': {'bandwidth': 5000, 'bytes': 500000, 'elapsed': 100},
    'upload': {'bandwidth': 2000, 'bytes': 200000, 'elapsed': 100},
    'packetLoss': 0,
    'isp': 'ISP',
    'server': {'id': 100, 'name': 'A', 'location': 'L', 'country': 'C', 'host': 'h', 'port': 8080},
}


def sample_result(server_id: int = 100, **overrides: Any) -> dict[str, Any]:
    """Return a copy of SAMPLE_RESULT for another server, with top-level overrides."""
    result = copy.deepcopy(SAMPLE_RESULT)
    result['server']['id'] = server_id
    result['server']['name'] = f'server-{server_id}' if server_id != 100 else 'A'
    result.update(overrides)
    return result


class FakeSpeedtest:
    """Builds Commands that run tests/fake_speedtest.py with scripted behavior."""

    def __init__(self, tmp_path: Path) -> None:
        self.behavior_file = tmp_path / 'behavior.json'
        self.calls_file = tmp_path / 'calls.log'
        self.behavior_file.write_text('{}', encoding='utf-8')

    def command(self, behaviors: dict[int, dict[str, Any]]) -> Command:
        self.behavior_file.write_text(
            json.dumps({str(k): v for k, v in behaviors.items()}), encoding='utf-8'
        )
        return Command(
            name=sys.executable,
            args=(str(FAKE_SPEEDTEST), '--behavior', str(self.behavior_file),
                  '--calls', str(self.calls_file), '-f', 'json'),
        )

    @property
    def calls(self) -> list[int]:
        if not self.calls_file.exists():
            return []
        return [int(line) for line in self.calls_file.read_text(encoding='utf-8').split()]


class DummyResponse:
    """Dummy HTTP response for testing."""

    def __init__(self, data: object, status: int = 200, text: str = "") -> None:
        self._data = data
        self.status_code = status
        self.text = text or str(data)
        self.ok = 200 <= status < 300

    def json(self) -> object:
        return self._data


@pytest.fixture
def fake_speedtest(tmp_path: Path) -> FakeSpeedtest:
    return FakeSpeedtest(tmp_path)


@pytest.fixture
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> SpeedtestMetricsExporter:
    return SpeedtestMetricsExporter(registry)
