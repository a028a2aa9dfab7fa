"""Tests for the speedtest_to_prometheus entry point."""

import json
import threading

import pytest

from speedtest_exporter import speedtest_to_prometheus as cli
from speedtest_exporter.errors import ConfigError
from speedtest_exporter.models import Command, Config, RemoteWriteSettings


@pytest.fixture(autouse=True)
def no_logging_setup(monkeypatch):
    monkeypatch.setattr(cli, 'configure_logging', lambda *args, **kwargs: None)


def _config(**overrides):
    values = dict(command=Command('speedtest'), servers=(100,), tick=60.0)
    values.update(overrides)
    return Config(**values)


def test_missing_config_exits_with_error(tmp_path, caplog):
    exit_code = cli.main(['--config', str(tmp_path / 'missing.json')])

    assert exit_code == 1
    assert any('Unable to load config' in r.getMessage() for r in caplog.records)


def test_invalid_config_exits_with_error(tmp_path):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'command': {'name': 'speedtest'}, 'servers': [1], 'tick': 'soon'}),
                    encoding='utf-8')

    assert cli.main(['--config', str(path)]) == 1


def test_apply_overrides():
    args = cli.build_arg_parser().parse_args([
        '--listen-address', '127.0.0.1',
        '--port', '9999',
        '--remote-write-url', 'http://prometheus/api/v1/write',
        '--remote-write-header', 'Authorization=Bearer x',
        '--instance-label', 'lab',
    ])

    config = cli.apply_overrides(_config(), args)

    assert config.listen_address == '127.0.0.1'
    assert config.port == 9999
    assert config.remote_write == RemoteWriteSettings(
        url='http://prometheus/api/v1/write',
        headers={'Authorization': 'Bearer x'},
        instance_label='lab',
    )


def test_apply_overrides_merges_with_config_file():
    args = cli.build_arg_parser().parse_args(['--remote-write-header', 'X-Scope-OrgID=home'])
    config = _config(remote_write=RemoteWriteSettings(
        url='http://prometheus/api/v1/write', headers={'Authorization': 'Bearer x'}))

    config = cli.apply_overrides(config, args)

    assert config.remote_write.headers == {'Authorization': 'Bearer x', 'X-Scope-OrgID': 'home'}
    assert config.remote_write.instance_label == 'speedtest'


def test_apply_overrides_requires_url():
    args = cli.build_arg_parser().parse_args(['--instance-label', 'lab'])

    with pytest.raises(ConfigError):
        cli.apply_overrides(_config(), args)


def test_run_shuts_down_cleanly(monkeypatch):
    calls = []

    def fake_run_tests(command, server_ids, stop_event):
        calls.append(list(server_ids))
        return [], None

    monkeypatch.setattr('speedtest_exporter.runner.run_tests', fake_run_tests)
    shutdown_event = threading.Event()
    timer = threading.Timer(0.5, shutdown_event.set)
    timer.start()

    try:
        exit_code = cli.run(_config(listen_address='127.0.0.1', port=0), shutdown_event)
    finally:
        timer.cancel()

    assert exit_code == 0
    assert calls == [[100]]
