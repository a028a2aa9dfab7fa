"""Tests for speedtest_exporter.models."""

import json

import pytest

from conftest import SAMPLE_RESULT
from speedtest_exporter.models import Command, Ping, Server, Speed, TestResults


class TestTestResults:

    def test_from_dict_parses_cli_payload(self):
        results = TestResults.from_dict(SAMPLE_RESULT)

        assert results.ping == Ping(jitter=1.0, latency=10.0)
        assert results.download == Speed(bandwidth=5000.0, bytes=500000.0, elapsed=100.0)
        assert results.upload == Speed(bandwidth=2000.0, bytes=200000.0, elapsed=100.0)
        assert results.packet_loss == 0.0
        assert results.isp == 'ISP'
        assert results.server == Server(id=100, name='A', location='L', country='C', host='h', port=8080)

    def test_json_round_trip(self):
        results = TestResults(
            ping=Ping(jitter=0.25, latency=12.5),
            download=Speed(bandwidth=11879937.0, bytes=152451584.0, elapsed=12908.0),
            upload=Speed(bandwidth=1183547.0, bytes=13371392.0, elapsed=11407.0),
            packet_loss=1.5,
            isp='Example Cable',
            server=Server(id=16976, name='Example', location='Denver, CO', country='United States',
                          host='speedtest.example.net', port=8080),
        )

        encoded = json.dumps(results.to_dict())

        assert TestResults.from_dict(json.loads(encoded)) == results

    def test_to_dict_uses_cli_field_names(self):
        payload = TestResults.from_dict(SAMPLE_RESULT).to_dict()

        assert set(payload) == {'ping', 'download', 'upload', 'packetLoss', 'isp', 'server'}
        assert payload['server']['port'] == 8080

    def test_unknown_fields_are_ignored(self):
        payload = dict(SAMPLE_RESULT, type='result', timestamp='2024-01-01T00:00:00Z',
                       interface={'name': 'eth0'})

        assert TestResults.from_dict(payload) == TestResults.from_dict(SAMPLE_RESULT)

    def test_missing_fields_default_to_zero(self):
        results = TestResults.from_dict({'isp': 'ISP'})

        assert results.ping.is_zero()
        assert results.download.is_zero()
        assert results.server.is_zero()
        assert results.is_missing_data()

    def test_null_fields_read_as_zero_values(self):
        payload = dict(SAMPLE_RESULT, server=None, isp=None, packetLoss=None)

        results = TestResults.from_dict(payload)

        assert results.server.is_zero()
        assert results.isp == ''
        assert results.packet_loss == 0
        assert results.ping == TestResults.from_dict(SAMPLE_RESULT).ping
        assert results.is_missing_data()

    @pytest.mark.parametrize('payload', [
        [],
        {'ping': 'fast'},
        {'ping': {'latency': '10'}},
        {'server': {'id': 'abc'}},
        {'isp': 42},
        {'download': {'bandwidth': True}},
    ])
    def test_wrong_types_raise(self, payload):
        with pytest.raises(TypeError):
            TestResults.from_dict(payload)


class TestMissingData:

    def test_complete_results(self):
        assert not TestResults.from_dict(SAMPLE_RESULT).is_missing_data()

    def test_zero_packet_loss_and_jitter_are_valid(self):
        results = TestResults.from_dict(SAMPLE_RESULT)
        results.ping.jitter = 0
        results.packet_loss = 0

        assert not results.is_missing_data()

    @pytest.mark.parametrize('mutate', [
        lambda r: setattr(r.ping, 'latency', 0),
        lambda r: setattr(r.download, 'bandwidth', 0),
        lambda r: setattr(r.upload, 'elapsed', 0),
        lambda r: setattr(r.server, 'id', 0),
        lambda r: setattr(r.server, 'host', ''),
        lambda r: setattr(r.server, 'port', 0),
        lambda r: setattr(r, 'isp', ''),
    ])
    def test_incomplete_results(self, mutate):
        results = TestResults.from_dict(SAMPLE_RESULT)
        mutate(results)

        assert results.is_missing_data()


def test_command_argv_appends_server_flag():
    command = Command('speedtest', ('-f', 'json', '--accept-license'))

    assert command.argv(1234) == ('speedtest', '-f', 'json', '--accept-license', '-s', '1234')
    # The base args are never modified
    assert command.args == ('-f', 'json', '--accept-license')
