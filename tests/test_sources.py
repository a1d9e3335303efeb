"""
tests/test_sources.py
adb-backed message source. The adb client is mocked except for the
process-handling tests, which run a throwaway Python child.
"""

import sys
import threading
from unittest.mock import MagicMock, patch

import pytest

from smswatch.errors import DeviceUnreachable, SourceCancelled, SourceError
from smswatch.sources.adb import AdbClient, AdbConnection, AdbResult, SmsContentSource


def _client(result: AdbResult) -> MagicMock:
    client = MagicMock()
    client.execute.return_value = result
    return client


# ── RESULT ───────────────────────────────────────────────────

class TestAdbResult:

    def test_success_requires_zero_exit_and_clean_stderr(self):
        assert AdbResult(0, 'ok').success is True
        assert AdbResult(1, 'ok').success is False
        assert AdbResult(0, '', 'error: device offline').success is False
        assert AdbResult(0, '', 'ERROR: closed').success is False
        assert AdbResult(0, 'x', 'warning: slow').success is True


# ── CONTENT SOURCE ───────────────────────────────────────────

class TestSmsContentSource:

    def test_query_without_since(self):
        assert SmsContentSource.build_query(0) == (
            "content query --uri content://sms "
            "--projection _id:address:date:read:type:body --sort 'date DESC'"
        )

    def test_query_with_since(self):
        query = SmsContentSource.build_query(1700000000000)
        assert "--where 'date>=1700000000000'" in query
        assert query.endswith("--sort 'date DESC'")

    def test_fetch_returns_output(self):
        client = _client(AdbResult(0, 'Row: 0 _id=1, ...\n'))
        assert SmsContentSource(client).fetch(5000) == 'Row: 0 _id=1, ...\n'
        args = client.execute.call_args[0][0]
        assert args[0] == 'shell'
        assert "date>=5000" in args[1]

    @pytest.mark.parametrize('result', [
        AdbResult(0, 'No result found.'),
        AdbResult(1, '', 'No result found.'),
    ])
    def test_no_result_is_empty(self, result):
        assert SmsContentSource(_client(result)).fetch() == ''

    def test_failure_raises_source_error(self):
        source = SmsContentSource(_client(AdbResult(1, '', 'error: device offline')))
        with pytest.raises(SourceError) as exc:
            source.fetch()
        assert exc.value.exit_code == 1
        assert 'device offline' in str(exc.value)

    def test_cancel_event_passed_through(self):
        client = _client(AdbResult(0, ''))
        cancel = threading.Event()
        SmsContentSource(client).fetch(0, cancel=cancel)
        assert client.execute.call_args[1]['cancel'] is cancel


# ── CONNECTION ───────────────────────────────────────────────

class TestAdbConnection:

    def _conn(self, *results):
        sleep = MagicMock()
        conn = AdbConnection('adb', '192.168.1.50', 5555, sleep=sleep)
        conn._client = MagicMock()
        conn._client.execute.side_effect = list(results)
        return conn, sleep

    def test_device_online_parsed_from_devices_list(self):
        out = "List of devices attached\n192.168.1.50:5555\tdevice\n"
        conn, _ = self._conn(AdbResult(0, out))
        assert conn.is_device_online() is True

    def test_offline_device_not_online(self):
        out = "List of devices attached\n192.168.1.50:5555\toffline\n"
        conn, _ = self._conn(AdbResult(0, out))
        assert conn.is_device_online() is False

    def test_connects_when_not_listed(self):
        conn, _ = self._conn(
            AdbResult(0, "List of devices attached\n"),
            AdbResult(0, "connected to 192.168.1.50:5555\n"),
        )
        assert conn.ensure_connected() is True
        assert conn._client.execute.call_args[0][0] == ['connect', '192.168.1.50:5555']

    def test_failed_connect_output(self):
        conn, _ = self._conn(
            AdbResult(0, "List of devices attached\n"),
            AdbResult(0, "failed to connect to '192.168.1.50:5555': Connection refused\n"),
        )
        assert conn.ensure_connected() is False

    def test_reconnect_gives_up_after_three_attempts(self):
        listing = AdbResult(0, "List of devices attached\n")
        refused = AdbResult(1, "cannot connect to 192.168.1.50:5555\n")
        conn, sleep = self._conn(*([listing, refused] * 3))

        with pytest.raises(DeviceUnreachable):
            conn.reconnect()
        assert sleep.call_count == 2
        sleep.assert_called_with(2.0)

    def test_reconnect_succeeds_on_second_attempt(self):
        listing = AdbResult(0, "List of devices attached\n")
        conn, sleep = self._conn(
            listing, AdbResult(1, "cannot connect\n"),
            listing, AdbResult(0, "connected to 192.168.1.50:5555\n"),
        )
        conn.reconnect()
        assert sleep.call_count == 1


# ── PROCESS HANDLING ─────────────────────────────────────────

class TestAdbClient:

    def test_missing_executable_is_failed_result(self):
        result = AdbClient('/nonexistent/adb-binary').execute(['devices'])
        assert result.success is False
        assert result.exit_code == -1

    def test_timeout_kills_child(self):
        client = AdbClient(sys.executable)
        result = client.execute(['-c', 'import time; time.sleep(5)'], timeout_ms=300)
        assert result.exit_code == -1
        assert 'timed out after 300ms' in result.error

    def test_cancel_kills_child(self):
        cancel = threading.Event()
        cancel.set()
        client = AdbClient(sys.executable)
        with pytest.raises(SourceCancelled):
            client.execute(['-c', 'import time; time.sleep(5)'], cancel=cancel)

    def test_captures_output(self):
        result = AdbClient(sys.executable).execute(['-c', 'print("hello")'])
        assert result.exit_code == 0
        assert result.output.strip() == 'hello'

    def test_serial_prefixes_command(self):
        proc = MagicMock()
        proc.__enter__.return_value = proc
        proc.communicate.return_value = ('', '')
        proc.returncode = 0
        with patch('subprocess.Popen', return_value=proc) as popen:
            AdbClient('adb', device_serial='10.0.0.2:5555').execute(['shell', 'ls'])
        assert popen.call_args[0][0] == ['adb', '-s', '10.0.0.2:5555', 'shell', 'ls']
