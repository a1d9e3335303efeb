"""
smswatch/sources/adb.py
Message source backed by `adb` — reads the device SMS content provider.

The watcher core only sees SmsContentSource.fetch(since_ms) -> raw dump text.
Process handling, timeouts and reconnects all live here.
"""

import logging
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from smswatch.errors import DeviceUnreachable, SourceCancelled, SourceError

logger = logging.getLogger(__name__)

SMS_URI        = 'content://sms'
SMS_PROJECTION = '_id:address:date:read:type:body'
NO_RESULT      = 'no result found'

RECONNECT_ATTEMPTS  = 3
RECONNECT_DELAY_SEC = 2.0

_POLL_SEC = 0.2


@dataclass
class AdbResult:
    exit_code: int
    output:    str = ''
    error:     str = ''

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and 'error:' not in self.error.lower()


class AdbClient:
    """Runs adb commands as child processes with a hard per-call timeout."""

    def __init__(
        self,
        adb_path:      str           = 'adb',
        device_serial: Optional[str] = None,
        timeout_ms:    int           = 10000,
    ):
        self.adb_path      = adb_path
        self.device_serial = device_serial
        self.timeout_ms    = timeout_ms

    def execute(
        self,
        args:       List[str],
        timeout_ms: Optional[int]             = None,
        cancel:     Optional[threading.Event] = None,
    ) -> AdbResult:
        """
        Run `adb [-s serial] <args>`. Timeouts come back as a failed AdbResult;
        a set cancel event kills the child and raises SourceCancelled.
        """
        timeout_ms = timeout_ms or self.timeout_ms
        cmd = [self.adb_path]
        if self.device_serial:
            cmd += ['-s', self.device_serial]
        cmd += list(args)

        try:
            proc = subprocess.Popen(
                cmd,
                stdout   = subprocess.PIPE,
                stderr   = subprocess.PIPE,
                text     = True,
                encoding = 'utf-8',
                errors   = 'replace',
            )
        except OSError as e:
            return AdbResult(-1, error=f"error: adb not found at '{self.adb_path}'. {e}")

        deadline = time.monotonic() + timeout_ms / 1000
        with proc:
            while True:
                try:
                    out, err = proc.communicate(timeout=_POLL_SEC)
                    return AdbResult(proc.returncode, out or '', err or '')
                except subprocess.TimeoutExpired:
                    if cancel is not None and cancel.is_set():
                        _kill(proc)
                        raise SourceCancelled(f"adb {' '.join(args)} cancelled")
                    if time.monotonic() >= deadline:
                        _kill(proc)
                        return AdbResult(
                            -1,
                            error=f"Command timed out after {timeout_ms}ms: adb {' '.join(args)}",
                        )


def _kill(proc: subprocess.Popen) -> None:
    proc.kill()
    proc.communicate()


class AdbConnection:
    """Keeps a network adb device (ip:port) reachable."""

    def __init__(
        self,
        adb_path:   str   = 'adb',
        device_ip:  str   = '',
        port:       int   = 5555,
        timeout_ms: int   = 10000,
        sleep:      Callable[[float], None] = time.sleep,
    ):
        self.device_address = f"{device_ip}:{port}"
        self.timeout_ms     = timeout_ms
        self._sleep         = sleep
        # `devices` and `connect` must run without -s
        self._client        = AdbClient(adb_path, None, timeout_ms)

    def is_device_online(self) -> bool:
        result = self._client.execute(['devices'])
        if not result.success:
            return False
        return any(
            self.device_address in line and 'device' in line.split()[1:]
            for line in result.output.splitlines()
        )

    def ensure_connected(self) -> bool:
        if self.is_device_online():
            return True

        logger.info(f"Connecting to {self.device_address}...")
        result = self._client.execute(['connect', self.device_address])
        output = result.output.lower()
        if 'connected' in output and 'cannot' not in output and 'failed' not in output:
            logger.info(f"Connected to {self.device_address}")
            return True

        logger.warning(
            f"Failed to connect to {self.device_address}: "
            f"{result.output.strip()} {result.error.strip()}"
        )
        return False

    def reconnect(self) -> None:
        """Bounded retry with fixed backoff. Raises DeviceUnreachable when exhausted."""
        for attempt in range(1, RECONNECT_ATTEMPTS + 1):
            if self.ensure_connected():
                return
            logger.info(f"Retry {attempt}/{RECONNECT_ATTEMPTS}...")
            if attempt < RECONNECT_ATTEMPTS:
                self._sleep(RECONNECT_DELAY_SEC)

        raise DeviceUnreachable(
            f"Could not reach {self.device_address} after {RECONNECT_ATTEMPTS} attempts"
        )


class SmsContentSource:
    """fetch(since_ms) -> raw `content query` dump, '' when there are no rows."""

    def __init__(self, client: AdbClient):
        self.client = client

    @staticmethod
    def build_query(since_ms: int = 0) -> str:
        # Quote --where/--sort so the device shell does not read '>' as a redirect
        query = f"content query --uri {SMS_URI} --projection {SMS_PROJECTION}"
        if since_ms > 0:
            query += f" --where 'date>={since_ms}'"
        return query + " --sort 'date DESC'"

    def fetch(self, since_ms: int = 0, cancel: Optional[threading.Event] = None) -> str:
        result = self.client.execute(['shell', self.build_query(since_ms)], cancel=cancel)

        if NO_RESULT in result.output.lower() or NO_RESULT in result.error.lower():
            return ''
        if not result.success:
            raise SourceError(
                f"SMS query failed: {result.error.strip()} (exit code: {result.exit_code})",
                exit_code=result.exit_code,
            )
        return result.output
