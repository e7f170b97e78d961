"""
Tests for SSHManager command channels and connect retries.
"""
import unittest
from unittest import mock

import paramiko

import webpublish.config as _cfg
from webpublish.core.ssh_manager import SSHManager
from webpublish.errors import ConnectionError
from webpublish.models import Server
from webpublish.utils.retry import retried


class StderrFirstChannel:
    """
    A channel whose stdout only becomes readable once stderr is drained,
    the way a remote side blocks when stderr fills the flow-control window.
    """

    def __init__(self, stdout: bytes, stderr: bytes, rc: int, chunk: int = 1024):
        self._out = [stdout[i:i + chunk] for i in range(0, len(stdout), chunk)]
        self._err = [stderr[i:i + chunk] for i in range(0, len(stderr), chunk)]
        self._rc = rc
        self.closed = False
        self.command = None

    def settimeout(self, timeout):
        pass

    def exec_command(self, cmd):
        self.command = cmd

    def shutdown_write(self):
        pass

    def recv_stderr_ready(self):
        return bool(self._err)

    def recv_stderr(self, n):
        return self._err.pop(0)

    def recv_ready(self):
        return bool(self._out) and not self._err

    def recv(self, n):
        if self._err:
            raise AssertionError("stdout read while stderr is still pending")
        return self._out.pop(0)

    def exit_status_ready(self):
        return not self._out and not self._err

    def recv_exit_status(self):
        return self._rc

    def close(self):
        self.closed = True


def _manager_with(channel) -> SSHManager:
    mgr = SSHManager(Server(host="h", username="u", password="p", timeout=1))
    mgr._ssh = mock.Mock()
    mgr._ssh.get_transport.return_value.open_session.return_value = channel
    mgr._sftp = mock.Mock()
    return mgr


class TestExecChannel(unittest.TestCase):

    def test_reads_stdout_and_exit_status(self):
        channel = StderrFirstChannel(b"hello\n", b"", 0)
        out, err, rc = _manager_with(channel).exec_channel("echo hello")
        self.assertEqual((out, err, rc), ("hello\n", "", 0))
        self.assertEqual(channel.command, "echo hello")
        self.assertTrue(channel.closed)

    def test_large_stderr_does_not_block_stdout(self):
        stderr = b"tar: warning\n" * 20_000
        channel = StderrFirstChannel(b"done\n", stderr, 2)
        out, err, rc = _manager_with(channel).exec_channel("tar -xzf x.tar.gz")
        self.assertEqual(out, "done\n")
        self.assertEqual(len(err), len(stderr))
        self.assertEqual(rc, 2)

    def test_silent_command_times_out(self):
        class Hung(StderrFirstChannel):
            def exit_status_ready(self):
                return False

        channel = Hung(b"", b"", 0)
        with mock.patch("webpublish.core.ssh_manager._POLL_INTERVAL", 0.001):
            with self.assertRaises(TimeoutError):
                _manager_with(channel).exec_channel("sleep 100", timeout=0.05)
        self.assertTrue(channel.closed)


class TestRetries(unittest.TestCase):

    def setUp(self):
        patcher = mock.patch.object(_cfg, "RETRY_BASE_DELAY", 0)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_transient_failure_retried(self):
        calls = []

        @retried
        def flaky():
            calls.append(1)
            if len(calls) < 2:
                raise paramiko.SSHException("banner timeout")
            return "ok"

        self.assertEqual(flaky(), "ok")
        self.assertEqual(len(calls), 2)

    def test_rejected_credentials_not_retried(self):
        calls = []

        @retried
        def login():
            calls.append(1)
            raise paramiko.AuthenticationException("bad password")

        with self.assertRaises(paramiko.AuthenticationException):
            login()
        self.assertEqual(len(calls), 1)

    def test_connect_wraps_rejected_credentials_once(self):
        with mock.patch("paramiko.SSHClient") as client_cls:
            client_cls.return_value.connect.side_effect = \
                paramiko.AuthenticationException("bad password")
            mgr = SSHManager(Server(host="h", username="u", password="p"))
            with self.assertRaises(ConnectionError):
                mgr.connect()
        self.assertEqual(client_cls.return_value.connect.call_count, 1)


if __name__ == "__main__":
    unittest.main()
