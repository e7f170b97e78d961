"""
SSH connection manager: one session + SFTP handle per publish
"""
import posixpath
import stat
import time
from typing import Optional
import paramiko
from .. import config as _cfg
from ..errors import ConnectionError
from ..models import Server
from ..utils.logging import vlog
from ..utils.retry import retried

_READ_SIZE = 32768
_POLL_INTERVAL = 0.02  # seconds between polls when neither stream has data


class SSHManager:
    """
    Wraps paramiko SSHClient + SFTPClient for a single Server.
    Shell commands each get a fresh session channel; SFTP is opened once.
    """

    def __init__(self, server: Server):
        self.server = server
        self._ssh: Optional[paramiko.SSHClient] = None
        self._sftp: Optional[paramiko.SFTPClient] = None

    # ── connection ─────────────────────────────────────────────────────────

    def connect(self):
        if self._ssh:
            return
        vlog(f"[SSH] opening session to {self.server.address} …")
        try:
            self._connect()
        except (paramiko.SSHException, OSError) as exc:
            self._close_quietly()
            raise ConnectionError(f"connect to {self.server.address} failed: {exc}") from exc
        vlog("[SSH] session and SFTP channel open")

    @retried
    def _connect(self):
        timeout = self.server.effective_timeout
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        kw: dict = dict(hostname=self.server.host, port=self.server.port,
                        username=self.server.username,
                        timeout=timeout, banner_timeout=timeout, auth_timeout=timeout)
        if self.server.key_filename:
            kw["key_filename"] = self.server.key_filename
        if self.server.password:
            kw["password"] = self.server.password
            kw["look_for_keys"] = self.server.key_filename is None
        try:
            client.connect(**kw)
            client.get_transport().set_keepalive(_cfg.KEEPALIVE)
            sftp = client.open_sftp()
        except Exception:
            client.close()
            raise
        self._ssh = client
        self._sftp = sftp

    def _close_quietly(self):
        try:
            if self._sftp:
                self._sftp.close()
        except Exception:
            pass
        try:
            if self._ssh:
                self._ssh.close()
        except Exception:
            pass
        self._ssh = None
        self._sftp = None

    def disconnect(self):
        if self._ssh is None:
            return
        self._close_quietly()
        vlog("[SSH] session closed")

    def _require(self):
        if self._ssh is None or self._sftp is None:
            raise ConnectionError("not connected")

    # ── raw exec ────────────────────────────────────────────────────────────

    def exec_channel(self, cmd: str, timeout: Optional[int] = None) -> tuple[str, str, int]:
        """
        Run *cmd* on a fresh session channel; return (stdout, stderr, exit status).

        Shutdown order: exec, send EOF, drain stdout and stderr side by side
        until the exit status arrives, close. Both streams are read in the
        same loop so a chatty stderr can't fill the window while stdout is
        being read. *timeout* bounds the time without any output.
        """
        self._require()
        idle_limit = timeout or self.server.effective_timeout
        channel = self._ssh.get_transport().open_session()
        out, err = bytearray(), bytearray()
        try:
            channel.settimeout(idle_limit)
            channel.exec_command(cmd)
            channel.shutdown_write()
            last_output = time.monotonic()
            while True:
                if self._read_ready(channel, out, err):
                    last_output = time.monotonic()
                    continue
                if channel.exit_status_ready():
                    break
                if time.monotonic() - last_output > idle_limit:
                    raise TimeoutError(f"no output for {idle_limit}s from {cmd[:80]!r}")
                time.sleep(_POLL_INTERVAL)
            while self._read_ready(channel, out, err):
                pass
            rc = channel.recv_exit_status()
        finally:
            channel.close()
        vlog(f"[SSH] exit {rc}: {cmd[:80]!r}")
        return (out.decode("utf-8", errors="replace"),
                err.decode("utf-8", errors="replace"), rc)

    @staticmethod
    def _read_ready(channel: paramiko.Channel, out: bytearray, err: bytearray) -> bool:
        """Take one chunk from each stream that has data; False when both were empty."""
        got = False
        if channel.recv_ready():
            out += channel.recv(_READ_SIZE)
            got = True
        if channel.recv_stderr_ready():
            err += channel.recv_stderr(_READ_SIZE)
            got = True
        return got

    # ── sftp ops ────────────────────────────────────────────────────────────

    @retried
    def sftp_put(self, local: str, remote: str):
        self._require()
        self._sftp.put(local, remote)

    def sftp_stat(self, remote: str) -> paramiko.SFTPAttributes:
        self._require()
        return self._sftp.stat(remote)

    def sftp_exists(self, remote: str) -> bool:
        try:
            self.sftp_stat(remote)
            return True
        except (FileNotFoundError, IOError):
            return False

    def sftp_is_dir(self, remote: str) -> bool:
        try:
            return stat.S_ISDIR(self.sftp_stat(remote).st_mode)
        except (FileNotFoundError, IOError):
            return False

    def sftp_listdir_attr(self, remote: str) -> list[paramiko.SFTPAttributes]:
        self._require()
        return self._sftp.listdir_attr(remote)

    def sftp_open(self, remote: str):
        """Open a remote file for binary reading."""
        self._require()
        f = self._sftp.open(remote, "rb")
        f.prefetch()
        return f

    def sftp_remove(self, remote: str):
        self._require()
        self._sftp.remove(remote)

    def sftp_makedirs(self, remote: str):
        """Create a remote directory and any missing parents (POSIX paths)."""
        self._require()
        parts = [p for p in remote.split("/") if p]
        cur = "/" if remote.startswith("/") else ""
        for p in parts:
            cur = posixpath.join(cur, p) if cur else p
            if self.sftp_is_dir(cur):
                continue
            try:
                self._sftp.mkdir(cur)
            except IOError:
                if not self.sftp_is_dir(cur):
                    raise

    def sftp_home(self) -> str:
        """Absolute path of the login user's home directory."""
        self._require()
        return self._sftp.normalize(".")

    def sftp_chmod(self, remote: str, mode: int):
        self._require()
        self._sftp.chmod(remote, mode)
