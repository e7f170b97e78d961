"""
Test doubles for SSHManager.

LocalRemoteManager treats "remote" paths as paths on this machine (tests
point them into a temporary directory) and runs command batches with
`sh -c`, so publish runs can be checked against real files.
"""
import os
import shutil
import subprocess

import paramiko


class LocalRemoteManager:
    def __init__(self, server=None, home=None):
        self.server = server
        self.home = home or os.getcwd()
        self.connected = False
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.scripts: list[str] = []
        self.puts: list[tuple[str, str]] = []

    def __call__(self, server):
        """Lets an instance stand in as a manager factory."""
        self.server = server
        return self

    def connect(self):
        self.connect_calls += 1
        self.connected = True

    def disconnect(self):
        self.disconnect_calls += 1
        self.connected = False

    def exec_channel(self, cmd, timeout=None):
        self.scripts.append(cmd)
        proc = subprocess.run(["sh", "-c", cmd], capture_output=True, text=True)
        return proc.stdout, proc.stderr, proc.returncode

    def sftp_put(self, local, remote):
        self.puts.append((local, remote))
        shutil.copyfile(local, remote)

    def sftp_stat(self, remote):
        return os.stat(remote)

    def sftp_exists(self, remote):
        return os.path.exists(remote)

    def sftp_is_dir(self, remote):
        return os.path.isdir(remote)

    def sftp_listdir_attr(self, remote):
        return [
            paramiko.SFTPAttributes.from_stat(os.lstat(os.path.join(remote, name)), name)
            for name in sorted(os.listdir(remote))
        ]

    def sftp_open(self, remote):
        return open(remote, "rb")

    def sftp_remove(self, remote):
        os.remove(remote)

    def sftp_makedirs(self, remote):
        os.makedirs(remote, exist_ok=True)

    def sftp_home(self):
        return self.home

    def sftp_chmod(self, remote, mode):
        os.chmod(remote, mode)


class ScriptedManager:
    """Returns canned (stdout, stderr, exit status) for every exec."""

    def __init__(self, *replies):
        self.replies = list(replies) or [("", "", 0)]
        self.scripts: list[str] = []

    def exec_channel(self, cmd, timeout=None):
        self.scripts.append(cmd)
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0]


def write_tree(root, files: dict):
    """Create {relative path: text} under *root*."""
    for rel, text in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(text, encoding="utf-8")


def read_tree(root) -> dict:
    """Return {relative posix path: text} for every file under *root*."""
    return {
        p.relative_to(root).as_posix(): p.read_text(encoding="utf-8")
        for p in sorted(root.rglob("*")) if p.is_file()
    }
