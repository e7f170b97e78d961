"""
Single-file deploy: upload a program binary only when its digest changed
"""
import posixpath
import shlex
from pathlib import Path
from typing import Callable, Optional
from ..errors import PublishError, StagingError, ValidationError
from ..models import Server, ValidateCopy
from ..utils.logging import log
from .executor import run_commands
from .matcher import digest_stream


def validate_copy_spec(copy: ValidateCopy) -> Optional[ValidationError]:
    if not copy.file_path:
        return ValidationError("file_path", "copy `file_path` is empty")
    if not copy.dest_dir:
        return ValidationError("dest_dir", "copy `dest_dir` is empty")
    path = Path(copy.file_path)
    if not path.exists():
        return ValidationError("file_path", f"file {copy.file_path} does not exist")
    if not path.is_file():
        return ValidationError("file_path", f"{copy.file_path} is not a file")
    return None


def find_running_pid(mgr, file_name: str, timeout: Optional[int] = None) -> str:
    """PID of a running process whose command line mentions *file_name*, or ""."""
    out, _, _ = mgr.exec_channel(
        f"ps aux | grep {shlex.quote(file_name)} | grep -v grep", timeout=timeout)
    for line in out.splitlines():
        if file_name in line and "grep" not in line:
            parts = line.split()
            if len(parts) > 1:
                return parts[1]
    return ""


def validate_copy(server: Server, copy: ValidateCopy,
                  progress: Callable[[str], None] = log,
                  manager_factory=None) -> str:
    """
    Make `<home>/<dest_dir>/<file name>` on *server* match the local file.

    The upload is skipped when the remote SHA-256 equals the local one. A
    running instance of the old binary is killed before it is replaced.
    Returns the remote path.
    """
    from ..core.reconciler import validate_server
    from ..core.ssh_manager import SSHManager

    for problem in (validate_server(server), validate_copy_spec(copy)):
        if problem is not None:
            raise problem

    local = Path(copy.file_path)
    file_name = local.name
    if copy.hash:
        local_hash = copy.hash.strip().lower()
    else:
        with local.open("rb") as f:
            local_hash = digest_stream(f)
    timeout = server.effective_timeout

    mgr = (manager_factory or SSHManager)(server)
    try:
        progress(f"[SSH] connecting to {server.address} …")
        mgr.connect()
        progress("[SSH] connected ✓")
        dest_dir = posixpath.join(mgr.sftp_home(), copy.dest_dir)
        dest_path = posixpath.join(dest_dir, file_name)
        progress(f"[copy] server dest file: {dest_path}")
        try:
            mgr.sftp_makedirs(dest_dir)
        except (IOError, OSError) as exc:
            raise StagingError(f"create {dest_dir} failed: {exc}") from exc

        remote_hash = ""
        exists = mgr.sftp_exists(dest_path)
        if exists:
            try:
                with mgr.sftp_open(dest_path) as f:
                    remote_hash = digest_stream(f)
            except (IOError, OSError) as exc:
                progress(f"⚠  [copy] cannot read digest of {dest_path}: {exc}")
        progress(f"[copy] remote hash: {remote_hash or '-'}, local hash: {local_hash}")

        if remote_hash == local_hash:
            progress("[copy] no difference, upload skipped")
            return dest_path

        if exists:
            pid = find_running_pid(mgr, file_name, timeout)
            if pid:
                progress(f"[copy] stopping running {file_name} (pid {pid})")
                run_commands(mgr, [f"kill {shlex.quote(pid)}"], timeout=timeout, progress=progress)

        progress(f"[copy] uploading {local} → {dest_path} …")
        try:
            mgr.sftp_put(str(local), dest_path)
            mgr.sftp_chmod(dest_path, 0o755)
        except PublishError:
            raise
        except Exception as exc:
            raise StagingError(f"upload {local} failed: {exc}") from exc
        progress("[copy] upload ✓")
        return dest_path
    finally:
        mgr.disconnect()
        progress("[SSH] disconnected.")
