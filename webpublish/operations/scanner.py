"""
Remote tree listing over SFTP
"""
import posixpath
import stat
from typing import Callable, TYPE_CHECKING
from ..utils.logging import log

if TYPE_CHECKING:
    from ..core.ssh_manager import SSHManager


def list_remote_files(mgr: "SSHManager", root: str,
                      progress: Callable[[str], None] = log) -> list[str]:
    """
    Return the absolute path of every non-directory entry under *root*,
    sorted. An unreadable directory contributes nothing and is reported
    through *progress*; it does not abort the walk.
    """
    files: list[str] = []
    _walk(mgr, root.rstrip("/") or "/", files, progress)
    files.sort()
    return files


def _walk(mgr: "SSHManager", directory: str, files: list[str],
          progress: Callable[[str], None]):
    try:
        entries = mgr.sftp_listdir_attr(directory)
    except (IOError, OSError) as exc:
        progress(f"⚠  [scan] cannot read {directory}: {exc}")
        return
    for entry in entries:
        path = posixpath.join(directory, entry.filename)
        if entry.st_mode is not None and stat.S_ISDIR(entry.st_mode):
            _walk(mgr, path, files, progress)
        else:
            files.append(path)


def remote_dir_exists(mgr: "SSHManager", path: str) -> bool:
    return mgr.sftp_is_dir(path)
