"""
Artifact packing, upload and remote unpacking
"""
import posixpath
import shlex
import tarfile
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, TYPE_CHECKING
from .. import config as _cfg
from ..errors import ExecutionError, StagingError
from ..models import Upload
from ..utils.logging import log
from .executor import run_commands

if TYPE_CHECKING:
    from ..core.ssh_manager import SSHManager


@dataclass(frozen=True)
class StagedArtifact:
    """Every path one publish touches outside the live tree."""
    name: str
    local_archive: str
    scratch_dir: str
    remote_archive: str
    temp_root: str
    live_root: str


def read_source(source: str) -> tuple[list[str], list[str]]:
    """Return (directory names, file names) directly under *source*, sorted."""
    directories, files = [], []
    for p in sorted(Path(source).iterdir()):
        if p.is_dir():
            directories.append(p.name)
        else:
            files.append(p.name)
    return directories, files


def artifact_name(upload: Upload, directories: list[str], files: list[str]) -> str:
    """
    Remote name of the artifact:
      1. upload.server_file_name when given
      2. the only sub-directory, when the source holds nothing else
      3. the only file, when the source holds nothing else
      4. the source directory's own name
    """
    if upload.server_file_name:
        return upload.server_file_name
    if len(directories) == 1 and not files:
        return directories[0]
    if not directories and len(files) == 1:
        return files[0]
    return Path(upload.dir).resolve().name


def build_archive(upload: Upload, name: str, directories: list[str], files: list[str],
                  out_dir: Optional[Path] = None) -> Path:
    """
    Pack the source into `<name>-<timestamp>.tar.gz` with every member under
    `<name>/`. A source holding only a `<name>/` directory is packed from
    inside that directory so the artifact isn't nested twice.
    """
    source = Path(upload.dir)
    if directories == [name] and not files:
        payload = source / name
    else:
        payload = source

    stamp = datetime.now().strftime(_cfg.ARCHIVE_STAMP_FORMAT)
    archive = Path(out_dir or tempfile.gettempdir()) / f"{name}-{stamp}.tar.gz"
    try:
        with tarfile.open(archive, "w:gz", compresslevel=6) as tar:
            for child in sorted(payload.iterdir()):
                tar.add(str(child), arcname=f"{name}/{child.name}")
    except (OSError, tarfile.TarError) as exc:
        archive.unlink(missing_ok=True)
        raise StagingError(f"pack {payload} failed: {exc}") from exc
    return archive


def scratch_dir(upload: Upload) -> str:
    """Scratch directory: a sibling of server_dir, so `mv` stays on one filesystem."""
    server_dir = upload.server_dir.strip().rstrip("/") or "/"
    parent = posixpath.dirname(server_dir)
    if not parent or parent == server_dir:
        return posixpath.join(server_dir, _cfg.SCRATCH_DIR_NAME)
    return posixpath.join(parent, _cfg.SCRATCH_DIR_NAME)


def plan_paths(upload: Upload, name: str, archive: Path) -> StagedArtifact:
    scratch = scratch_dir(upload)
    return StagedArtifact(
        name=name,
        local_archive=str(archive),
        scratch_dir=scratch,
        remote_archive=posixpath.join(scratch, archive.name),
        temp_root=posixpath.join(scratch, name),
        live_root=posixpath.join(upload.server_dir.strip().rstrip("/") or "/", name),
    )


def stage(mgr: "SSHManager", upload: Upload, staged: StagedArtifact,
          timeout: Optional[int] = None,
          progress: Callable[[str], None] = log):
    """Upload the archive into the scratch dir and unpack it into the temp tree."""
    try:
        mgr.sftp_makedirs(staged.scratch_dir)
        mgr.sftp_makedirs(upload.server_dir.strip())
    except (IOError, OSError) as exc:
        raise StagingError(f"create remote directories failed: {exc}") from exc

    progress(f"[stage] uploading {staged.local_archive} → {staged.remote_archive} …")
    try:
        mgr.sftp_put(staged.local_archive, staged.remote_archive)
    except Exception as exc:
        raise StagingError(f"upload {staged.local_archive} failed: {exc}") from exc
    progress("[stage] upload ✓")

    progress(f"[stage] unpacking into {staged.temp_root} …")
    commands = [
        f"rm -rf {shlex.quote(staged.temp_root)}",
        f"tar --no-same-owner -mxzf {shlex.quote(staged.remote_archive)} "
        f"-C {shlex.quote(staged.scratch_dir)}",
    ]
    try:
        run_commands(mgr, commands, timeout=timeout, progress=progress)
    except ExecutionError as exc:
        raise StagingError(f"unpack {staged.remote_archive} failed: {exc}") from exc

    if not mgr.sftp_is_dir(staged.temp_root):
        raise StagingError(f"temp tree {staged.temp_root} missing after unpack")
    progress("[stage] unpack ✓")
