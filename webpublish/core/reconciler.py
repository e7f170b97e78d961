"""
Publish orchestration: validate → stage → diff → plan → execute → cleanup
"""
import shlex
from pathlib import Path
from typing import Callable, Optional
from .. import config as _cfg
from ..errors import DiffError, PublishError, CleanupError, ValidationError
from ..models import PublishResult, Server, Upload
from ..operations.differ import DigestCache, compare_trees, remote_digest_fetcher, stale_files
from ..operations.executor import run_commands
from ..operations.planner import decide, full_plan, incremental_plan, with_extra_commands
from ..operations.scanner import list_remote_files, remote_dir_exists
from ..operations.stager import (StagedArtifact, artifact_name, build_archive,
                                 plan_paths, read_source, stage)
from ..utils.logging import log
from .ssh_manager import SSHManager

Progress = Callable[[str], None]


def validate_server(server: Server) -> Optional[ValidationError]:
    """Return the first problem with *server*, or None."""
    if not server.host:
        return ValidationError("host", "server `host` is empty")
    if not server.port or server.port <= 0:
        return ValidationError("port", f"server `port` is invalid: {server.port!r}")
    if not server.username:
        return ValidationError("username", "server `username` is empty")
    if not server.password and not server.key_filename:
        return ValidationError("password", "server needs a `password` or an `ssh_key`")
    return None


def validate_upload(upload: Upload) -> Optional[ValidationError]:
    """Return the first problem with *upload*, or None."""
    if not upload.dir:
        return ValidationError("dir", "upload `dir` is empty")
    if not upload.server_dir.strip():
        return ValidationError("server_dir", "upload `server_dir` is empty")
    source = Path(upload.dir)
    if not source.is_dir():
        return ValidationError("dir", f"upload dir {upload.dir} does not exist")
    if not any(source.iterdir()):
        return ValidationError("dir", f"upload dir {upload.dir} is empty")
    return None


class Reconciler:
    """
    Publishes one local build directory to one remote target.

    Every run owns its own SSH session. Once the artifact has been packed the
    local archive is always deleted; once the session is up the remote
    archive and temp tree are always deleted, whichever stage fails.
    Concurrent runs against the same server_dir must be serialized by the
    caller.
    """

    def __init__(self, server: Server, upload: Upload,
                 progress: Optional[Progress] = None,
                 manager_factory: Callable[[Server], SSHManager] = SSHManager,
                 workers: int = _cfg.DIFF_WORKERS,
                 max_inflight: int = _cfg.MAX_INFLIGHT_DIGESTS):
        self.server = server
        self.upload = upload
        self._progress: Progress = progress or log
        self._manager_factory = manager_factory
        self._workers = workers
        self._max_inflight = max_inflight

    def run(self) -> PublishResult:
        for problem in (validate_server(self.server), validate_upload(self.upload)):
            if problem is not None:
                self._progress(f"⚠  [validate] {problem}")
                raise problem

        directories, files = read_source(self.upload.dir)
        name = artifact_name(self.upload, directories, files)
        self._progress(f"[stage] artifact name: {name}")
        archive = build_archive(self.upload, name, directories, files)
        self._progress(f"[stage] packed {archive.name} ({archive.stat().st_size // 1024} KB)")
        staged = plan_paths(self.upload, name, archive)

        mgr = self._manager_factory(self.server)
        remote_started = False
        try:
            self._progress(f"[SSH] connecting to {self.server.address} …")
            mgr.connect()
            self._progress("[SSH] connected ✓")
            remote_started = True
            stage(mgr, self.upload, staged, timeout=self.server.effective_timeout,
                  progress=self._progress)
            result = self._plan(mgr, staged)
            self._progress(f"[plan] {len(result.commands)} command(s) to run")
            run_commands(mgr, result.commands, timeout=self.server.effective_timeout,
                         progress=self._progress)
            self._progress(f"[publish] {name} published ✓ "
                           f"(files={result.file_count} deleted={result.delete_count} "
                           f"incremental={result.need_increment})")
            return result
        except PublishError as exc:
            self._progress(f"⚠  [publish] {name} failed: {exc}")
            raise
        finally:
            self._cleanup(mgr, staged, remote=remote_started)
            mgr.disconnect()
            self._progress("[SSH] disconnected.")

    # ── diff + plan ───────────────────────────────────────────────────────────

    def _read_trees(self, mgr: SSHManager,
                    staged: StagedArtifact) -> tuple[list[str], bool, list[str]]:
        """(temp files, live root exists, live files); the live tree is read only when needed."""
        self._progress(f"[diff] reading temp tree {staged.temp_root} …")
        temp_files = list_remote_files(mgr, staged.temp_root, self._progress)
        if not temp_files:
            raise DiffError(f"temp tree {staged.temp_root} is empty")

        live_exists = remote_dir_exists(mgr, staged.live_root)
        live_files: list[str] = []
        if live_exists and self.upload.need_increment:
            self._progress(f"[diff] reading live tree {staged.live_root} …")
            live_files = list_remote_files(mgr, staged.live_root, self._progress)
        return temp_files, live_exists, live_files

    def _plan(self, mgr: SSHManager, staged: StagedArtifact) -> PublishResult:
        try:
            temp_files, live_exists, live_files = self._read_trees(mgr, staged)
        except PublishError:
            raise
        except Exception as exc:
            raise DiffError(f"read {staged.temp_root} or {staged.live_root} failed: {exc}") from exc

        incremental, reason = decide(live_exists, self.upload.need_increment, live_files)
        if not incremental:
            self._progress(f"[plan] full publish ({reason}), file count: {len(temp_files)}")
            commands = full_plan(staged.temp_root, staged.live_root)
            return PublishResult(
                file_count=len(temp_files),
                delete_count=0,
                need_increment=False,
                commands=with_extra_commands(commands, self.upload),
            )

        self._progress(f"[diff] comparing {len(temp_files)} new against "
                       f"{len(live_files)} live file(s) …")
        digests = DigestCache(remote_digest_fetcher(mgr), self._max_inflight, self._progress)
        try:
            differences = compare_trees(temp_files, live_files,
                                        staged.temp_root, staged.live_root,
                                        digests, self._progress, self._workers)
        except PublishError:
            raise
        except Exception as exc:
            raise DiffError(f"compare {staged.temp_root} with {staged.live_root} failed: {exc}") from exc
        stale = stale_files(live_files, temp_files, staged.live_root, staged.temp_root)
        self._progress(f"[diff] difference file count: {len(differences)}, "
                       f"stale file count: {len(stale)}")
        if not differences:
            self._progress("[diff] no difference files, only stale files are removed")

        commands = incremental_plan(differences, stale, staged.live_root)
        return PublishResult(
            file_count=len(differences),
            delete_count=len(stale),
            need_increment=True,
            commands=with_extra_commands(commands, self.upload),
        )

    # ── cleanup ───────────────────────────────────────────────────────────────

    def _cleanup(self, mgr: SSHManager, staged: StagedArtifact, remote: bool):
        self._progress("[cleanup] removing archives and temp tree …")
        if remote:
            self._cleanup_step("remove remote archive", lambda: self._remove_remote_archive(mgr, staged))
            self._cleanup_step("remove temp tree", lambda: run_commands(
                mgr, [f"rm -rf {shlex.quote(staged.temp_root)}"],
                timeout=self.server.effective_timeout, progress=self._progress))
        self._cleanup_step("remove local archive",
                           lambda: Path(staged.local_archive).unlink(missing_ok=True))
        self._progress("[cleanup] done")

    @staticmethod
    def _remove_remote_archive(mgr: SSHManager, staged: StagedArtifact):
        if mgr.sftp_exists(staged.remote_archive):
            mgr.sftp_remove(staged.remote_archive)

    def _cleanup_step(self, label: str, fn: Callable[[], object]):
        try:
            fn()
        except Exception as exc:
            err = CleanupError(f"{label} failed: {exc}")
            self._progress(f"⚠  [cleanup] {err}")


def reconcile(server: Server, upload: Upload,
              progress: Optional[Progress] = None) -> PublishResult:
    """Publish *upload* to *server*; see Reconciler."""
    return Reconciler(server, upload, progress).run()
