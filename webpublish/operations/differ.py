"""
Temp-tree vs live-tree comparison

For every freshly unpacked file, find the live file it replaces (same path,
or a sibling that differs only by an embedded content hash) and decide from
names and SHA-256 digests whether it has to be published. Live files with no
counterpart at the same relative path are stale.
"""
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, TYPE_CHECKING
from .. import config as _cfg
from ..models import Difference, FileRecord
from ..utils.logging import log
from .matcher import candidate_match, digest_stream

if TYPE_CHECKING:
    from ..core.ssh_manager import SSHManager


class DigestCache:
    """
    Memoized path → digest lookups for one publish.

    *fetch* does the actual (blocking, remote) read; at most *max_inflight*
    fetches run at once. A failed fetch is reported and cached as None,
    which never compares equal.
    """

    def __init__(self, fetch: Callable[[str], str],
                 max_inflight: int = _cfg.MAX_INFLIGHT_DIGESTS,
                 progress: Callable[[str], None] = log):
        self._fetch = fetch
        self._progress = progress
        self._cache: dict[str, Optional[str]] = {}
        self._lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(max(1, max_inflight))

    def get(self, path: str) -> Optional[str]:
        with self._lock:
            if path in self._cache:
                return self._cache[path]
        with self._slots:
            try:
                value: Optional[str] = self._fetch(path)
            except (IOError, OSError) as exc:
                self._progress(f"⚠  [diff] get digest of {path} failed: {exc}")
                value = None
        with self._lock:
            return self._cache.setdefault(path, value)

    def same(self, path_a: str, path_b: str) -> bool:
        a = self.get(path_a)
        if a is None:
            return False
        b = self.get(path_b)
        return b is not None and a == b


def remote_digest_fetcher(mgr: "SSHManager") -> Callable[[str], str]:
    def fetch(path: str) -> str:
        with mgr.sftp_open(path) as f:
            return digest_stream(f)
    return fetch


def pair_records(temp_records: list[FileRecord],
                 live_records: list[FileRecord]) -> dict[str, Optional[FileRecord]]:
    """
    Map each temp rel path to the live file it replaces, or None for an add.

    An exact relative path always wins. Fuzzy (hash-variant) candidates are
    limited to live files the temp tree doesn't also hold at the same path,
    and each live file is claimed at most once, in sorted temp order.
    """
    live_by_rel = {r.rel: r for r in live_records}
    temp_rels = {t.rel for t in temp_records}
    unclaimed = [r for r in live_records if r.rel not in temp_rels]

    pairs: dict[str, Optional[FileRecord]] = {}
    for temp in temp_records:
        old = live_by_rel.get(temp.rel)
        if old is None:
            old = next((r for r in unclaimed if candidate_match(r, temp)), None)
            if old is not None:
                unclaimed.remove(old)
        pairs[temp.rel] = old
    return pairs


def _compare_one(temp: FileRecord, old: Optional[FileRecord], digests: DigestCache,
                 say: Callable[[str], None]) -> Optional[Difference]:
    if old is None:
        say(f"  [ADD] {temp.rel}")
        return Difference(temp_path=temp.path, old_path="", rel=temp.rel)

    if old.name == temp.name:
        if digests.same(old.path, temp.path):
            return None
        say(f"  [REPLACE] {temp.rel}")
        return Difference(temp_path=temp.path, old_path=old.path, rel=temp.rel)

    # Hash variant of a sibling (app.3f2a.js → app.9b71.js): the new name has
    # to land even when the bytes are unchanged, because the stale pass
    # removes the old name.
    say(f"  [REPLACE] {old.rel} → {temp.rel}")
    return Difference(temp_path=temp.path, old_path=old.path, rel=temp.rel)


def compare_trees(temp_files: list[str], live_files: list[str],
                  temp_root: str, live_root: str,
                  digests: DigestCache,
                  progress: Callable[[str], None] = log,
                  workers: int = _cfg.DIFF_WORKERS) -> list[Difference]:
    """
    Return one Difference per temp file that must be published, ordered by
    temp path. Pairing is decided up front on this thread; the digest
    checks run on the worker pool, whose log lines go through a queue that
    only this thread drains.
    """
    temp_records = sorted((FileRecord.from_path(p, temp_root) for p in temp_files),
                          key=lambda r: r.rel)
    live_records = sorted((FileRecord.from_path(p, live_root) for p in live_files),
                          key=lambda r: r.rel)
    pairs = pair_records(temp_records, live_records)

    messages: "queue.Queue[str]" = queue.Queue()

    def drain():
        while True:
            try:
                progress(messages.get_nowait())
            except queue.Empty:
                return

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        futures = [
            pool.submit(_compare_one, t, pairs[t.rel], digests, messages.put)
            for t in temp_records
        ]
        results: list[Optional[Difference]] = []
        for fut in futures:
            results.append(fut.result())
            drain()
    drain()

    return [d for d in results if d is not None]


def stale_files(live_files: list[str], temp_files: list[str],
                live_root: str, temp_root: str) -> list[str]:
    """Live files with no temp file at the exact same relative path."""
    temp_rels = {FileRecord.from_path(p, temp_root).rel for p in temp_files}
    return [p for p in live_files
            if FileRecord.from_path(p, live_root).rel not in temp_rels]
