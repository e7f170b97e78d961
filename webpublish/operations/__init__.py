"""Operations (match, scan, stage, diff, plan, execute, copy)"""
from .matcher import (digest, digest_stream, starts_with_hash,
                      filenames_equal_ignoring_hash, same_logical_asset)
from .scanner import list_remote_files, remote_dir_exists
from .stager import artifact_name, build_archive, stage
from .differ import DigestCache, compare_trees, pair_records, stale_files
from .planner import decide, full_plan, incremental_plan, with_extra_commands
from .executor import run_commands

__all__ = [
    "digest", "digest_stream", "starts_with_hash",
    "filenames_equal_ignoring_hash", "same_logical_asset",
    "list_remote_files", "remote_dir_exists",
    "artifact_name", "build_archive", "stage",
    "DigestCache", "compare_trees", "pair_records", "stale_files",
    "decide", "full_plan", "incremental_plan", "with_extra_commands",
    "run_commands",
]
