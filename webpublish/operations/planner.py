"""
Full vs. incremental publish decision and command generation
"""
import posixpath
import shlex
from ..models import Difference, Upload


def _q(path: str) -> str:
    return shlex.quote(path)


def decide(live_exists: bool, need_increment: bool,
           live_files: list[str]) -> tuple[bool, str]:
    """
    Returns (incremental, reason). First matching rule wins:
      1. live target missing  → full
      2. need_increment off   → full
      3. live target empty    → full
      4. otherwise            → incremental
    """
    if not live_exists:
        return False, "live target does not exist"
    if not need_increment:
        return False, "incremental publish not requested"
    if not live_files:
        return False, "live target is empty"
    return True, "live target has files"


def full_plan(temp_root: str, live_root: str) -> list[str]:
    """Drop the live tree and rename the temp tree into its place."""
    return [
        f"rm -rf {_q(live_root)}",
        f"mv {_q(temp_root)} {_q(live_root)}",
    ]


def incremental_plan(differences: list[Difference], stale: list[str],
                     live_root: str) -> list[str]:
    """
    Replace/add commands in diff order, then one removal per stale file.
    New files may live in directories the live tree doesn't have yet.
    """
    commands: list[str] = []
    for d in differences:
        dest = posixpath.join(live_root, d.rel)
        if d.is_addition:
            parent = posixpath.dirname(dest)
            commands.append(f"mkdir -p {_q(parent)} && cp {_q(d.temp_path)} {_q(dest)}")
        else:
            commands.append(f"rm -rf {_q(d.old_path)}")
            commands.append(f"cp {_q(d.temp_path)} {_q(dest)}")
    for path in stale:
        commands.append(f"rm -rf {_q(path)}")
    return commands


def with_extra_commands(commands: list[str], upload: Upload) -> list[str]:
    """Caller-supplied commands always run last, in the order given."""
    return list(commands) + [c for c in upload.cmds if c.strip()]
