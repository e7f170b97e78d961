"""
Remote command batches
"""
from typing import Callable, Optional, TYPE_CHECKING
from ..errors import ExecutionError
from ..utils.logging import log

if TYPE_CHECKING:
    from ..core.ssh_manager import SSHManager

# The remote sh runs newline-separated commands one after another
COMMAND_SEPARATOR = "\n"


def join_commands(commands: list[str]) -> str:
    return COMMAND_SEPARATOR.join(commands)


def run_commands(mgr: "SSHManager", commands: list[str],
                 timeout: Optional[int] = None,
                 progress: Callable[[str], None] = log) -> str:
    """
    Send *commands* as one exec and return its stdout.
    Anything on stderr, or a non-zero exit status, raises ExecutionError.
    An empty list is a no-op.
    """
    if not commands:
        progress("[exec] no commands need to run")
        return ""

    script = join_commands(commands)
    progress(f"[exec] running {len(commands)} command(s):\n{script}")
    try:
        out, err, rc = mgr.exec_channel(script, timeout=timeout)
    except ExecutionError:
        raise
    except Exception as exc:
        raise ExecutionError(f"remote exec failed: {exc}") from exc

    for line in out.splitlines():
        progress(f"  {line}")
    if err.strip():
        raise ExecutionError(f"remote commands reported errors:\n{err.strip()}",
                             stderr=err, exit_status=rc)
    if rc != 0:
        raise ExecutionError(f"remote commands exited {rc}", stderr=err, exit_status=rc)
    progress("[exec] commands finished ✓")
    return out
