"""
Console progress output for webpublish

Every line is prefixed with a `[HH:MM:SS]` stamp. Warnings go to stderr so a
publish log piped to a file still surfaces problems on the terminal.
"""
import sys
from datetime import datetime
from typing import Optional, TextIO

_verbose = False


def set_verbose(verbose: bool):
    global _verbose
    _verbose = verbose


def log(msg: str, stream: Optional[TextIO] = None):
    """Print *msg* with a timestamp (default progress callback)."""
    ts = datetime.now().strftime("%H:%M:%S")
    print(f"[{ts}] {msg}", file=stream or sys.stdout, flush=True)


def vlog(msg: str):
    """Only printed with --verbose."""
    if _verbose:
        log(msg)


def warn(msg: str):
    log(f"⚠  {msg}", stream=sys.stderr)
