"""Utilities (logging, retry)"""
from .logging import log, vlog, warn, set_verbose
from .retry import retried

__all__ = ["log", "vlog", "warn", "set_verbose", "retried"]
