"""Core functionality"""
from .ssh_manager import SSHManager
from .reconciler import Reconciler, reconcile, validate_server, validate_upload

__all__ = ["SSHManager", "Reconciler", "reconcile", "validate_server", "validate_upload"]
