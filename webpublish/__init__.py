"""webpublish — incremental publishing of build output over SSH"""
from .models import Server, Upload, PublishResult, ValidateCopy
from .errors import (PublishError, ValidationError, ConnectionError, StagingError,
                     DiffError, ExecutionError, CleanupError)
from .core.reconciler import Reconciler, reconcile
from .operations.copy import validate_copy

__all__ = [
    "Server", "Upload", "PublishResult", "ValidateCopy",
    "PublishError", "ValidationError", "ConnectionError", "StagingError",
    "DiffError", "ExecutionError", "CleanupError",
    "Reconciler", "reconcile", "validate_copy",
]
