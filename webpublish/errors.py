"""Exception hierarchy for webpublish."""
from typing import Optional


class PublishError(Exception):
    """Base exception for all publish failures."""
    pass


class ValidationError(PublishError):
    """Raised when server or upload settings are incomplete. No remote side effects."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field


class ConnectionError(PublishError):
    """Raised when the SSH/SFTP session cannot be established."""
    pass


class StagingError(PublishError):
    """Raised when packing, uploading or unpacking the artifact fails."""
    pass


class DiffError(PublishError):
    """Raised when the temp or live tree cannot be read."""
    pass


class ExecutionError(PublishError):
    """Raised when a remote command batch fails or writes to stderr."""

    def __init__(self, message: str, stderr: str = "", exit_status: Optional[int] = None):
        super().__init__(message)
        self.stderr = stderr
        self.exit_status = exit_status


class CleanupError(PublishError):
    """Raised by a cleanup step; reported through progress, never surfaced."""
    pass
