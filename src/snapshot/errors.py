"""Typed exception hierarchy for snapshot store errors."""

from typing import Optional

from src.portal_client.errors import SyncError


class SnapshotError(SyncError):
    """Base exception for all snapshot errors."""
    pass


class SnapshotNotFoundError(SnapshotError):
    """Raised when the snapshot data file does not exist."""

    def __init__(self, file_path: str):
        super().__init__(f"Snapshot file {file_path} not found.")
        self.file_path = file_path


class SnapshotCorruptError(SnapshotError):
    """Raised when the snapshot data file exists but cannot be parsed."""

    def __init__(self, file_path: str, reason: Optional[str] = None):
        message = f"Snapshot file {file_path} is corrupt"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.file_path = file_path
        self.reason = reason


class SnapshotFilesystemError(SnapshotError):
    """Raised when reading or writing snapshot files fails at the OS level."""

    def __init__(self, file_path: str, operation: str, reason: Optional[str] = None):
        message = f"Filesystem operation '{operation}' failed for {file_path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.file_path = file_path
        self.operation = operation
        self.reason = reason
