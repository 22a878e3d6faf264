"""Typed exceptions raised by the sync engine itself."""

from typing import Optional

from src.portal_client.errors import SyncError


class ValidationError(SyncError):
    """Raised when an operation is called with malformed input."""

    def __init__(self, message: str, field: Optional[str] = None):
        if field:
            message = f"Invalid value for '{field}': {message}"
        super().__init__(message)
        self.field = field
