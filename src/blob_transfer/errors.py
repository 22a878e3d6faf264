"""Typed exception for media blob transfer failures."""

from typing import Optional

from src.portal_client.errors import SyncError


class BlobTransferError(SyncError):
    """Raised when a media storage operation fails.

    The original SDK or OS exception is kept on `cause` (and chained via
    `raise ... from`) for diagnostics.
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        if key:
            message = f"{message} (blob: {key})"
        super().__init__(message)
        self.key = key
        self.cause = cause
