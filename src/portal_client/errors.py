"""Typed exception hierarchy for portal-related errors.

This module defines all custom exceptions raised when talking to the
API Management management plane. All exceptions inherit from SyncError so
callers can catch any application-level error with a single clause, and
remote failures keep the HTTP status and response body for diagnostics.
"""

from contextlib import contextmanager
from typing import Iterator, Optional


class SyncError(Exception):
    """Base exception for all portal-sync errors.

    Use this to catch any application-level error from the sync tool.
    """
    pass


class RemoteError(SyncError):
    """Base exception for failed requests against the management API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class UnauthorizedError(RemoteError):
    """Raised on 401. The cached token has already been invalidated."""

    def __init__(self, details: Optional[str] = None):
        super().__init__(
            "Unauthorized. Please check your Azure credentials and permissions.",
            status_code=401,
            details=details,
        )


class ForbiddenError(RemoteError):
    """Raised on 403."""

    def __init__(self, details: Optional[str] = None):
        super().__init__(
            "Access denied. Please check your permissions for the API Management service.",
            status_code=403,
            details=details,
        )


class NotFoundError(RemoteError):
    """Raised when a requested resource does not exist (404)."""

    def __init__(self, url: str, details: Optional[str] = None):
        super().__init__(f"Resource not found: {url}", status_code=404, details=details)
        self.url = url


class UnhandledError(RemoteError):
    """Raised for any other non-success status code."""

    def __init__(self, status_code: int, reason: str, url: str, details: Optional[str] = None):
        super().__init__(
            f"Request failed: {status_code} {reason}".rstrip(),
            status_code=status_code,
            details=details,
        )
        self.url = url


class NetworkError(RemoteError):
    """Raised when the management API cannot be reached at all."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Network error: {reason}")
        self.url = url


class InvalidCredentialsError(SyncError):
    """Raised when no bearer token could be acquired."""

    def __init__(self, message: str = "No Azure credentials available"):
        super().__init__(message)


@contextmanager
def error_context(summary: str) -> Iterator[None]:
    """Attach a human-readable phase summary to any SyncError raised inside.

    The exception is re-raised unchanged in kind; the summary is recorded as
    an exception note so the original message and cause stay intact.

    Example:
        >>> with error_context("Unable to fetch content types."):
        ...     client.send_request("GET", "/contentTypes")
    """
    try:
        yield
    except SyncError as e:
        e.add_note(summary)
        raise
