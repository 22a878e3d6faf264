"""Client library for the API Management developer portal content catalog.

This package provides Python abstractions over the Azure management API
for developer portal content: content types, content items, media storage
access and portal revisions.
"""

from .errors import (
    SyncError,
    RemoteError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    UnhandledError,
    NetworkError,
    InvalidCredentialsError,
    error_context,
)
from .models import (
    ServiceConfig,
    ContentItem,
    PutContentItemRequest,
    StorageAccessGrant,
    PortalRevision,
)
from .auth import Authenticator
from .http_client import ManagementHttpClient
from .content_client import RemoteContentClient

__all__ = [
    "SyncError",
    "RemoteError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "UnhandledError",
    "NetworkError",
    "InvalidCredentialsError",
    "error_context",
    "ServiceConfig",
    "ContentItem",
    "PutContentItemRequest",
    "StorageAccessGrant",
    "PortalRevision",
    "Authenticator",
    "ManagementHttpClient",
    "RemoteContentClient",
]
