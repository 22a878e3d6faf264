"""Media blob transfer for the developer portal media container."""

from .blob_client import BlobTransferClient, MEDIA_CONTAINER_NAME
from .models import MediaBlob
from .errors import BlobTransferError

__all__ = [
    'BlobTransferClient',
    'MEDIA_CONTAINER_NAME',
    'MediaBlob',
    'BlobTransferError',
]
