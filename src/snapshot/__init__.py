"""On-disk snapshot format for developer portal content and media."""

from .snapshot_store import (
    SnapshotStore,
    sidecar_path,
    DATA_FILE_NAME,
    MEDIA_FOLDER_NAME,
    METADATA_FILE_EXT,
    DEFAULT_CONTENT_TYPE,
)
from .models import MediaUpload, SnapshotDocument
from .errors import (
    SnapshotError,
    SnapshotNotFoundError,
    SnapshotCorruptError,
    SnapshotFilesystemError,
)

__all__ = [
    'SnapshotStore',
    'sidecar_path',
    'DATA_FILE_NAME',
    'MEDIA_FOLDER_NAME',
    'METADATA_FILE_EXT',
    'DEFAULT_CONTENT_TYPE',
    'MediaUpload',
    'SnapshotDocument',
    'SnapshotError',
    'SnapshotNotFoundError',
    'SnapshotCorruptError',
    'SnapshotFilesystemError',
]
