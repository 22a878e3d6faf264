"""Data models for sync engine results."""

from dataclasses import dataclass


@dataclass
class OperationSummary:
    """Counts collected during one capture, generate or cleanup run.

    Attributes:
        content_items: Content items written to the snapshot or the service
        media_files: Media files downloaded or uploaded
        deleted_items: Content items deleted from the service
        deleted_blobs: Media blobs deleted from the service
        skipped: Items skipped (already gone during cleanup)

    Example:
        >>> summary = OperationSummary(content_items=12, media_files=3)
    """
    content_items: int = 0
    media_files: int = 0
    deleted_items: int = 0
    deleted_blobs: int = 0
    skipped: int = 0
