"""Data models for the on-disk snapshot."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

# Content item resource id -> item payload without its id.
SnapshotDocument = Dict[str, Any]


@dataclass(frozen=True)
class MediaUpload:
    """A local media file resolved to the blob it should be uploaded as.

    Attributes:
        path: Local file path under the snapshot media folder
        key: Blob name in the media container
        content_type: MIME type to store on the blob
        has_sidecar: Whether the content type came from a .info sidecar
    """
    path: Path
    key: str
    content_type: str
    has_sidecar: bool
