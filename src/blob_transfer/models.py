"""Data models for media blob transfer."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class MediaBlob:
    """A blob in the portal media container.

    Attributes:
        key: Blob name (path-like, no folder semantics)
        content_type: MIME type stored on the blob, if any
    """
    key: str
    content_type: Optional[str] = None
