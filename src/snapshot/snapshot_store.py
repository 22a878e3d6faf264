"""On-disk snapshot of a developer portal.

Layout:
    <root>/data.json                 single JSON object, resource id -> item
    <root>/media/<blob key>          media file content
    <root>/media/<blob key>.info     optional sidecar: {"contentType": "..."}

The store has no locking; two runs against the same folder are not safe.
"""

import json
import logging
import mimetypes
from pathlib import Path
from typing import List, Union

from .errors import (
    SnapshotCorruptError,
    SnapshotFilesystemError,
    SnapshotNotFoundError,
)
from .models import MediaUpload, SnapshotDocument

logger = logging.getLogger(__name__)

DATA_FILE_NAME = "data.json"
MEDIA_FOLDER_NAME = "media"
METADATA_FILE_EXT = ".info"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def sidecar_path(file_path: Union[str, Path]) -> Path:
    """Return the metadata sidecar path for a media file."""
    file_path = Path(file_path)
    return file_path.with_name(file_path.name + METADATA_FILE_EXT)


class SnapshotStore:
    """Reads and writes a snapshot folder.

    Example:
        >>> store = SnapshotStore("./dist/snapshot")
        >>> store.write({"/contentTypes/page/contentItems/home": {...}})
        >>> document = store.read()
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    @property
    def data_file(self) -> Path:
        return self.root / DATA_FILE_NAME

    @property
    def media_folder(self) -> Path:
        return self.root / MEDIA_FOLDER_NAME

    def has_media(self) -> bool:
        return self.media_folder.is_dir()

    def write(self, document: SnapshotDocument) -> None:
        """Serialize the document to data.json, creating the root if needed.

        The write is not atomic; an interrupted write shows up on the next
        read as a corrupt or missing file.

        Raises:
            SnapshotFilesystemError: If the folder or file cannot be written
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with open(self.data_file, 'w', encoding='utf-8') as f:
                json.dump(document, f)
        except OSError as e:
            raise SnapshotFilesystemError(str(self.data_file), 'write', str(e)) from e

        logger.info(f"Wrote {len(document)} content item(s) to {self.data_file}")

    def read(self) -> SnapshotDocument:
        """Load data.json.

        Returns:
            The document with keys in file order

        Raises:
            SnapshotNotFoundError: If data.json does not exist
            SnapshotCorruptError: If data.json is not a JSON object
            SnapshotFilesystemError: If the file cannot be read
        """
        try:
            with open(self.data_file, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError as e:
            raise SnapshotNotFoundError(str(self.data_file)) from e
        except OSError as e:
            raise SnapshotFilesystemError(str(self.data_file), 'read', str(e)) from e

        try:
            document = json.loads(content)
        except json.JSONDecodeError as e:
            raise SnapshotCorruptError(str(self.data_file), f"invalid JSON ({e.msg})") from e

        if not isinstance(document, dict):
            raise SnapshotCorruptError(
                str(self.data_file),
                f"expected a JSON object, got {type(document).__name__}"
            )

        return document

    def list_media_files(self) -> List[Path]:
        """Return every media file under the media folder, excluding sidecars."""
        if not self.has_media():
            return []

        return sorted(
            path for path in self.media_folder.rglob("*")
            if path.is_file() and not path.name.endswith(METADATA_FILE_EXT)
        )

    def resolve_content_type(self, file_path: Union[str, Path]) -> str:
        """Return the content type for a media file.

        The sidecar wins when present; otherwise the type is guessed from
        the file extension.

        Raises:
            SnapshotCorruptError: If the sidecar exists but is not valid JSON
        """
        metadata_path = sidecar_path(file_path)
        if metadata_path.is_file():
            return self._read_sidecar(metadata_path)

        content_type, _ = mimetypes.guess_type(str(file_path))
        return content_type or DEFAULT_CONTENT_TYPE

    def resolve_media_upload(self, file_path: Union[str, Path]) -> MediaUpload:
        """Work out the blob key and content type for a media file.

        With a sidecar the key is the path relative to the media folder.
        Without one the key is cut at the first "." of that relative path,
        which is how blobs without metadata were named historically.
        Dropping a sidecar therefore changes the blob key on re-upload.
        """
        file_path = Path(file_path)
        relative_key = file_path.relative_to(self.media_folder).as_posix()
        has_sidecar = sidecar_path(file_path).is_file()

        if has_sidecar:
            key = relative_key
        else:
            key = relative_key.split(".")[0]

        return MediaUpload(
            path=file_path,
            key=key,
            content_type=self.resolve_content_type(file_path),
            has_sidecar=has_sidecar,
        )

    def _read_sidecar(self, metadata_path: Path) -> str:
        try:
            with open(metadata_path, 'r', encoding='utf-8') as f:
                metadata = json.load(f)
        except json.JSONDecodeError as e:
            raise SnapshotCorruptError(str(metadata_path), f"invalid JSON ({e.msg})") from e
        except OSError as e:
            raise SnapshotFilesystemError(str(metadata_path), 'read', str(e)) from e

        if not isinstance(metadata, dict) or not metadata.get('contentType'):
            raise SnapshotCorruptError(str(metadata_path), "missing contentType")
        return metadata['contentType']
