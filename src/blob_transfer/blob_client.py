"""Media blob transfer against the portal's Azure Blob Storage container.

The media container is only reachable through a short-lived SAS URL
issued by the management API. A grant is acquired once per high-level
operation and passed explicitly to every call, so it is never reused
across capture, generate and cleanup runs.
"""

import json
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union

from azure.core.exceptions import AzureError
from azure.storage.blob import ContainerClient, ContentSettings

from src.portal_client.content_client import RemoteContentClient
from src.portal_client.models import StorageAccessGrant
from src.snapshot.snapshot_store import DEFAULT_CONTENT_TYPE, sidecar_path

from .errors import BlobTransferError
from .models import MediaBlob

logger = logging.getLogger(__name__)

MEDIA_CONTAINER_NAME = "content"


class BlobTransferClient:
    """List, download, upload and delete portal media blobs.

    Example:
        >>> blobs = BlobTransferClient(content_client)
        >>> grant = blobs.acquire_access_grant()
        >>> with blobs.open_container(grant):
        ...     for blob in blobs.list_blobs(grant):
        ...         blobs.download_blob(grant, blob.key, media_folder / blob.key, blob.content_type)
    """

    def __init__(self, content_client: RemoteContentClient):
        self._content_client = content_client
        self._open_containers: Dict[StorageAccessGrant, ContainerClient] = {}

    def acquire_access_grant(self) -> StorageAccessGrant:
        """Ask the management API for a fresh media container SAS URL."""
        grant = self._content_client.list_media_secrets()
        logger.debug(f"Acquired access grant for media container '{MEDIA_CONTAINER_NAME}'")
        return grant

    @contextmanager
    def open_container(self, grant: StorageAccessGrant) -> Iterator[ContainerClient]:
        """Hold one container client open for every call made with this grant.

        The client and its connection pool are closed when the block exits.

        Example:
            >>> with blobs.open_container(grant):
            ...     for blob in blobs.list_blobs(grant):
            ...         blobs.delete_blob(grant, blob.key)
        """
        container = ContainerClient.from_container_url(grant.container_sas_url)
        self._open_containers[grant] = container
        try:
            yield container
        finally:
            del self._open_containers[grant]
            container.close()

    @contextmanager
    def _container(self, grant: StorageAccessGrant) -> Iterator[ContainerClient]:
        container = self._open_containers.get(grant)
        if container is not None:
            yield container
            return
        # Single call outside open_container: short-lived client.
        with self.open_container(grant) as container:
            yield container

    def list_blobs(self, grant: StorageAccessGrant) -> Iterator[MediaBlob]:
        """Lazily enumerate every blob in the media container.

        Raises:
            BlobTransferError: If the listing fails at any page
        """
        try:
            with self._container(grant) as container:
                for blob in container.list_blobs():
                    content_settings = getattr(blob, 'content_settings', None)
                    content_type = content_settings.content_type if content_settings else None
                    yield MediaBlob(key=blob.name, content_type=content_type)
        except AzureError as e:
            raise BlobTransferError("Unable to list media files", cause=e) from e

    def download_blob(
        self,
        grant: StorageAccessGrant,
        key: str,
        destination: Union[str, Path],
        content_type: Optional[str] = None,
    ) -> Path:
        """Download a blob to a local file and write its .info sidecar.

        Args:
            grant: Media container access grant
            key: Blob name
            destination: Local file path; missing parent folders are created
            content_type: Content type from the listing; read from the
                download properties when omitted

        Returns:
            The destination path

        Raises:
            BlobTransferError: If the download or local write fails
        """
        destination = Path(destination)
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            with self._container(grant) as container:
                downloader = container.download_blob(key)
                with open(destination, 'wb') as f:
                    downloader.readinto(f)

            if content_type is None:
                content_type = downloader.properties.content_settings.content_type
            metadata = {'contentType': content_type or DEFAULT_CONTENT_TYPE}
            with open(sidecar_path(destination), 'w', encoding='utf-8') as f:
                json.dump(metadata, f)
        except (AzureError, OSError) as e:
            raise BlobTransferError("Unable to download media file", key=key, cause=e) from e

        logger.debug(f"Downloaded {key}")
        return destination

    def upload_blob(
        self,
        grant: StorageAccessGrant,
        key: str,
        source: Union[str, Path],
        content_type: str,
    ) -> None:
        """Upload a local file as a blob, overwriting any existing one.

        Raises:
            BlobTransferError: If the file cannot be read or the upload fails
        """
        try:
            with open(source, 'rb') as data, self._container(grant) as container:
                container.upload_blob(
                    name=key,
                    data=data,
                    overwrite=True,
                    content_settings=ContentSettings(content_type=content_type),
                )
        except (AzureError, OSError) as e:
            raise BlobTransferError("Unable to upload media file", key=key, cause=e) from e

        logger.debug(f"Uploaded {key} ({content_type})")

    def delete_blob(self, grant: StorageAccessGrant, key: str) -> None:
        """Delete a blob.

        Raises:
            BlobTransferError: If the delete fails
        """
        try:
            with self._container(grant) as container:
                container.delete_blob(key)
        except AzureError as e:
            raise BlobTransferError("Unable to delete media file", key=key, cause=e) from e

        logger.debug(f"Deleted {key}")
