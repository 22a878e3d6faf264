"""Sync engine orchestration.

This module provides the SyncEngine class that composes the content
catalog client, the media blob client and the snapshot store into the
high-level operations:

    capture   service -> snapshot (content first, then media)
    generate  snapshot -> service (content first, then media)
    cleanup   delete every content item, then every media blob
    publish   upsert a current portal revision

Each operation is a fixed sequence of phases. A failing phase aborts the
operation; nothing is rolled back, and every write is an idempotent upsert
or delete, so re-running an interrupted operation converges.
"""

import logging
import re
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from src.blob_transfer.blob_client import BlobTransferClient
from src.portal_client.content_client import RemoteContentClient
from src.portal_client.errors import NotFoundError, error_context
from src.portal_client.models import PortalRevision, PutContentItemRequest
from src.snapshot.errors import SnapshotCorruptError
from src.snapshot.snapshot_store import SnapshotStore

from .errors import ValidationError
from .models import OperationSummary

logger = logging.getLogger(__name__)

GTM_CONTAINER_ID_PATTERN = re.compile(r'^GTM-[A-Z0-9]+$')
CONFIGURATION_CONTENT_TYPE = "document"
CONFIGURATION_ITEM_ID = "configuration"
URL_CONTENT_TYPE = "url"


class SyncEngine:
    """Orchestrates capture, generate, cleanup and publish for one service.

    The engine holds no state between calls apart from its collaborators.
    It is not safe to run two operations against the same service or
    snapshot folder at the same time; no locking is performed.

    Example:
        >>> engine = SyncEngine(content_client, blob_client, SnapshotStore("./snapshot"))
        >>> engine.capture()
        >>> engine.generate()
        >>> engine.publish()
    """

    def __init__(
        self,
        content_client: RemoteContentClient,
        blob_client: BlobTransferClient,
        snapshot_store: Optional[SnapshotStore] = None,
    ):
        self._content = content_client
        self._blobs = blob_client
        self._store = snapshot_store

    @property
    def snapshot_store(self) -> SnapshotStore:
        if self._store is None:
            raise ValidationError("a snapshot folder is required for this operation", "folder")
        return self._store

    # ------------------------------------------------------------------
    # capture
    # ------------------------------------------------------------------

    def capture(self) -> OperationSummary:
        """Export content and media from the service into the snapshot."""
        logger.info("Exporting...")
        summary = OperationSummary()
        with error_context("Unable to complete export."):
            summary.content_items = self.capture_content()
            summary.media_files = self.download_media()
        return summary

    def capture_content(self) -> int:
        """Read the whole catalog and write it to data.json.

        Returns:
            Number of content items written
        """
        store = self.snapshot_store
        document: Dict[str, dict] = {}

        with error_context("Unable to capture content."):
            for content_type in self._content.list_content_types():
                items = self._content.list_content_items(content_type)
                logger.info(f"Captured {len(items)} item(s) of type '{content_type}'")
                for item in items:
                    document[item.id] = item.to_snapshot_value()

            store.write(document)

        return len(document)

    def download_media(self) -> int:
        """Download every media blob into the snapshot media folder."""
        store = self.snapshot_store
        count = 0

        with error_context("Unable to download media files."):
            grant = self._blobs.acquire_access_grant()
            with self._blobs.open_container(grant):
                for blob in self._blobs.list_blobs(grant):
                    destination = self._media_destination(store, blob.key)
                    self._blobs.download_blob(grant, blob.key, destination, blob.content_type)
                    count += 1

        logger.info(f"Downloaded {count} media file(s)")
        return count

    # ------------------------------------------------------------------
    # generate
    # ------------------------------------------------------------------

    def generate(self) -> OperationSummary:
        """Import content and media from the snapshot into the service."""
        logger.info("Importing...")
        summary = OperationSummary()
        with error_context("Unable to complete import."):
            summary.content_items = self.generate_content()
            summary.media_files = self.upload_media()
        return summary

    def generate_content(self) -> int:
        """Upsert every item of data.json, in document order.

        The document key is used as the full resource id; the content type
        is part of that path and never looked up separately.

        Returns:
            Number of content items written
        """
        store = self.snapshot_store

        with error_context("Unable to generate the content."):
            document = store.read()
            for resource_id, value in document.items():
                if not isinstance(value, dict):
                    raise SnapshotCorruptError(
                        str(store.data_file),
                        f"item {resource_id} is not a JSON object"
                    )
                request = PutContentItemRequest.from_snapshot_value(value)
                self._content.put_resource(resource_id, request)
                logger.debug(f"Updated {resource_id}")

        logger.info(f"Generated {len(document)} content item(s)")
        return len(document)

    def upload_media(self) -> int:
        """Upload every snapshot media file; skipped if there is no media folder."""
        store = self.snapshot_store

        if not store.has_media():
            logger.info("No media files found in the snapshot folder. Skipping media upload...")
            return 0

        count = 0
        with error_context("Unable to upload media files."):
            grant = self._blobs.acquire_access_grant()
            with self._blobs.open_container(grant):
                for file_path in store.list_media_files():
                    upload = store.resolve_media_upload(file_path)
                    if not upload.has_sidecar:
                        logger.debug(
                            f"No metadata for {file_path}, uploading as '{upload.key}' ({upload.content_type})"
                        )
                    self._blobs.upload_blob(grant, upload.key, upload.path, upload.content_type)
                    count += 1

        logger.info(f"Uploaded {count} media file(s)")
        return count

    # ------------------------------------------------------------------
    # cleanup
    # ------------------------------------------------------------------

    def cleanup(self, ignore_missing: bool = False) -> OperationSummary:
        """Delete all content items and media blobs from the service.

        Args:
            ignore_missing: Treat items that disappear between listing and
                delete as skipped instead of failing the run
        """
        logger.info("Cleaning up...")
        summary = OperationSummary()
        with error_context("Unable to complete cleanup."):
            self.delete_content(summary, ignore_missing)
            summary.deleted_blobs = self.delete_media()
        return summary

    def delete_content(self, summary: OperationSummary, ignore_missing: bool = False) -> None:
        # No bulk delete exists; list each type and delete item by item.
        with error_context("Unable to delete content."):
            for content_type in self._content.list_content_types():
                for item in self._content.list_content_items(content_type):
                    try:
                        self._content.delete_content_item(item.id)
                    except NotFoundError:
                        if not ignore_missing:
                            raise
                        logger.warning(f"Content item {item.id} already deleted, skipping")
                        summary.skipped += 1
                        continue
                    summary.deleted_items += 1

        logger.info(f"Deleted {summary.deleted_items} content item(s)")

    def delete_media(self) -> int:
        count = 0
        with error_context("Unable to delete media files."):
            grant = self._blobs.acquire_access_grant()
            with self._blobs.open_container(grant):
                # Materialize the listing before deleting from the same container.
                for blob in list(self._blobs.list_blobs(grant)):
                    self._blobs.delete_blob(grant, blob.key)
                    count += 1

        logger.info(f"Deleted {count} media file(s)")
        return count

    # ------------------------------------------------------------------
    # publish and content mutations
    # ------------------------------------------------------------------

    def publish(self, now: Optional[datetime] = None) -> PortalRevision:
        """Schedule publishing by upserting a current portal revision.

        The revision id has second granularity, so publishing twice in the
        same second upserts the same revision.
        """
        revision = PortalRevision.from_timestamp(now or datetime.now(UTC))
        self._content.put_portal_revision(revision)
        logger.info(f"Published revision {revision.revision_id}")
        return revision

    def apply_gtm(self, gtm_container_id: str) -> None:
        """Set the Google Tag Manager container on every configuration node.

        Raises:
            ValidationError: If the container id is not of the form GTM-XXXXXX
        """
        if not gtm_container_id or not GTM_CONTAINER_ID_PATTERN.match(gtm_container_id):
            raise ValidationError(
                f"'{gtm_container_id}'. Expected format: GTM-XXXXXX (e.g., GTM-ABC123)",
                "gtm_container_id",
            )

        with error_context("Unable to apply gtm tag."):
            config = self._content.get_content_item(
                CONFIGURATION_CONTENT_TYPE, CONFIGURATION_ITEM_ID
            )
            nodes = config.properties.get('nodes') or []
            new_nodes = [
                {
                    **node,
                    'integration': {
                        'googleTagManager': {'containerId': gtm_container_id}
                    },
                }
                for node in nodes
            ]
            properties = {**config.properties, 'nodes': new_nodes}
            self._content.put_content_item(
                CONFIGURATION_CONTENT_TYPE,
                CONFIGURATION_ITEM_ID,
                PutContentItemRequest(properties=properties),
            )

        logger.info(f"Applied GTM container {gtm_container_id} to {len(new_nodes)} node(s)")

    def update_content_urls(
        self,
        existing_urls: Sequence[str],
        replacement_urls: Sequence[str],
    ) -> List[str]:
        """Replace url item permalinks pairwise.

        Returns:
            Resource ids of the updated url items

        Raises:
            ValidationError: If the two lists differ in length
        """
        if len(existing_urls) != len(replacement_urls):
            raise ValidationError(
                f"existing and replacement URL counts differ "
                f"({len(existing_urls)} != {len(replacement_urls)})",
                "replacement_urls",
            )

        replacements = dict(zip(existing_urls, replacement_urls))
        updated: List[str] = []

        with error_context("Unable to update URL."):
            items = self._content.list_content_items(URL_CONTENT_TYPE)
            logger.info(f"Number of urls found in portal: {len(items)}")

            for item in items:
                permalink = item.properties.get('permalink')
                if permalink not in replacements:
                    continue
                properties = {**item.properties, 'permalink': replacements[permalink]}
                self._content.put_resource(item.id, PutContentItemRequest(properties=properties))
                logger.info(f"Updated URL {permalink} -> {replacements[permalink]}")
                updated.append(item.id)

        return updated

    def _media_destination(self, store: SnapshotStore, key: str) -> Path:
        media_root = store.media_folder.resolve()
        destination = (store.media_folder / key).resolve()
        if not destination.is_relative_to(media_root):
            raise ValidationError(f"blob key '{key}' escapes the media folder", "key")
        return store.media_folder / key
