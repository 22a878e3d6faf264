"""Unit tests for sync_engine.engine module.

Most tests run the real RemoteContentClient, BlobTransferClient and
SnapshotStore against in-memory doubles of the management API and the
media container.
"""

import json
from datetime import datetime, UTC

import pytest
from unittest.mock import MagicMock, Mock, patch

from src.blob_transfer.blob_client import BlobTransferClient
from src.blob_transfer.errors import BlobTransferError
from src.portal_client.content_client import RemoteContentClient
from src.portal_client.errors import NotFoundError, UnauthorizedError
from src.portal_client.models import ContentItem
from src.snapshot.errors import SnapshotCorruptError, SnapshotNotFoundError
from src.snapshot.snapshot_store import SnapshotStore, sidecar_path
from src.sync_engine.engine import SyncEngine
from src.sync_engine.errors import ValidationError
from tests.fixtures import (
    FakeBlobContainer,
    FakeManagementApi,
    SAMPLE_CONFIGURATION,
    SAMPLE_SNAPSHOT_DOCUMENT,
    SAMPLE_URL_DOCS,
)


@pytest.fixture
def container_factory():
    with patch('src.blob_transfer.blob_client.ContainerClient') as mock_container_client:
        yield mock_container_client


def use_container(factory, container):
    factory.from_container_url.return_value = container
    return container


def make_engine(api, folder=None):
    content_client = RemoteContentClient(api)
    blob_client = BlobTransferClient(content_client)
    store = SnapshotStore(folder) if folder is not None else None
    return SyncEngine(content_client, blob_client, store)


def seeded_portal():
    api = FakeManagementApi(content_types=["page", "url", "document"])
    for index in range(5):
        api.seed("page", f"page{index}", {"properties": {"title": f"Page {index}"}})
    api.seed("url", "docs", {"properties": {"permalink": "https://docs.example.com"}})
    api.seed("document", "configuration", {"properties": {"nodes": [{"a": 1}]}})
    api.seed("document", "home", {"properties": {"nodes": [{"b": 2}]}})
    return api


def seeded_container():
    container = FakeBlobContainer()
    container.blobs = {
        "logo.png": (b"PNG", "image/png"),
        "docs/guide.pdf": (b"PDF", "application/pdf"),
    }
    return container


class TestCapture:
    """Test cases for capture."""

    def test_capture_writes_flat_document_and_media(self, tmp_path, container_factory):
        use_container(container_factory, seeded_container())
        api = seeded_portal()

        summary = make_engine(api, tmp_path).capture()

        document = json.loads((tmp_path / "data.json").read_text())
        assert set(document) == set(api.items)
        assert document["/contentTypes/url/contentItems/docs"] == {
            "properties": {"permalink": "https://docs.example.com"}
        }
        assert all("id" not in value for value in document.values())
        assert (tmp_path / "media" / "logo.png").read_bytes() == b"PNG"
        assert json.loads((tmp_path / "media" / "docs" / "guide.pdf.info").read_text()) == {
            "contentType": "application/pdf"
        }
        assert summary.content_items == 8
        assert summary.media_files == 2

    def test_capture_pages_through_every_type(self, tmp_path, container_factory):
        use_container(container_factory, FakeBlobContainer())
        api = seeded_portal()

        make_engine(api, tmp_path).capture()

        page_calls = [c for c in api.calls if "contentTypes/page/contentItems" in c[1]]
        # five items, two per page
        assert len(page_calls) == 3

    def test_media_failure_leaves_content_snapshot(self, tmp_path, container_factory):
        container = use_container(container_factory, seeded_container())
        container.download_blob = Mock(side_effect=BlobTransferError("boom"))

        with pytest.raises(BlobTransferError) as exc_info:
            make_engine(seeded_portal(), tmp_path).capture()

        assert (tmp_path / "data.json").exists()
        assert "Unable to download media files." in exc_info.value.__notes__
        assert "Unable to complete export." in exc_info.value.__notes__

    def test_content_failure_writes_nothing(self, tmp_path, container_factory):
        api = Mock()
        api.send_request.side_effect = UnauthorizedError()

        with pytest.raises(UnauthorizedError) as exc_info:
            make_engine(api, tmp_path).capture()

        assert not (tmp_path / "data.json").exists()
        assert exc_info.value.__notes__ == [
            "Unable to fetch content types.",
            "Unable to capture content.",
            "Unable to complete export.",
        ]
        container_factory.from_container_url.assert_not_called()

    def test_blob_key_escaping_media_folder_is_rejected(self, tmp_path, container_factory):
        container = use_container(container_factory, FakeBlobContainer())
        container.blobs = {"../outside.txt": (b"x", "text/plain")}

        with pytest.raises(ValidationError):
            make_engine(FakeManagementApi(), tmp_path).capture()

        assert not (tmp_path / "outside.txt").exists()


class TestGenerate:
    """Test cases for generate."""

    def test_puts_every_item_in_document_order(self, tmp_path, container_factory):
        SnapshotStore(tmp_path).write(SAMPLE_SNAPSHOT_DOCUMENT)
        api = FakeManagementApi()

        summary = make_engine(api, tmp_path).generate()

        puts = [c[1] for c in api.calls if c[0] == "PUT"]
        assert puts == list(SAMPLE_SNAPSHOT_DOCUMENT)
        assert api.items == SAMPLE_SNAPSHOT_DOCUMENT
        assert summary.content_items == 3

    def test_missing_media_folder_skips_upload(self, tmp_path, container_factory):
        SnapshotStore(tmp_path).write(SAMPLE_SNAPSHOT_DOCUMENT)
        api = FakeManagementApi()

        summary = make_engine(api, tmp_path).generate()

        assert summary.media_files == 0
        assert not any(c[0] == "POST" for c in api.calls)
        container_factory.from_container_url.assert_not_called()

    def test_missing_snapshot_raises_not_found(self, tmp_path):
        with pytest.raises(SnapshotNotFoundError) as exc_info:
            make_engine(FakeManagementApi(), tmp_path).generate()

        assert "Unable to generate the content." in exc_info.value.__notes__

    def test_non_object_item_raises_corrupt(self, tmp_path):
        (tmp_path / "data.json").write_text('{"/contentTypes/page/contentItems/x": 5}')

        with pytest.raises(SnapshotCorruptError):
            make_engine(FakeManagementApi(), tmp_path).generate()

    def test_media_key_derivation(self, tmp_path, container_factory):
        container = use_container(container_factory, FakeBlobContainer())
        store = SnapshotStore(tmp_path)
        store.write({})
        store.media_folder.mkdir()
        (store.media_folder / "logo.png").write_bytes(b"LOGO")
        (store.media_folder / "banner.png").write_bytes(b"BANNER")
        sidecar_path(store.media_folder / "banner.png").write_text(
            json.dumps({"contentType": "image/jpeg"})
        )

        summary = make_engine(FakeManagementApi(), tmp_path).generate()

        assert container.blobs == {
            "logo": (b"LOGO", "image/png"),
            "banner.png": (b"BANNER", "image/jpeg"),
        }
        assert summary.media_files == 2

    def test_generate_twice_is_idempotent(self, tmp_path, container_factory):
        container = use_container(container_factory, FakeBlobContainer())
        store = SnapshotStore(tmp_path)
        store.write(SAMPLE_SNAPSHOT_DOCUMENT)
        store.media_folder.mkdir()
        (store.media_folder / "logo.png").write_bytes(b"LOGO")
        api = FakeManagementApi()
        engine = make_engine(api, tmp_path)

        engine.generate()
        first_items, first_blobs = dict(api.items), dict(container.blobs)
        engine.generate()

        assert api.items == first_items
        assert container.blobs == first_blobs

    def test_generate_does_not_publish(self, tmp_path):
        SnapshotStore(tmp_path).write(SAMPLE_SNAPSHOT_DOCUMENT)
        api = FakeManagementApi()

        make_engine(api, tmp_path).generate()

        assert api.revisions == {}


class TestRoundTrip:
    """Capture from one service, generate into an empty one."""

    def test_round_trip_reproduces_catalog(self, tmp_path, container_factory):
        source_api = seeded_portal()
        source_container = use_container(container_factory, seeded_container())
        make_engine(source_api, tmp_path).capture()

        target_api = FakeManagementApi()
        target_container = use_container(container_factory, FakeBlobContainer())
        make_engine(target_api, tmp_path).generate()

        assert target_api.items == source_api.items
        assert target_container.blobs == source_container.blobs


class TestCleanup:
    """Test cases for cleanup."""

    def test_cleanup_empties_service(self, container_factory):
        container = use_container(container_factory, seeded_container())
        api = seeded_portal()
        engine = make_engine(api)

        summary = engine.cleanup()

        client = RemoteContentClient(api)
        for content_type in client.list_content_types():
            assert client.list_content_items(content_type) == []
        assert container.blobs == {}
        assert sorted(container.deleted) == ["docs/guide.pdf", "logo.png"]
        assert summary.deleted_items == 8
        assert summary.deleted_blobs == 2

    def test_cleanup_uses_fresh_grant(self, container_factory):
        use_container(container_factory, FakeBlobContainer())
        api = FakeManagementApi()

        make_engine(api).cleanup()
        make_engine(api).cleanup()

        assert sum(1 for c in api.calls if c[0] == "POST") == 2

    def test_missing_item_fails_by_default(self):
        content_client = Mock()
        content_client.list_content_types.return_value = ["page"]
        content_client.list_content_items.return_value = [ContentItem(id="/contentTypes/page/contentItems/x")]
        content_client.delete_content_item.side_effect = NotFoundError("/x")
        blob_client = MagicMock()

        with pytest.raises(NotFoundError) as exc_info:
            SyncEngine(content_client, blob_client).cleanup()

        assert "Unable to complete cleanup." in exc_info.value.__notes__
        blob_client.acquire_access_grant.assert_not_called()

    def test_missing_item_skipped_when_ignored(self):
        content_client = Mock()
        content_client.list_content_types.return_value = ["page"]
        content_client.list_content_items.return_value = [
            ContentItem(id="/contentTypes/page/contentItems/gone"),
            ContentItem(id="/contentTypes/page/contentItems/here"),
        ]
        content_client.delete_content_item.side_effect = [NotFoundError("/gone"), None]
        blob_client = MagicMock()
        blob_client.list_blobs.return_value = iter([])

        summary = SyncEngine(content_client, blob_client).cleanup(ignore_missing=True)

        assert summary.skipped == 1
        assert summary.deleted_items == 1


class TestContainerLifecycle:
    """One container client per media phase, closed when the phase ends."""

    @staticmethod
    def five_blobs():
        container = FakeBlobContainer()
        container.blobs = {f"img/{index}.png": (b"x", "image/png") for index in range(5)}
        return container

    def test_capture_reuses_one_client(self, tmp_path, container_factory):
        container = use_container(container_factory, self.five_blobs())

        make_engine(FakeManagementApi(), tmp_path).capture()

        assert container_factory.from_container_url.call_count == 1
        assert container.close_calls == 1

    def test_generate_reuses_one_client(self, tmp_path, container_factory):
        container = use_container(container_factory, FakeBlobContainer())
        store = SnapshotStore(tmp_path)
        store.write({})
        store.media_folder.mkdir()
        for index in range(5):
            (store.media_folder / f"{index}.png").write_bytes(b"x")

        make_engine(FakeManagementApi(), tmp_path).generate()

        assert container_factory.from_container_url.call_count == 1
        assert container.close_calls == 1
        assert len(container.blobs) == 5

    def test_cleanup_reuses_one_client(self, container_factory):
        container = use_container(container_factory, self.five_blobs())

        make_engine(FakeManagementApi()).cleanup()

        assert container_factory.from_container_url.call_count == 1
        assert container.close_calls == 1
        assert container.blobs == {}

    def test_client_closed_when_phase_fails(self, tmp_path, container_factory):
        container = use_container(container_factory, self.five_blobs())
        container.blobs["../escape"] = (b"x", None)

        with pytest.raises(ValidationError):
            make_engine(FakeManagementApi(), tmp_path).capture()

        assert container.close_calls == 1


class TestPublish:
    """Test cases for publish."""

    def test_publish_upserts_current_revision(self):
        api = FakeManagementApi()

        revision = make_engine(api).publish(datetime(2024, 6, 1, 12, 30, 45, tzinfo=UTC))

        assert revision.revision_id == "20240601123045"
        assert api.revisions["20240601123045"] == {
            "properties": {"description": "Migration 20240601123045.", "isCurrent": True}
        }

    def test_publish_twice_in_same_second_is_not_an_error(self):
        api = FakeManagementApi()
        engine = make_engine(api)
        now = datetime(2024, 6, 1, 12, 30, 45, tzinfo=UTC)

        engine.publish(now)
        engine.publish(now)

        assert list(api.revisions) == ["20240601123045"]


class TestContentMutations:
    """Test cases for apply_gtm and update_content_urls."""

    def test_apply_gtm_sets_container_on_every_node(self):
        api = FakeManagementApi()
        api.seed("document", "configuration", SAMPLE_CONFIGURATION)

        make_engine(api).apply_gtm("GTM-ABC123")

        nodes = api.items["/contentTypes/document/contentItems/configuration"]["properties"]["nodes"]
        assert len(nodes) == 2
        for node in nodes:
            assert node["integration"] == {"googleTagManager": {"containerId": "GTM-ABC123"}}
        assert nodes[0]["siteSettings"] == {"title": "Developer portal"}

    @pytest.mark.parametrize("container_id", ["", "UA-12345-1", "gtm-abc123", "GTM-"])
    def test_apply_gtm_rejects_malformed_id(self, container_id):
        api = FakeManagementApi()

        with pytest.raises(ValidationError):
            make_engine(api).apply_gtm(container_id)

        assert api.calls == []

    def test_apply_gtm_without_configuration_raises_not_found(self):
        with pytest.raises(NotFoundError) as exc_info:
            make_engine(FakeManagementApi()).apply_gtm("GTM-ABC123")

        assert "Unable to apply gtm tag." in exc_info.value.__notes__

    def test_update_content_urls(self):
        api = FakeManagementApi()
        rid = api.seed("url", "docs", SAMPLE_URL_DOCS)
        api.seed("url", "other", {"properties": {"permalink": "https://keep.example.com"}})

        updated = make_engine(api).update_content_urls(
            ["https://old.example.com/docs"], ["https://new.example.com/docs"]
        )

        assert updated == [rid]
        assert api.items[rid]["properties"]["permalink"] == "https://new.example.com/docs"
        assert api.items[rid]["properties"]["title"] == "Docs"
        assert api.items["/contentTypes/url/contentItems/other"]["properties"]["permalink"] == (
            "https://keep.example.com"
        )

    def test_update_content_urls_count_mismatch(self):
        api = FakeManagementApi()

        with pytest.raises(ValidationError) as exc_info:
            make_engine(api).update_content_urls(["a", "b"], ["c"])

        assert "2 != 1" in str(exc_info.value)
        assert api.calls == []


class TestSnapshotRequirement:
    """Operations that need a snapshot folder."""

    def test_capture_without_folder_raises_validation_error(self):
        with pytest.raises(ValidationError):
            make_engine(FakeManagementApi()).capture()
