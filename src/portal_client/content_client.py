"""Typed operations over the developer portal content catalog.

The catalog is organised as content types (page, document, url, ...),
each holding content items addressed by resource ids of the form
/contentTypes/<type>/contentItems/<name>. Listing is paginated through
continuation links; writes are unconditional upserts.
"""

import logging
from typing import Any, Dict, List, Optional

from .errors import UnhandledError, error_context
from .http_client import ManagementHttpClient, sanitize_credentials
from .models import (
    CONTENT_TYPES_PREFIX,
    ContentItem,
    PortalRevision,
    PutContentItemRequest,
    StorageAccessGrant,
)

logger = logging.getLogger(__name__)

# The service returns very large document items; fetch them one per page.
DOCUMENT_CONTENT_TYPE = "document"
DOCUMENT_PAGE_SIZE = 1


class RemoteContentClient:
    """Content catalog client built on ManagementHttpClient.

    Example:
        >>> client = RemoteContentClient(http_client)
        >>> for content_type in client.list_content_types():
        ...     items = client.list_content_items(content_type)
    """

    def __init__(self, http_client: ManagementHttpClient):
        self._http = http_client

    def list_content_types(self) -> List[str]:
        """Return the ids of all content types, e.g. ["page", "document"]."""
        with error_context("Unable to fetch content types."):
            data = _expect_object(self._http.send_request("GET", "/contentTypes"), "/contentTypes")
            return [
                entry['id'].replace(CONTENT_TYPES_PREFIX, "")
                for entry in data.get('value', [])
            ]

    def list_content_items(self, content_type: str) -> List[ContentItem]:
        """Return every content item of a type, following next-page links.

        Pagination stops when the service omits nextLink or returns an
        empty page. Document items are requested one per page.

        Args:
            content_type: Content type, e.g. "page"

        Returns:
            All items across all pages, in page order
        """
        params: Optional[Dict[str, Any]] = None
        if content_type == DOCUMENT_CONTENT_TYPE:
            params = {'$top': DOCUMENT_PAGE_SIZE}

        items: List[ContentItem] = []
        next_page_url: Optional[str] = f"/contentTypes/{content_type}/contentItems"
        pages = 0

        with error_context("Unable to fetch content items."):
            while next_page_url:
                data = _expect_object(
                    self._http.send_request("GET", next_page_url, params=params), next_page_url
                )
                page = data.get('value', [])
                items.extend(ContentItem.from_api(entry) for entry in page)
                pages += 1

                next_link = data.get('nextLink')
                if page and next_link:
                    next_page_url = next_link
                    # The continuation link carries its own query string.
                    params = None
                else:
                    next_page_url = None

        logger.debug(f"Fetched {len(items)} {content_type} item(s) in {pages} page(s)")
        return items

    def get_content_item(self, content_type: str, item_id: str) -> ContentItem:
        """Fetch a single content item.

        Raises:
            NotFoundError: If the item does not exist
        """
        with error_context("Unable to fetch content item."):
            url = f"/contentTypes/{content_type}/contentItems/{item_id}"
            data = _expect_object(self._http.send_request("GET", url), url)
            return ContentItem.from_api(data)

    def put_content_item(
        self,
        content_type: str,
        item_id: str,
        request: PutContentItemRequest,
    ) -> Any:
        """Upsert a content item addressed by type and name."""
        return self.put_resource(
            f"/contentTypes/{content_type}/contentItems/{item_id}", request
        )

    def put_resource(self, resource_id: str, request: PutContentItemRequest) -> Any:
        """Upsert a content item addressed by its full resource id.

        The request always goes out with If-Match: * so replays never fail
        on concurrency preconditions.
        """
        with error_context("Unable to update content item."):
            return self._http.send_request(
                "PUT", _resource_path(resource_id), body=request.to_body()
            )

    def delete_content_item(self, resource_id: str) -> None:
        """Delete a content item by its full resource id.

        Raises:
            NotFoundError: If the item is already gone
        """
        with error_context("Unable to delete content item."):
            self._http.send_request("DELETE", _resource_path(resource_id))

    def list_media_secrets(self) -> StorageAccessGrant:
        """Fetch a fresh SAS URL for the portal media container."""
        with error_context("Unable to fetch media storage access."):
            url = "/portalSettings/mediaContent/listSecrets"
            data = _expect_object(self._http.send_request("POST", url), url)
            return StorageAccessGrant(container_sas_url=data['containerSasUrl'])

    def put_portal_revision(self, revision: PortalRevision) -> Any:
        with error_context("Unable to schedule website publishing."):
            return self._http.send_request(
                "PUT", f"/portalRevisions/{revision.revision_id}", body=revision.to_body()
            )


def _resource_path(resource_id: str) -> str:
    return "/" + resource_id.lstrip("/")


def _expect_object(data: Any, url: str) -> Dict[str, Any]:
    # A success status with an empty or non-JSON body decodes to text.
    if not isinstance(data, dict):
        raise UnhandledError(
            200, "Unexpected response body", url,
            details=sanitize_credentials(str(data)[:200]),
        )
    return data
