"""Data models for the developer portal management API.

All models use dataclasses for clean, type-safe data structures,
following the patterns used across the rest of the package.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

DEFAULT_API_VERSION = "2021-08-01"
DEFAULT_MANAGEMENT_ENDPOINT = "management.azure.com"
CONTENT_TYPES_PREFIX = "/contentTypes/"


@dataclass(frozen=True)
class ServiceConfig:
    """Identifies one API Management service instance.

    Attributes:
        subscription_id: Azure subscription ID
        resource_group_name: Resource group containing the service
        service_name: API Management service name
        api_version: Management API version appended to every request
        management_endpoint: Host of the Azure management plane
    """
    subscription_id: str
    resource_group_name: str
    service_name: str
    api_version: str = DEFAULT_API_VERSION
    management_endpoint: str = DEFAULT_MANAGEMENT_ENDPOINT

    @property
    def base_url(self) -> str:
        return (
            f"https://{self.management_endpoint}"
            f"/subscriptions/{self.subscription_id}"
            f"/resourceGroups/{self.resource_group_name}"
            f"/providers/Microsoft.ApiManagement/service/{self.service_name}"
        )


@dataclass
class ContentItem:
    """A single content item as returned by the catalog.

    Attributes:
        id: Catalog-scoped resource id, e.g. /contentTypes/page/contentItems/home
        payload: Everything else the service returned (type, name, properties)
    """
    id: str
    payload: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> 'ContentItem':
        payload = {key: value for key, value in data.items() if key != 'id'}
        return cls(id=data['id'], payload=payload)

    @property
    def properties(self) -> Dict[str, Any]:
        return self.payload.get('properties') or {}

    def to_snapshot_value(self) -> Dict[str, Any]:
        """Return the snapshot representation (the id is the document key)."""
        return dict(self.payload)


@dataclass(frozen=True)
class PutContentItemRequest:
    """Request body for an upsert; always carries a properties bag.

    Built once from a snapshot value, so the wire shape never depends on
    inspecting arbitrary payloads at call time.
    """
    properties: Dict[str, Any]

    @classmethod
    def from_snapshot_value(cls, value: Dict[str, Any]) -> 'PutContentItemRequest':
        """Build a request from a snapshot value.

        Values captured from the service carry their bag under 'properties';
        anything else is treated as the bag itself. Top-level fields next to
        the bag (type, name) are read-only on the service and are not sent.
        """
        properties = value.get('properties')
        if isinstance(properties, dict):
            return cls(properties=properties)
        return cls(properties=dict(value))

    def to_body(self) -> Dict[str, Any]:
        return {'properties': self.properties}


@dataclass(frozen=True)
class StorageAccessGrant:
    """Short-lived SAS URL for the portal media container. Never persisted."""
    container_sas_url: str

    def __repr__(self) -> str:
        return "StorageAccessGrant(container_sas_url=***)"


@dataclass(frozen=True)
class PortalRevision:
    """A portal revision marker; publishing upserts one with isCurrent set."""
    revision_id: str
    description: str
    is_current: bool = True

    @classmethod
    def from_timestamp(cls, timestamp: datetime) -> 'PortalRevision':
        # Second granularity: two publishes in the same second share an id.
        revision_id = timestamp.strftime("%Y%m%d%H%M%S")
        return cls(revision_id=revision_id, description=f"Migration {revision_id}.")

    def to_body(self) -> Dict[str, Any]:
        return {
            'properties': {
                'description': self.description,
                'isCurrent': self.is_current,
            }
        }
