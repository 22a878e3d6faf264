"""Data models for CLI operations.

All models use dataclasses for clean, type-safe data structures,
following the patterns established in the client packages.
"""

from dataclasses import dataclass
from enum import IntEnum

from src.portal_client.models import (
    DEFAULT_API_VERSION,
    DEFAULT_MANAGEMENT_ENDPOINT,
    ServiceConfig,
)


class ExitCode(IntEnum):
    """Exit codes for CLI operations.

    - SUCCESS (0): Operation completed successfully
    - GENERAL_ERROR (1): General error (config issues, validation failures)
    - AUTH_ERROR (3): Authentication or authorization failure
    - NETWORK_ERROR (4): Network connectivity or API availability issues

    Example:
        >>> exit_code = ExitCode.SUCCESS
        >>> sys.exit(exit_code)
    """
    SUCCESS = 0
    GENERAL_ERROR = 1
    AUTH_ERROR = 3
    NETWORK_ERROR = 4


@dataclass
class SyncSettings:
    """Resolved settings for one CLI invocation.

    Attributes:
        subscription_id: Azure subscription ID
        resource_group_name: Azure resource group name
        service_name: API Management service name
        folder: Snapshot folder
        api_version: Management API version
        management_endpoint: Azure management plane host
    """
    subscription_id: str
    resource_group_name: str
    service_name: str
    folder: str = "./dist/snapshot"
    api_version: str = DEFAULT_API_VERSION
    management_endpoint: str = DEFAULT_MANAGEMENT_ENDPOINT

    def to_service_config(self) -> ServiceConfig:
        return ServiceConfig(
            subscription_id=self.subscription_id,
            resource_group_name=self.resource_group_name,
            service_name=self.service_name,
            api_version=self.api_version,
            management_endpoint=self.management_endpoint,
        )
