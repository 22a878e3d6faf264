"""Test fixtures for portal sync tests.

This module provides:
- In-memory doubles for the management API and the media blob container
- Sample portal content and snapshot documents
"""

from .fake_portal import FakeManagementApi, FakeBlobContainer, SAS_URL
from .sample_content import (
    SAMPLE_PAGE_HOME,
    SAMPLE_URL_DOCS,
    SAMPLE_CONFIGURATION,
    SAMPLE_SNAPSHOT_DOCUMENT,
)

__all__ = [
    "FakeManagementApi",
    "FakeBlobContainer",
    "SAS_URL",
    "SAMPLE_PAGE_HOME",
    "SAMPLE_URL_DOCS",
    "SAMPLE_CONFIGURATION",
    "SAMPLE_SNAPSHOT_DOCUMENT",
]
