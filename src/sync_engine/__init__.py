"""Sync engine for developer portal content.

Composes the content catalog client, the media blob client and the
snapshot store into capture, generate, cleanup and publish operations.
"""

from .engine import SyncEngine
from .models import OperationSummary
from .errors import ValidationError

__all__ = [
    'SyncEngine',
    'OperationSummary',
    'ValidationError',
]
