"""Command-line interface for developer portal content sync.

This package provides the `portal-sync` CLI tool that wires the portal
client, media blob client and snapshot store into the sync engine and
exposes capture, generate, cleanup, publish and content mutation commands.
"""

from .config import ConfigLoader
from .models import ExitCode, SyncSettings
from .errors import (
    CLIError,
    ConfigNotFoundError,
    ConfigError,
)

__all__ = [
    'ConfigLoader',
    'ExitCode',
    'SyncSettings',
    'CLIError',
    'ConfigNotFoundError',
    'ConfigError',
]
