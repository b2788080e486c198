"""Command-line interface for the offline wiki sync engine.

This package provides the `wiki-sync` CLI tool that loads configuration,
builds the sync engine and runs single or scheduled sync cycles with
progress indication and exit codes describing the outcome.
"""

from .errors import (
    CLIError,
    ConfigNotFoundError,
    InvalidOptionError,
    PendingChangesError,
)
from .models import ExitCode
from .output import OutputHandler
from .sync_command import SyncCommand

__all__ = [
    'SyncCommand',
    'OutputHandler',
    'ExitCode',
    'CLIError',
    'ConfigNotFoundError',
    'InvalidOptionError',
    'PendingChangesError',
]
