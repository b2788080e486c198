"""Typed exception hierarchy for CLI-related errors.

All exceptions inherit from CLIError and include descriptive messages with
context to help with debugging.
"""

from src.remote_store.errors import SyncError


class CLIError(SyncError):
    """Base exception for all CLI-related errors."""
    pass


class ConfigNotFoundError(CLIError):
    """Raised when configuration file is not found."""

    def __init__(self, config_path: str):
        super().__init__(
            f"Configuration file not found at {config_path}"
        )
        self.config_path = config_path


class InvalidOptionError(CLIError):
    """Raised when a command-line option value cannot be used."""

    def __init__(self, option: str, value: str, reason: str):
        super().__init__(f"Invalid value '{value}' for {option}: {reason}")
        self.option = option
        self.value = value
        self.reason = reason


class PendingChangesError(CLIError):
    """Raised when an operation would discard unpushed local changes."""

    def __init__(self, count: int):
        super().__init__(
            f"{count} local change(s) have not been pushed yet; "
            f"run a sync before clearing the cache"
        )
        self.count = count
