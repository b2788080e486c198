"""Typed exception hierarchy for sync engine errors.

All exceptions inherit from SyncEngineError (a SyncError). Structural errors
abort a whole sync cycle; the other errors are per-item outcomes.
"""

from typing import Optional

from src.remote_store.errors import SyncError


class SyncEngineError(SyncError):
    """Base exception for all sync engine errors."""
    pass


class StructuralSyncError(SyncEngineError):
    """Raised when a cycle cannot proceed at all.

    Examples are an unreadable table of contents or an unreachable remote
    store. The cycle aborts immediately and the failure is recorded.

    Attributes:
        phase: Cycle phase that failed (load, resolve, pull, push, finalize)
        reason: Underlying error description
    """

    def __init__(self, phase: str, reason: Optional[str] = None):
        message = f"Sync cycle aborted during {phase}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.phase = phase
        self.reason = reason


class ManualResolutionRequired(SyncEngineError):
    """Terminal per-item state: an operator has to resolve the conflict.

    Attributes:
        item_id: Id of the page or category on hold
        reason: Why automatic resolution was not possible
    """

    def __init__(self, item_id: str, reason: str):
        super().__init__(f"Manual resolution required for '{item_id}': {reason}")
        self.item_id = item_id
        self.reason = reason


class ConflictAlreadyResolvedError(SyncEngineError):
    """Raised when a second resolution is assigned to a ConflictItem."""

    def __init__(self, item_id: str, resolution: str):
        super().__init__(
            f"Conflict '{item_id}' is already resolved ({resolution})"
        )
        self.item_id = item_id
        self.resolution = resolution


class UnknownStrategyError(SyncEngineError):
    """Raised when a strategy name does not match any known strategy."""

    def __init__(self, name: str):
        super().__init__(
            f"Unknown strategy '{name}' "
            f"(expected local-wins, remote-wins, merge or manual)"
        )
        self.name = name
