"""Typed exception hierarchy for local cache errors.

All exceptions inherit from CacheStoreError (a SyncError) and carry the
namespace, key and operation that failed.
"""

from typing import Optional

from src.remote_store.errors import SyncError


class CacheStoreError(SyncError):
    """Base exception for all local cache errors."""
    pass


class StorageError(CacheStoreError):
    """Raised when local persistence fails.

    Fatal to the current operation only; callers decide whether the failure
    aborts a larger unit of work.

    Attributes:
        namespace: Cache namespace being accessed
        key: Record key (None for namespace-level operations)
        operation: Operation that failed (read, write, delete, list, init)
        reason: Underlying error description
    """

    def __init__(
        self,
        namespace: str,
        key: Optional[str],
        operation: str,
        reason: Optional[str] = None,
    ):
        target = f"{namespace}/{key}" if key is not None else namespace
        message = f"Cache operation '{operation}' failed for {target}"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.namespace = namespace
        self.key = key
        self.operation = operation
        self.reason = reason


class UnknownNamespaceError(CacheStoreError):
    """Raised when a caller addresses a namespace the cache does not define."""

    def __init__(self, namespace: str):
        super().__init__(f"Unknown cache namespace '{namespace}'")
        self.namespace = namespace
