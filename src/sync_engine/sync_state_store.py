"""Persistence of the sync record shared by the state and the queue.

The cache `sync` namespace holds one record, `state`, containing both the
SyncState fields and the pending change list. Every mutation goes through
LocalCacheStore.update, so state and queue changes are applied as one atomic
read-modify-write and never overwrite each other.
"""

import logging
from typing import Any, Callable, Dict, List

from src.cache_store import LocalCacheStore
from .models import SyncEvent, SyncState

logger = logging.getLogger(__name__)

PENDING_KEY = "pendingChanges"


class SyncStateStore:
    """Read and atomically update the persisted sync record."""

    def __init__(self, cache: LocalCacheStore):
        self.cache = cache

    def load_record(self) -> Dict[str, Any]:
        return self.cache.get(LocalCacheStore.SYNC, LocalCacheStore.SYNC_KEY) or {}

    def update_record(self, mutate: Callable[[Dict[str, Any]], Any]) -> Dict[str, Any]:
        """Apply mutate to the raw record in place, atomically.

        Returns:
            The record as written
        """
        def _apply(current):
            record = dict(current or {})
            record.setdefault(PENDING_KEY, [])
            mutate(record)
            return record

        return self.cache.update(LocalCacheStore.SYNC, LocalCacheStore.SYNC_KEY, _apply)

    def load(self) -> SyncState:
        return SyncState.from_record(self.load_record())

    def update(self, mutate: Callable[[SyncState], Any]) -> SyncState:
        """Apply mutate to a SyncState view and persist it, atomically.

        The pending change list is carried over untouched.
        """
        result: List[SyncState] = []

        def _apply(record: Dict[str, Any]) -> None:
            state = SyncState.from_record(record)
            mutate(state)
            record.update(state.to_record())
            result.append(state)

        self.update_record(_apply)
        return result[0]

    def add_event(self, event: SyncEvent) -> None:
        """Append an event to the bounded history."""
        self.update(lambda state: state.add_event(event))

    def pending_records(self) -> List[Dict[str, Any]]:
        return list(self.load_record().get(PENDING_KEY, []))
