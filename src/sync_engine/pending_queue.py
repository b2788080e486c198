"""FIFO queue of local changes awaiting confirmation by the remote store.

The queue lives in the persisted sync record, so it survives restarts.
Entries are immutable and are only removed once the remote has confirmed
them (ack/remove). Delivery is at-least-once: a crash after a remote write
but before the acknowledgement leaves the entry queued, and the push logic
treats a repeated write of identical content as already applied.
"""

import logging
from typing import Iterable, List, Set

from .models import PendingChange
from .sync_state_store import PENDING_KEY, SyncStateStore

logger = logging.getLogger(__name__)


class PendingChangeQueue:
    """Strictly ordered queue of PendingChange entries.

    Example:
        >>> queue = PendingChangeQueue(SyncStateStore(cache))
        >>> queue.enqueue(PendingChange(ChangeType.UPDATE, "rules"))
        0
        >>> [change.target_id for change in queue.drain_all()]
        ['rules']
    """

    def __init__(self, state_store: SyncStateStore):
        self._state_store = state_store

    def enqueue(self, change: PendingChange) -> int:
        """Append a change.

        Returns:
            Index of the change in the queue
        """
        positions: List[int] = []

        def _append(record):
            record[PENDING_KEY].append(change.to_record())
            positions.append(len(record[PENDING_KEY]) - 1)

        self._state_store.update_record(_append)
        logger.debug(
            f"Queued {change.change_type.value} of {change.kind.value} "
            f"'{change.target_id}' at position {positions[0]}"
        )
        return positions[0]

    def drain_all(self) -> List[PendingChange]:
        """Return every queued change in order without removing any."""
        return [
            PendingChange.from_record(record)
            for record in self._state_store.pending_records()
        ]

    def ack(self, up_to_index: int) -> int:
        """Remove the confirmed prefix of the queue (inclusive).

        Returns:
            Number of removed entries
        """
        if up_to_index < 0:
            return 0
        removed: List[int] = []

        def _truncate(record):
            pending = record[PENDING_KEY]
            count = min(up_to_index + 1, len(pending))
            del pending[:count]
            removed.append(count)

        self._state_store.update_record(_truncate)
        return removed[0]

    def remove(self, change_ids: Iterable[str]) -> int:
        """Remove specific confirmed entries, keeping the order of the rest.

        Returns:
            Number of removed entries
        """
        targets = set(change_ids)
        if not targets:
            return 0
        return self._remove_where(lambda record: record.get("changeId") in targets)

    def discard_target(self, target_id: str) -> int:
        """Drop every queued change for one item (it became obsolete).

        Returns:
            Number of removed entries
        """
        count = self._remove_where(lambda record: record.get("targetId") == target_id)
        if count:
            logger.info(f"Discarded {count} obsolete pending change(s) for '{target_id}'")
        return count

    def change_ids_for(self, target_id: str) -> List[str]:
        """Ids of the changes currently queued for one item, in order."""
        return [
            record.get("changeId")
            for record in self._state_store.pending_records()
            if record.get("targetId") == target_id
        ]

    def pending_ids(self) -> Set[str]:
        """Ids of every item with at least one queued change."""
        return {record["targetId"] for record in self._state_store.pending_records()}

    def __len__(self) -> int:
        return len(self._state_store.pending_records())

    def _remove_where(self, predicate) -> int:
        removed: List[int] = []

        def _filter(record):
            pending = record[PENDING_KEY]
            kept = [entry for entry in pending if not predicate(entry)]
            removed.append(len(pending) - len(kept))
            record[PENDING_KEY] = kept

        self._state_store.update_record(_filter)
        return removed[0]
