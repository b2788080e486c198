"""Conflict resolution strategies.

This module applies the strategy registered for an item (local-wins,
remote-wins, merge or manual) to each ConflictItem produced by the
ConflictDetector:

- local-wins writes the local version with the remote snapshot's revision as
  the expected revision. On a RevisionConflict the remote is re-fetched and
  the write retried once; a second conflict escalates to manual.
- remote-wins overwrites (or deletes) the cached copy and discards pending
  changes made obsolete by it.
- merge selects the later-modified side of a page, or unions the children of
  a category, and applies the result like the two strategies above.
- manual mutates nothing. The item is put on hold in the sync record and a
  warning event is recorded; held items are skipped by detection until an
  operator clears the hold.

A ConflictItem is resolved at most once; resolving it again is a no-op that
returns the recorded resolution.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, UTC
from typing import Callable, Iterable, Optional

from src.cache_store import LocalCacheStore, StorageError
from src.models.document import Document, format_timestamp
from src.remote_store import (
    DocumentNotFoundError,
    RateLimitedError,
    RemoteAuthError,
    RemoteDocumentStore,
    RevisionConflictError,
    SyncError,
    TransientNetworkError,
)
from src.toc.models import Category, DocumentRef
from .errors import ManualResolutionRequired, StructuralSyncError
from .index_store import IndexStore
from .merge import LOCAL, merge_categories, merge_documents
from .models import (
    ConflictItem,
    ConflictKind,
    ConflictType,
    PendingChange,
    Resolution,
    Strategy,
    SyncEvent,
    SyncEventType,
)
from .pending_queue import PendingChangeQueue
from .strategy_registry import StrategyRegistry
from .sync_state_store import SyncStateStore

logger = logging.getLogger(__name__)

# Failures that make every further remote or local operation pointless
STRUCTURAL_ERRORS = (
    RemoteAuthError,
    TransientNetworkError,
    RateLimitedError,
    StorageError,
    StructuralSyncError,
)


@dataclass
class ResolutionSummary:
    """Counts of one resolve_all run."""
    resolved: int = 0
    manual: int = 0
    failed: int = 0


class ConflictResolver:
    """Applies per-item strategies to ConflictItems."""

    def __init__(
        self,
        cache: LocalCacheStore,
        store: RemoteDocumentStore,
        queue: PendingChangeQueue,
        state_store: SyncStateStore,
        registry: StrategyRegistry,
        index: IndexStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.cache = cache
        self.store = store
        self.queue = queue
        self.state_store = state_store
        self.registry = registry
        self.index = index
        self._clock = clock or (lambda: datetime.now(UTC))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def resolve(self, item: ConflictItem) -> Resolution:
        """Resolve one conflict with the strategy registered for its id.

        Returns:
            The resolution applied (or previously applied)

        Raises:
            Structural errors (auth, network, storage) and unexpected remote
            errors; the item then stays unresolved
        """
        if item.is_resolved:
            logger.debug(f"Conflict '{item.id}' already resolved as {item.resolution.value}")
            return item.resolution

        strategy = self.registry.lookup(item.id)
        logger.info(
            f"Resolving {item.conflict_type.value} conflict on {item.kind.value} "
            f"'{item.id}' with {strategy.value}"
        )

        try:
            if item.kind == ConflictKind.PAGE:
                resolution = self._resolve_page(item, strategy)
            else:
                resolution = self._resolve_category(item, strategy)
        except ManualResolutionRequired as e:
            self._hold(item, e.reason)
            item.mark_resolved(Resolution.MANUAL)
            return Resolution.MANUAL

        if resolution == Resolution.MANUAL:
            self._hold(item, f"strategy is manual ({item.conflict_type.value} conflict)")
        else:
            self.state_store.add_event(SyncEvent(
                event_type=SyncEventType.SUCCESS,
                message=f"Resolved conflict on {item.kind.value} '{item.id}' ({resolution.value})",
                details={
                    "id": item.id,
                    "kind": item.kind.value,
                    "conflictType": item.conflict_type.value,
                    "strategy": strategy.value,
                    "resolution": resolution.value,
                },
                timestamp=format_timestamp(self._clock()),
            ))
        item.mark_resolved(resolution)
        return resolution

    def resolve_all(self, items: Iterable[ConflictItem]) -> ResolutionSummary:
        """Resolve every item, best effort.

        Per-item failures are logged and recorded as error events; structural
        failures propagate and abort the caller's cycle.
        """
        summary = ResolutionSummary()
        for item in items:
            try:
                resolution = self.resolve(item)
            except STRUCTURAL_ERRORS:
                raise
            except SyncError as e:
                self._record_failure(item.id, e)
                summary.failed += 1
                continue

            if resolution == Resolution.MANUAL:
                summary.manual += 1
            else:
                summary.resolved += 1
        return summary

    def resolve_push_conflict(self, change: PendingChange, local_doc: Optional[Document]) -> Resolution:
        """Handle a RevisionConflict raised while pushing a queued change.

        The remote version is re-fetched and compared again; if it already
        holds the local content the change counts as applied, otherwise the
        item becomes a content conflict resolved with its strategy.
        """
        path = (local_doc.path if local_doc else None) or change.payload.get("path")
        superseded = self.queue.change_ids_for(change.target_id)
        try:
            remote = self.store.fetch_document(path)
        except DocumentNotFoundError:
            remote = None

        if local_doc is not None and remote is not None and \
                remote.content == local_doc.content:
            logger.info(f"Remote already holds the local content of '{change.target_id}'")
            self.cache.set_page_revision(change.target_id, remote.revision)
            self.queue.remove(superseded)
            return Resolution.LOCAL

        remote_doc = None
        if remote is not None:
            remote_doc = Document(
                id=change.target_id,
                path=path,
                title=local_doc.title if local_doc else change.payload.get("title", change.target_id),
                content=remote.content,
                order=local_doc.order if local_doc else 0,
                category_id=local_doc.category_id if local_doc else None,
                last_modified=remote.last_modified,
                revision=remote.revision,
            )

        item = ConflictItem(
            id=change.target_id,
            kind=ConflictKind.PAGE,
            local_version=local_doc,
            remote_version=remote_doc,
            conflict_type=ConflictType.CONTENT if remote_doc else ConflictType.STRUCTURE,
            remote_revision=remote.revision if remote else None,
        )
        return self.resolve(item)

    def clear_manual_hold(self, item_id: str) -> bool:
        """Release an item held for manual resolution.

        Returns:
            True if a hold existed
        """
        released = []

        def _release(state):
            if state.manual_holds.pop(item_id, None) is not None:
                released.append(item_id)
                state.add_event(SyncEvent(
                    event_type=SyncEventType.SUCCESS,
                    message=f"Manual hold on '{item_id}' cleared",
                    details={"id": item_id},
                    timestamp=format_timestamp(self._clock()),
                ))

        self.state_store.update(_release)
        if released:
            logger.info(f"Cleared manual hold on '{item_id}'")
        return bool(released)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def _resolve_page(self, item: ConflictItem, strategy: Strategy) -> Resolution:
        if strategy == Strategy.MANUAL:
            return Resolution.MANUAL
        if strategy == Strategy.LOCAL_WINS:
            self._push_local_page(item, item.local_version)
            return Resolution.LOCAL
        if strategy == Strategy.MERGE:
            if item.local_version is None or item.remote_version is None:
                # Deletes have no timestamp to compare: the remote decides
                self._apply_remote_page(item, item.remote_version)
                return Resolution.REMOTE
            merged, side = merge_documents(item.local_version, item.remote_version, self._clock())
            if side == LOCAL:
                self._push_local_page(item, merged)
            else:
                self._apply_remote_page(item, merged)
            return Resolution.MERGED

        self._apply_remote_page(item, item.remote_version)
        return Resolution.REMOTE

    def _push_local_page(self, item: ConflictItem, document: Optional[Document]) -> None:
        """Write the local side of a page conflict to the remote.

        Raises:
            ManualResolutionRequired: If the write conflicts twice
        """
        if document is None:
            self.index.update_remote(
                lambda toc: toc.remove_document(item.id),
                f"Remove {item.id}",
            )
            self.queue.discard_target(item.id)
            return

        # Edits queued while the write is in flight stay queued
        superseded = self.queue.change_ids_for(item.id)
        expected = item.remote_revision
        new_revision = None
        for attempt in (1, 2):
            try:
                new_revision = self.store.write_document(
                    document.path,
                    document.content,
                    f"Resolve conflict on {document.id} (local version)",
                    expected,
                )
                break
            except RevisionConflictError as e:
                if attempt == 2:
                    raise ManualResolutionRequired(
                        item.id, f"remote changed again while writing ({e})"
                    ) from e
                logger.warning(f"Revision conflict writing '{item.id}', re-fetching once")
                try:
                    remote = self.store.fetch_document(document.path)
                except DocumentNotFoundError:
                    expected = None
                    continue
                if remote.content == document.content:
                    new_revision = remote.revision
                    break
                expected = remote.revision

        if item.remote_version is None:
            self.index.update_remote(
                lambda toc: toc.upsert_document(
                    document.category_id,
                    DocumentRef(document.id, document.title, document.path),
                ),
                f"Restore {document.id}",
            )

        self.cache.set_page_revision(document.id, new_revision, document)
        self.queue.remove(superseded)

    def _apply_remote_page(self, item: ConflictItem, document: Optional[Document]) -> None:
        if document is None:
            self.cache.delete_page(item.id)
            self.index.update_local(lambda toc: toc.remove_document(item.id))
        else:
            self.cache.put_page(document)
            self.index.update_local(lambda toc: toc.upsert_document(
                document.category_id,
                DocumentRef(document.id, document.title, document.path),
            ))
        self.queue.discard_target(item.id)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def _resolve_category(self, item: ConflictItem, strategy: Strategy) -> Resolution:
        if strategy == Strategy.MANUAL:
            return Resolution.MANUAL
        if strategy == Strategy.LOCAL_WINS:
            self._push_local_category(item, item.local_version)
            return Resolution.LOCAL
        if strategy == Strategy.MERGE:
            merged = self._merge_category(item)
            self._push_local_category(item, merged)
            self._apply_local_category(item.id, merged)
            return Resolution.MERGED

        self._apply_local_category(item.id, item.remote_version)
        self.queue.discard_target(item.id)
        return Resolution.REMOTE

    def _merge_category(self, item: ConflictItem) -> Category:
        now = self._clock()
        local, remote = item.local_version, item.remote_version
        if local is not None and remote is not None:
            return merge_categories(local, remote, now)
        # One side deleted it: keep the surviving side so no child is lost
        survivor = replace(local or remote, last_modified=format_timestamp(now))
        return survivor

    def _push_local_category(self, item: ConflictItem, category: Optional[Category]) -> None:
        def _apply(toc):
            if category is None:
                toc.remove_category(item.id)
            else:
                toc.replace_category(category)

        try:
            self.index.update_remote(_apply, f"Resolve conflict on category {item.id}")
        except RevisionConflictError as e:
            raise ManualResolutionRequired(
                item.id, f"remote index changed again while writing ({e})"
            ) from e
        self.queue.discard_target(item.id)

    def _apply_local_category(self, category_id: str, category: Optional[Category]) -> None:
        def _apply(toc):
            if category is None:
                toc.remove_category(category_id)
            else:
                toc.replace_category(category)

        self.index.update_local(_apply)

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _hold(self, item: ConflictItem, reason: str) -> None:
        logger.warning(f"Manual resolution required for '{item.id}': {reason}")

        def _apply(state):
            state.manual_holds[item.id] = reason
            state.add_event(SyncEvent(
                event_type=SyncEventType.WARNING,
                message=f"Manual resolution required for {item.kind.value} '{item.id}'",
                details={
                    "id": item.id,
                    "kind": item.kind.value,
                    "conflictType": item.conflict_type.value,
                    "reason": reason,
                },
                timestamp=format_timestamp(self._clock()),
            ))

        self.state_store.update(_apply)

    def _record_failure(self, item_id: str, error: Exception) -> None:
        logger.error(f"Failed to resolve conflict on '{item_id}': {error}")
        self.state_store.add_event(SyncEvent(
            event_type=SyncEventType.ERROR,
            message=f"Failed to resolve conflict on '{item_id}'",
            details={"id": item_id, "error": str(error)},
            timestamp=format_timestamp(self._clock()),
        ))
