"""Sync orchestrator: state machine, scheduling and the sync cycle.

One cycle runs these phases strictly in order:

    1. load    read the local and remote sets, detect conflicts
    2. resolve apply strategies to every conflict
    3. pull    store remote-only changes in the local cache
    4. push    deliver queued local changes in FIFO order
    5. finish  push unqueued category edits, adopt the remote index,
               record lastSync/nextSync

Per-document failures during pull and push are recorded as events and the
cycle continues with the remaining documents. Structural failures (index
unreadable, remote unreachable, credentials rejected, local storage broken)
abort the cycle at once; the failure is recorded, errorCount grows by one,
nextSync is still scheduled and the orchestrator returns to IDLE.

At most one cycle runs at a time: every entry point takes a non-blocking
lock first and backs off if it is held.
"""

import copy
import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta, UTC
from typing import Any, Callable, Dict, List, Optional, Set, Union

from src.cache_store import LocalCacheStore
from src.models.document import Document, format_timestamp
from src.remote_store import (
    DocumentNotFoundError,
    RemoteDocumentStore,
    RevisionConflictError,
    SyncError,
)
from src.toc.models import Category, DocumentRef, TableOfContents
from .conflict_detector import ConflictDetector, category_fingerprint, category_fingerprints
from .conflict_resolver import STRUCTURAL_ERRORS, ConflictResolver
from .errors import StructuralSyncError
from .index_store import IndexStore
from .models import (
    ChangeType,
    ConflictKind,
    CycleReport,
    DocumentSet,
    OrchestratorState,
    PendingChange,
    Resolution,
    Strategy,
    SyncEvent,
    SyncEventType,
    SyncState,
)
from .pending_queue import PendingChangeQueue
from .scheduler import RecurringTask
from .strategy_registry import StrategyRegistry
from .sync_state_store import SyncStateStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MINUTES = 30


class SyncOrchestrator:
    """Coordinates sync cycles between the local cache and the remote store.

    Example:
        >>> orchestrator = context.orchestrator
        >>> report = orchestrator.run_cycle()
        >>> orchestrator.start(interval_minutes=30)
        >>> orchestrator.force_sync()
        True
        >>> orchestrator.stop()
    """

    def __init__(
        self,
        cache: LocalCacheStore,
        store: RemoteDocumentStore,
        queue: PendingChangeQueue,
        state_store: SyncStateStore,
        detector: ConflictDetector,
        resolver: ConflictResolver,
        index: IndexStore,
        registry: StrategyRegistry,
        interval_minutes: float = DEFAULT_INTERVAL_MINUTES,
        recent_threshold_minutes: float = 5,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.cache = cache
        self.store = store
        self.queue = queue
        self.state_store = state_store
        self.detector = detector
        self.resolver = resolver
        self.index = index
        self.registry = registry
        self.recent_threshold_minutes = recent_threshold_minutes
        self._interval = _validate_interval(interval_minutes)
        self._clock = clock or (lambda: datetime.now(UTC))

        self._cycle_lock = threading.Lock()
        self._task_lock = threading.Lock()
        self._task: Optional[RecurringTask] = None
        self._state = OrchestratorState.IDLE
        self.last_report: Optional[CycleReport] = None

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    @property
    def interval_minutes(self) -> float:
        return self._interval

    def _transition(self, new_state: OrchestratorState) -> None:
        logger.debug(f"Orchestrator {self._state.value} -> {new_state.value}")
        self._state = new_state

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def start(self, interval_minutes: Optional[float] = None) -> None:
        """Run one cycle now, then every interval_minutes.

        Calling start while scheduled replaces the timer; a cycle already in
        flight is not interrupted.
        """
        if interval_minutes is not None:
            self._interval = _validate_interval(interval_minutes)
        self._schedule(run_immediately=True)
        logger.info(f"Scheduled sync every {self._interval:g} minute(s)")

    def update_interval(self, interval_minutes: float) -> None:
        """Change the interval; reschedules without an immediate cycle."""
        self._interval = _validate_interval(interval_minutes)
        with self._task_lock:
            scheduled = self._task is not None
        if scheduled:
            self._schedule(run_immediately=False)
        else:
            self._safe_state_update(lambda state: setattr(state, "interval_minutes", self._interval))
        logger.info(f"Sync interval set to {self._interval:g} minute(s)")

    def stop(self) -> None:
        """Cancel the recurring schedule; an in-flight cycle still completes."""
        with self._task_lock:
            task, self._task = self._task, None
        if task is not None:
            task.cancel()
            logger.info("Stopped scheduled sync")

        def _unschedule(state: SyncState) -> None:
            state.scheduled = False
            state.next_sync = None

        self._safe_state_update(_unschedule)

    def _schedule(self, run_immediately: bool) -> None:
        with self._task_lock:
            if self._task is not None:
                self._task.cancel()
            self._task = RecurringTask(
                self._interval * 60,
                self._scheduled_cycle,
                run_immediately=run_immediately,
            )
            self._task.start()

        now = self._clock()
        next_sync = now if run_immediately else now + timedelta(minutes=self._interval)

        def _mark_scheduled(state: SyncState) -> None:
            state.scheduled = True
            state.interval_minutes = self._interval
            state.next_sync = format_timestamp(next_sync)

        self._safe_state_update(_mark_scheduled)

    def _scheduled_cycle(self) -> None:
        report = self.run_cycle()
        if report is None:
            logger.info("Scheduled sync skipped: a cycle is already running")

    # ------------------------------------------------------------------
    # Cycle entry points
    # ------------------------------------------------------------------

    def force_sync(self, wait: bool = False) -> bool:
        """Trigger an out-of-band cycle.

        Args:
            wait: Run the cycle in the calling thread instead of a worker

        Returns:
            False (and nothing happens) if a cycle is already running
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("Sync already in progress, ignoring forced sync")
            return False

        if wait:
            try:
                self._run_locked()
            except Exception:
                logger.exception("Forced sync failed")
            finally:
                self._cycle_lock.release()
            return True

        worker = threading.Thread(
            target=self._run_and_release,
            name="wiki-sync-forced",
            daemon=True,
        )
        try:
            worker.start()
        except RuntimeError:
            self._cycle_lock.release()
            logger.exception("Could not start forced sync worker")
            return False
        return True

    def run_cycle(self) -> Optional[CycleReport]:
        """Run one cycle synchronously.

        Returns:
            The cycle report, or None if another cycle holds the lock
        """
        if not self._cycle_lock.acquire(blocking=False):
            return None
        try:
            return self._run_locked()
        finally:
            self._cycle_lock.release()

    def _run_and_release(self) -> None:
        try:
            self._run_locked()
        except Exception:
            logger.exception("Forced sync failed")
        finally:
            self._cycle_lock.release()

    def _run_locked(self) -> CycleReport:
        started = self._clock()
        report = CycleReport(started_at=format_timestamp(started))
        self.last_report = report
        self._transition(OrchestratorState.SYNCING)
        logger.info("Sync cycle started")

        try:
            self._begin(started)
            self._execute(report)
        except SyncError as e:
            self._abort(report, e)
            return report
        except Exception as e:
            self._abort(report, e)
            raise

        self._complete(report)
        return report

    # ------------------------------------------------------------------
    # Cycle phases
    # ------------------------------------------------------------------

    def _begin(self, started: datetime) -> None:
        def _mark_running(state: SyncState) -> None:
            state.is_running = True
            state.sync_status = OrchestratorState.SYNCING
            state.last_sync_attempt = format_timestamp(started)

        self.state_store.update(_mark_running)

    def _execute(self, report: CycleReport) -> None:
        state = self.state_store.load()
        held = set(state.manual_holds)

        # 1. load and detect
        remote_set, unavailable = self._load_remote()
        report.failed += len(unavailable)
        local_set = self._load_local()
        detection = self.detector.detect_conflicts(
            local_set,
            remote_set,
            pending_ids=self.queue.pending_ids(),
            held_ids=held | unavailable,
            category_baseline=state.category_baseline,
        )
        report.conflicts = len(detection.conflicts)
        for item in detection.conflicts:
            self._record_event(
                SyncEventType.CONFLICT,
                f"Conflict on {item.kind.value} '{item.id}'",
                {"id": item.id, "kind": item.kind.value, "conflictType": item.conflict_type.value},
            )

        # 2. resolve
        summary = self.resolver.resolve_all(detection.conflicts)
        report.resolved += summary.resolved
        report.manual += summary.manual
        report.failed += summary.failed

        # 3. pull
        for doc_id in detection.to_pull:
            if self._pull_page(remote_set.documents[doc_id]):
                report.pulled += 1
            else:
                report.failed += 1
        if detection.categories_to_pull:
            self._pull_categories(detection.categories_to_pull, remote_set)

        # 4. push
        held = set(self.state_store.load().manual_holds)
        self._queue_untracked_pages(detection.to_push, local_set)
        self._push_pending(report, held)

        # 5. push unqueued category edits, adopt the remote index
        self._finish_index(held, detection.categories_to_push, report)

    def _load_remote(self):
        """Fetch the remote index and every document it references.

        Returns:
            (DocumentSet, ids that could not be loaded this cycle)
        """
        try:
            toc, toc_revision = self.store.fetch_table_of_contents_with_revision()
        except DocumentNotFoundError as e:
            raise StructuralSyncError("load", f"index {self.store.summary_path} not found") from e

        documents: Dict[str, Document] = {}
        unavailable: Set[str] = set()
        for ref, category_id in toc.document_refs():
            if ref.id in documents or ref.id in unavailable:
                continue
            try:
                remote = self.store.fetch_document(ref.path)
            except DocumentNotFoundError:
                # Listed but gone: detection treats it as deleted remotely
                logger.warning(f"Index references missing document {ref.path}")
                continue
            except STRUCTURAL_ERRORS:
                raise
            except SyncError as e:
                self._record_event(SyncEventType.ERROR, f"Failed to load remote '{ref.id}'",
                                   {"id": ref.id, "error": str(e)})
                unavailable.add(ref.id)
                continue

            documents[ref.id] = Document(
                id=ref.id,
                path=ref.path,
                title=ref.title,
                content=remote.content,
                order=ref.order,
                category_id=category_id,
                last_modified=remote.last_modified,
                revision=remote.revision,
            )

        logger.info(f"Loaded {len(documents)} remote document(s) at index revision {toc_revision}")
        return DocumentSet.from_toc(toc, documents, toc_revision), unavailable

    def _load_local(self) -> DocumentSet:
        toc, version = self.index.load_local()
        return DocumentSet.from_toc(toc, self.cache.all_pages(), version)

    def _pull_page(self, document: Document) -> bool:
        try:
            self.cache.put_page(document)
        except STRUCTURAL_ERRORS:
            raise
        except SyncError as e:
            self._record_event(SyncEventType.ERROR, f"Failed to pull '{document.id}'",
                               {"id": document.id, "error": str(e)})
            return False
        logger.debug(f"Pulled '{document.id}' at revision {document.revision}")
        return True

    def _pull_categories(self, category_ids: List[str], remote_set: DocumentSet) -> None:
        def _apply(toc: TableOfContents) -> None:
            for category_id in category_ids:
                remote_category = remote_set.categories.get(category_id)
                if remote_category is None:
                    toc.remove_category(category_id)
                else:
                    toc.replace_category(remote_category)

        self.index.update_local(_apply)
        logger.debug(f"Pulled {len(category_ids)} category change(s)")

    def _queue_untracked_pages(self, doc_ids: List[str], local_set: DocumentSet) -> None:
        """Queue a create for local pages that never reached the remote.

        A page with no remote revision and no queued change would otherwise
        be dropped when the remote index is adopted.
        """
        pending = self.queue.pending_ids()
        for doc_id in doc_ids:
            document = local_set.documents.get(doc_id)
            if doc_id in pending or document is None or document.revision is not None:
                continue
            self.queue.enqueue(PendingChange(
                change_type=ChangeType.CREATE,
                target_id=doc_id,
                payload={
                    "path": document.path,
                    "title": document.title,
                    "content": document.content,
                    "category_id": document.category_id,
                },
                timestamp=format_timestamp(self._clock()),
            ))
            logger.info(f"Queued create of untracked local page '{doc_id}'")

    def _push_pending(self, report: CycleReport, held: Set[str]) -> None:
        """Deliver queued changes in FIFO order.

        Confirmed entries are removed from the queue even when a later
        change aborts the cycle.
        """
        changes = self.queue.drain_all()
        if not changes:
            return

        confirmed: List[str] = []
        blocked: Set[str] = set()
        revisions: Dict[str, Optional[str]] = {}
        try:
            for change in changes:
                if change.target_id in held or change.target_id in blocked:
                    continue
                try:
                    outcome = self._push_change(change, revisions)
                except STRUCTURAL_ERRORS:
                    raise
                except SyncError as e:
                    # Later changes for the same item would skip this one
                    blocked.add(change.target_id)
                    report.failed += 1
                    self._record_event(
                        SyncEventType.ERROR,
                        f"Failed to push {change.change_type.value} of '{change.target_id}'",
                        {"id": change.target_id, "changeId": change.change_id, "error": str(e)},
                    )
                    continue

                if outcome is True:
                    confirmed.append(change.change_id)
                    report.pushed += 1
                    continue

                # The conflict resolution superseded every queued change for it
                blocked.add(change.target_id)
                report.conflicts += 1
                self._record_event(
                    SyncEventType.CONFLICT,
                    f"Conflict on {change.kind.value} '{change.target_id}' while pushing",
                    {"id": change.target_id, "kind": change.kind.value,
                     "changeId": change.change_id, "resolution": outcome.value},
                )
                if outcome == Resolution.MANUAL:
                    report.manual += 1
                else:
                    report.resolved += 1
        finally:
            if confirmed:
                self.queue.remove(confirmed)

    def _push_change(
        self,
        change: PendingChange,
        revisions: Dict[str, Optional[str]],
    ) -> Union[bool, Resolution]:
        """Apply one queued change to the remote.

        Returns:
            True when confirmed, or the Resolution of a revision conflict
        """
        if change.kind == ConflictKind.CATEGORY:
            self._push_category(change)
            return True

        path = change.payload.get("path")
        if change.change_type == ChangeType.DELETE:
            self.index.update_remote(
                lambda toc: toc.remove_document(change.target_id),
                f"Delete {path}",
            )
            logger.info(f"Pushed delete of '{change.target_id}'")
            return True

        local_doc = self.cache.get_page(change.target_id)
        content = change.payload.get("content", "")
        if change.target_id in revisions:
            expected = revisions[change.target_id]
        elif change.change_type == ChangeType.UPDATE and local_doc is not None:
            expected = local_doc.revision
        else:
            expected = change.base_revision

        try:
            new_revision = self.store.write_document(
                path,
                content,
                f"{change.change_type.value.capitalize()} {path}",
                expected,
            )
        except RevisionConflictError:
            already_applied = self._remote_revision_if_identical(path, content)
            if already_applied is None:
                logger.warning(f"Revision conflict pushing '{change.target_id}'")
                return self.resolver.resolve_push_conflict(change, local_doc)
            new_revision = already_applied

        revisions[change.target_id] = new_revision
        if change.change_type == ChangeType.CREATE:
            ref = DocumentRef(
                id=change.target_id,
                title=change.payload.get("title", change.target_id),
                path=path,
            )
            self.index.update_remote(
                lambda toc: _ensure_ref(toc, change.payload.get("category_id"), ref),
                f"Add {path}",
            )
        elif "title" in change.payload:
            self.index.update_remote(
                lambda toc: _retitle_ref(toc, change.target_id, change.payload["title"]),
                f"Rename {path}",
            )
        # Only the revision: the page may have been edited during the write
        self.cache.set_page_revision(change.target_id, new_revision)
        logger.info(f"Pushed {change.change_type.value} of '{change.target_id}' (revision {new_revision})")
        return True

    def _push_category(self, change: PendingChange) -> None:
        data = change.payload.get("category")
        category = Category.from_dict(data) if data else None

        def _apply(toc: TableOfContents) -> None:
            if change.change_type == ChangeType.DELETE or category is None:
                toc.remove_category(change.target_id)
            else:
                toc.replace_category(category)

        self.index.update_remote(_apply, f"Update category {change.target_id}")
        logger.info(f"Pushed {change.change_type.value} of category '{change.target_id}'")

    def _remote_revision_if_identical(self, path: str, content: str) -> Optional[str]:
        """Revision of the remote copy if it already holds content."""
        try:
            remote = self.store.fetch_document(path)
        except DocumentNotFoundError:
            return None
        if remote.content == content:
            logger.info(f"Remote already holds this version of {path}, treating as applied")
            return remote.revision
        return None

    def _finish_index(
        self,
        held: Set[str],
        categories_to_push: List[str],
        report: CycleReport,
    ) -> None:
        """Push category edits nothing queued, then adopt the remote index.

        Category baselines are recorded from the adopted remote index.
        """
        toc, revision = self.store.fetch_table_of_contents_with_revision()
        local_toc, _ = self.index.load_local()

        keep = self._unconfirmed_categories(held, local_toc, toc)
        unqueued = [category_id for category_id in categories_to_push if category_id not in keep]
        if unqueued:
            toc, revision = self._push_local_categories(unqueued, local_toc, report)

        adopted = self.index.adopt_remote(toc, revision, keep)
        self._refresh_page_metadata(adopted, held | self.queue.pending_ids())

        baseline = category_fingerprints(toc.category_map())
        self.state_store.update(lambda state: setattr(state, "category_baseline", baseline))

    def _unconfirmed_categories(self, held: Set[str], *tocs: TableOfContents) -> Set[str]:
        """Held ids plus every category touched by a change still queued."""
        keep = set(held)
        for change in self.queue.drain_all():
            if change.kind == ConflictKind.CATEGORY:
                keep.add(change.target_id)
                continue
            for toc in tocs:
                found = toc.find_document(change.target_id)
                if found is not None:
                    keep.add(found[1])
        return keep

    def _push_local_categories(
        self,
        category_ids: List[str],
        local_toc: TableOfContents,
        report: CycleReport,
    ):
        """Write local category edits that have no queued change.

        Returns:
            (remote table of contents, its revision) after the write
        """
        local_categories = local_toc.category_map()
        written: List[str] = []

        def _apply(toc: TableOfContents) -> bool:
            written.clear()
            remote_categories = toc.category_map()
            for category_id in category_ids:
                local_category = local_categories.get(category_id)
                remote_category = remote_categories.get(category_id)
                if local_category is None:
                    if remote_category is not None:
                        toc.remove_category(category_id)
                        written.append(category_id)
                elif remote_category is None or \
                        category_fingerprint(local_category) != category_fingerprint(remote_category):
                    toc.replace_category(copy.deepcopy(local_category))
                    written.append(category_id)
            return bool(written)

        result = self.index.update_remote(_apply, f"Update categories {', '.join(category_ids)}")
        report.pushed += len(written)
        for category_id in written:
            logger.info(f"Pushed local change of category '{category_id}'")
        return result

    def _refresh_page_metadata(self, toc: TableOfContents, skip: Set[str]) -> None:
        for ref, category_id in toc.document_refs():
            if ref.id in skip:
                continue
            document = self.cache.get_page(ref.id)
            if document is None:
                continue
            if (document.title, document.order, document.category_id) != \
                    (ref.title, ref.order, category_id):
                self.cache.put_page(replace(
                    document,
                    title=ref.title,
                    order=ref.order,
                    category_id=category_id,
                ))

    # ------------------------------------------------------------------
    # Outcome bookkeeping
    # ------------------------------------------------------------------

    def _complete(self, report: CycleReport) -> None:
        finished = self._clock()
        report.finished_at = format_timestamp(finished)
        next_sync = finished + timedelta(minutes=self._interval)

        if report.failed:
            event = SyncEvent(
                event_type=SyncEventType.WARNING,
                message=f"Sync cycle completed with {report.failed} failure(s)",
                details=_cycle_details(report),
                timestamp=report.finished_at,
            )
        else:
            event = SyncEvent(
                event_type=SyncEventType.SUCCESS,
                message="Sync cycle completed",
                details=_cycle_details(report),
                timestamp=report.finished_at,
            )

        def _record(state: SyncState) -> None:
            state.is_running = False
            state.sync_status = OrchestratorState.IDLE
            state.last_sync = report.finished_at
            state.next_sync = format_timestamp(next_sync)
            if report.clean:
                state.error_count = 0
                state.last_error = None
            state.add_event(event)

        self.state_store.update(_record)
        self._transition(OrchestratorState.IDLE)
        logger.info(
            f"Sync cycle completed: {report.pulled} pulled, {report.pushed} pushed, "
            f"{report.conflicts} conflict(s), {report.failed} failure(s)"
        )

    def _abort(self, report: CycleReport, error: Exception) -> None:
        self._transition(OrchestratorState.ERROR)
        finished = self._clock()
        report.aborted = True
        report.error = str(error)
        report.exception = error
        report.finished_at = format_timestamp(finished)
        next_sync = finished + timedelta(minutes=self._interval)
        logger.error(f"Sync cycle aborted: {error}")

        def _record(state: SyncState) -> None:
            state.is_running = False
            state.sync_status = OrchestratorState.IDLE
            state.error_count += 1
            state.last_error = str(error)
            state.next_sync = format_timestamp(next_sync)
            state.add_event(SyncEvent(
                event_type=SyncEventType.ERROR,
                message=f"Sync cycle aborted: {error}",
                details=dict(_cycle_details(report), errorType=type(error).__name__),
                timestamp=report.finished_at,
            ))

        try:
            self.state_store.update(_record)
        except SyncError:
            logger.exception("Could not record aborted sync cycle")
        self._transition(OrchestratorState.IDLE)

    def _record_event(self, event_type: SyncEventType, message: str, details: Dict[str, Any]) -> None:
        if event_type == SyncEventType.ERROR:
            logger.error(f"{message}: {details.get('error')}")
        self.state_store.add_event(SyncEvent(
            event_type=event_type,
            message=message,
            details=details,
            timestamp=format_timestamp(self._clock()),
        ))

    def _safe_state_update(self, mutate: Callable[[SyncState], Any]) -> None:
        try:
            self.state_store.update(mutate)
        except SyncError:
            logger.exception("Could not persist sync state")

    # ------------------------------------------------------------------
    # Status and operator controls
    # ------------------------------------------------------------------

    def get_status(self) -> SyncState:
        """Snapshot of the sync state."""
        state = self.state_store.load()
        state.is_running = self._cycle_lock.locked()
        with self._task_lock:
            state.scheduled = self._task is not None
        state.interval_minutes = self._interval
        state.sync_status = self._state
        return state

    def get_history(self) -> List[SyncEvent]:
        """Most recent events first (at most 50)."""
        return list(self.state_store.load().history)

    def get_sync_stats(self) -> Dict[str, Any]:
        """Aggregate cycle statistics from the recorded history."""
        state = self.state_store.load()
        cycles = [event for event in state.history if event.details.get("cycle")]
        durations = [
            event.details["durationSeconds"] for event in cycles
            if event.details.get("durationSeconds") is not None
        ]
        return {
            "totalSyncs": len(cycles),
            "successfulSyncs": sum(1 for event in cycles if event.event_type == SyncEventType.SUCCESS),
            "failedSyncs": sum(1 for event in cycles if event.event_type == SyncEventType.ERROR),
            "lastSync": state.last_sync,
            "lastDurationSeconds": durations[0] if durations else None,
            "averageDurationSeconds": sum(durations) / len(durations) if durations else None,
            "pendingChanges": state.pending_changes,
            "manualHolds": len(state.manual_holds),
            "errorCount": state.error_count,
        }

    def get_cache_info(self) -> Dict[str, Any]:
        """Local cache overview: data present, freshness, sizes, last sync."""
        summary = self.cache.get_summary() or {}
        return {
            "hasData": self.cache.has_cached_data(),
            "isRecent": self.cache.is_recent(self.recent_threshold_minutes),
            "size": self.cache.sizes(),
            "lastSync": summary.get("lastSync"),
        }

    def set_strategy(self, item_id: str, strategy: Union[Strategy, str]) -> None:
        self.registry.set(item_id, strategy)
        logger.info(f"Strategy for '{item_id}' set to {self.registry.lookup(item_id).value}")

    def clear_manual_hold(self, item_id: str) -> bool:
        return self.resolver.clear_manual_hold(item_id)


def _ensure_ref(toc: TableOfContents, category_id: Optional[str], ref: DocumentRef) -> bool:
    """Add ref to the index unless it is already listed there.

    Returns:
        False when the index is unchanged (nothing to write)
    """
    found = toc.find_document(ref.id)
    if found is not None and (category_id is None or found[1] == category_id):
        return False
    toc.upsert_document(category_id, ref)
    return True


def _retitle_ref(toc: TableOfContents, doc_id: str, title: str) -> bool:
    found = toc.find_document(doc_id)
    if found is None or found[0].title == title:
        return False
    found[0].title = title
    return True


def _cycle_details(report: CycleReport) -> Dict[str, Any]:
    return {
        "cycle": True,
        "pulled": report.pulled,
        "pushed": report.pushed,
        "conflicts": report.conflicts,
        "resolved": report.resolved,
        "manual": report.manual,
        "failed": report.failed,
        "durationSeconds": report.duration_seconds,
    }


def _validate_interval(interval_minutes: float) -> float:
    if interval_minutes is None or interval_minutes <= 0:
        raise ValueError(f"Sync interval must be positive, got {interval_minutes}")
    return float(interval_minutes)
